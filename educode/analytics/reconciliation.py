"""
Result reconciliation index.

Submitted result rows for a cohort are loaded in one query and indexed by
(student, sub-unit, modality) so progress math is a dictionary lookup per
blueprint item instead of a query per student.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel

from educode.analytics.extraction import parse_timestamp, to_number, to_object

IndexKey = Tuple[str, str, str]


class ResultRecord(BaseModel):
    student_id: str
    course_id: Optional[str] = None
    unit_id: Optional[str] = None
    sub_unit_id: Optional[str] = None
    result_type: Optional[str] = None
    attempt_count: int = 0
    marks_obtained: float = 0
    total_marks: float = 0
    submitted_at: Optional[datetime] = None
    analytics: Dict[str, Any] = {}
    start_config: Optional[Any] = None
    end_config: Optional[Any] = None
    row: Dict[str, Any] = {}

    @classmethod
    def from_row(cls, row: dict) -> "ResultRecord":
        return cls(
            student_id=str(row.get("student_id")),
            course_id=row.get("course_id"),
            unit_id=row.get("unit_id"),
            sub_unit_id=row.get("sub_unit_id"),
            result_type=row.get("result_type"),
            attempt_count=int(to_number(row.get("attempt_count"))),
            marks_obtained=to_number(row.get("marks_obtained")),
            total_marks=to_number(row.get("total_marks")),
            submitted_at=parse_timestamp(row.get("submitted_at")),
            analytics=to_object(row.get("analytics")) or {},
            start_config=row.get("start_config"),
            end_config=row.get("end_config"),
            row=row,
        )


class ResultIndex:
    """Latest submitted result per (student_id, sub_unit_id, modality)"""

    def __init__(self, entries: Dict[IndexKey, ResultRecord]):
        self._entries = entries

    @classmethod
    def build(cls, rows: Iterable[Any]) -> "ResultIndex":
        entries: Dict[IndexKey, ResultRecord] = {}
        for row in rows:
            record = row if isinstance(row, ResultRecord) else ResultRecord.from_row(row)
            key = (record.student_id, str(record.sub_unit_id), str(record.result_type))
            current = entries.get(key)
            # Greatest attempt wins; equal attempts keep the last row seen.
            if current is None or record.attempt_count >= current.attempt_count:
                entries[key] = record
        return cls(entries)

    def get(self, student_id: str, sub_unit_id: str, modality: str) -> Optional[ResultRecord]:
        return self._entries.get((str(student_id), str(sub_unit_id), str(modality)))

    def has(self, student_id: str, sub_unit_id: str, modality: str) -> bool:
        return (str(student_id), str(sub_unit_id), str(modality)) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
