"""
Progress calculator

Completion is measured against a blueprint: each item is worth 100 points,
split 50/50 when it carries both mcq and coding content. A student's
completion is the rounded mean of item points; a cohort's average is the mean
of its students' completions.
"""

from functools import reduce
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from educode.analytics.blueprint import BlueprintItem
from educode.analytics.extraction import round_half_up
from educode.analytics.reconciliation import ResultIndex, ResultRecord
from educode.content.tree import Modality

# ==================== MODELS ====================

class ItemProgress(BaseModel):
    sub_unit_id: str
    sub_unit_title: str
    progress_percentage: int
    has_mcq: bool
    mcq_submitted: bool
    has_coding: bool
    coding_submitted: bool

class StudentProgress(BaseModel):
    student_id: str
    completion_percentage: int
    items: List[ItemProgress] = []

class DebugConfigs(BaseModel):
    start_config: Optional[Any] = None
    end_config: Optional[Any] = None

    def as_response(self) -> dict:
        return {
            "start_config": self.start_config or {},
            "end_config": self.end_config or {},
        }

class ExamProgress(BaseModel):
    student_id: str
    completion_percentage: int
    total_marks: float = 0
    mcq_marks: float = 0
    coding_marks: float = 0
    debug_configs: DebugConfigs = Field(default_factory=DebugConfigs)

# ==================== ITEM MATH ====================

def item_progress(item: BlueprintItem, did_mcq: bool, did_coding: bool) -> int:
    """
    Points earned on one blueprint item

    Both modalities required: 50 per submitted modality.
    One modality required: 100 when it is submitted.
    """
    if item.has_mcq and item.has_coding:
        return (50 if did_mcq else 0) + (50 if did_coding else 0)
    if item.has_mcq:
        return 100 if did_mcq else 0
    if item.has_coding:
        return 100 if did_coding else 0
    return 0


def _mean_percentage(points: Iterable[int], count: int) -> int:
    if count == 0:
        return 0
    return round_half_up(sum(points) / count)


def student_completion(blueprint: List[BlueprintItem], index: ResultIndex, student_id: str) -> StudentProgress:
    items = []
    for item in blueprint:
        did_mcq = index.has(student_id, item.sub_unit_id, Modality.MCQ.value)
        did_coding = index.has(student_id, item.sub_unit_id, Modality.CODING.value)
        items.append(ItemProgress(
            sub_unit_id=item.sub_unit_id,
            sub_unit_title=item.title,
            progress_percentage=item_progress(item, did_mcq, did_coding),
            has_mcq=item.has_mcq,
            mcq_submitted=did_mcq,
            has_coding=item.has_coding,
            coding_submitted=did_coding,
        ))

    return StudentProgress(
        student_id=str(student_id),
        completion_percentage=_mean_percentage((i.progress_percentage for i in items), len(blueprint)),
        items=items,
    )


def cohort_average(percentages: List[int]) -> int:
    """Mean of per-student percentages, not pooled points"""
    return _mean_percentage(percentages, len(percentages))

# ==================== EXAM MODE ====================

def _config_source(mcq: Optional[ResultRecord], coding: Optional[ResultRecord]) -> Optional[ResultRecord]:
    # Coding result owns the item's configs whenever it exists.
    return coding if coding is not None else mcq


def _capture_configs(configs: DebugConfigs, source: Optional[ResultRecord]) -> DebugConfigs:
    if source is None:
        return configs
    return DebugConfigs(
        start_config=source.start_config if source.start_config else configs.start_config,
        end_config=source.end_config if source.end_config else configs.end_config,
    )


def exam_progress(blueprint: List[BlueprintItem], index: ResultIndex, student_id: str) -> ExamProgress:
    """
    Completion, marks and debug configs for one student over an exam blueprint

    Marks are summed across every blueprint item, using the indexed (latest)
    result of each modality.
    """
    def fold(acc: Dict[str, Any], item: BlueprintItem) -> Dict[str, Any]:
        mcq = index.get(student_id, item.sub_unit_id, Modality.MCQ.value)
        coding = index.get(student_id, item.sub_unit_id, Modality.CODING.value)
        return {
            "points": acc["points"] + item_progress(item, mcq is not None, coding is not None),
            "mcq_marks": acc["mcq_marks"] + (mcq.marks_obtained if mcq else 0),
            "coding_marks": acc["coding_marks"] + (coding.marks_obtained if coding else 0),
            "configs": _capture_configs(acc["configs"], _config_source(mcq, coding)),
        }

    start = {"points": 0, "mcq_marks": 0, "coding_marks": 0, "configs": DebugConfigs()}
    totals = reduce(fold, blueprint, start)

    return ExamProgress(
        student_id=str(student_id),
        completion_percentage=_mean_percentage([totals["points"]], len(blueprint)),
        total_marks=totals["mcq_marks"] + totals["coding_marks"],
        mcq_marks=totals["mcq_marks"],
        coding_marks=totals["coding_marks"],
        debug_configs=totals["configs"],
    )
