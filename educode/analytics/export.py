"""
Spreadsheet export of the dashboard view
Summary sheet: one row per student, latest mcq/coding marks
Attempts sheet: every attempt of the cohort on the sub-unit
"""

import io
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from educode.analytics.trends import attempt_rows, table_rows

SUMMARY_HEADER = ["RegID", "Name", "Section", "Course", "MCQ Marks", "Coding Marks", "Submit Reason"]
ATTEMPT_HEADER = [
    "RegID", "Name", "Type", "Attempt", "Marks", "Percent",
    "TimeTakenSeconds", "FaceWarnings", "LostFocus", "Disconnects", "SubmitReason",
]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _style_header(ws, width: int = 16) -> None:
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for col in range(1, ws.max_column + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.alignment = center
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = "A2"


def build_report_workbook(cohort: Dict[str, Any]) -> Workbook:
    students: List[dict] = cohort["students"]
    mcq_rows: List[dict] = cohort["mcq_rows"]
    coding_rows: List[dict] = cohort["coding_rows"]

    wb = Workbook()
    ws = wb.active
    ws.title = "Summary"
    ws.append(SUMMARY_HEADER)
    for row in table_rows(students, mcq_rows, coding_rows, cohort["course_name"]):
        ws.append([
            row["uni_reg_id"],
            row["student_name"],
            row["section"],
            row["course_name"],
            row["mcq_marks"],
            row["coding_marks"],
            row["submit_reason"] or "",
        ])
    _style_header(ws)

    attempts = wb.create_sheet("Attempts")
    attempts.append(ATTEMPT_HEADER)
    for row in attempt_rows(students, mcq_rows + coding_rows):
        attempts.append([row[column] if row[column] is not None else "" for column in ATTEMPT_HEADER])
    _style_header(attempts)

    return wb


def workbook_bytes(wb: Workbook) -> io.BytesIO:
    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer
