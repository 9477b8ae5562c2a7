from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from enum import Enum

from educode.analytics.extraction import (
    QUESTION_TEXT_STRATEGIES,
    SUB_UNIT_TITLE_STRATEGIES,
    UNIT_NAME_STRATEGIES,
    first_match,
    is_number,
    to_number,
)

# ==================== ENUMS ====================

class Modality(str, Enum):
    MCQ = "mcq"
    CODING = "coding"

class SubType(str, Enum):
    PRACTICE = "practice"
    EXAM = "exam"

MODALITIES = (Modality.MCQ, Modality.CODING)

# ==================== TREE NODES ====================

class SubUnitNode(BaseModel):
    sub_unit_id: str
    unit_id: str
    title: str
    sub_type: Optional[str] = None
    kind: str = "video"  # pdf, video, mcq, coding
    mcq_question_ids: List[str] = []
    coding_question_ids: List[str] = []
    total_mcq_questions: int = 0
    total_coding_questions: int = 0
    mcq_questions_to_show: Optional[int] = None
    coding_questions_to_show: Optional[int] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def has_mcq(self) -> bool:
        return bool(self.mcq_question_ids) or self.total_mcq_questions > 0

    @property
    def has_coding(self) -> bool:
        return bool(self.coding_question_ids) or self.total_coding_questions > 0

    def question_ids(self, modality: Modality) -> List[str]:
        if modality == Modality.MCQ:
            return self.mcq_question_ids
        return self.coding_question_ids

    def questions_to_show(self, modality: Modality) -> int:
        """Configured cap, or every available question when unset"""
        cap = self.mcq_questions_to_show if modality == Modality.MCQ else self.coding_questions_to_show
        if cap and cap > 0:
            return cap
        return len(self.question_ids(modality))

class UnitNode(BaseModel):
    unit_id: str
    name: str
    sub_units: List[SubUnitNode] = []
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

class CourseTree(BaseModel):
    course_id: str
    units: List[UnitNode] = []

    def iter_sub_units(self):
        for unit in self.units:
            for sub_unit in unit.sub_units:
                yield sub_unit

# ==================== QUESTIONS ====================

class OptionNode(BaseModel):
    index: int
    text: str
    is_correct: bool = False

class McqQuestion(BaseModel):
    question_id: str
    text: str
    options: List[OptionNode] = []

    def option_at(self, index: Optional[int]) -> Optional[OptionNode]:
        if index is None or index < 0 or index >= len(self.options):
            return None
        return self.options[index]

class TestCaseNode(BaseModel):
    input: Any = None
    expected_output: Any = None

class CodingQuestion(BaseModel):
    question_id: str
    title: str
    description: Optional[Any] = None
    sample_test_cases: List[TestCaseNode] = []
    hidden_test_cases: List[TestCaseNode] = []
    # Plain text or a per-language map
    solution: Optional[Any] = None

# ==================== PARSING ====================

def entries(node: Any) -> List[tuple]:
    """(key, value) pairs of a Firebase map or array, skipping holes"""
    if isinstance(node, dict):
        return [(str(k), v) for k, v in node.items() if v is not None]
    if isinstance(node, list):
        return [(str(i), v) for i, v in enumerate(node) if v is not None]
    return []

def _text(value: Any, default: Optional[str] = None) -> Optional[str]:
    return default if value is None else str(value)

def _optional_int(value: Any) -> Optional[int]:
    number = to_number(value, default=None)
    return int(number) if number is not None else None

def parse_sub_unit(sub_unit_id: str, unit_id: str, raw: Any) -> SubUnitNode:
    raw = raw if isinstance(raw, dict) else {}
    return SubUnitNode(
        sub_unit_id=sub_unit_id,
        unit_id=unit_id,
        title=_text(first_match(SUB_UNIT_TITLE_STRATEGIES, raw), "Untitled Sub-Unit"),
        sub_type=_text(raw.get("sub_type")),
        kind=_text(raw.get("type") or None, "video"),
        mcq_question_ids=[key for key, _ in entries(raw.get("mcq"))],
        coding_question_ids=[key for key, _ in entries(raw.get("coding"))],
        total_mcq_questions=int(to_number(raw.get("total-mcq-questions"))),
        total_coding_questions=int(to_number(raw.get("total-coding-questions"))),
        mcq_questions_to_show=_optional_int(raw.get("mcq-questions-to-show")),
        coding_questions_to_show=_optional_int(raw.get("coding-questions-to-show")),
        raw=raw,
    )

def parse_unit(unit_id: str, raw: Any) -> UnitNode:
    raw = raw if isinstance(raw, dict) else {}
    return UnitNode(
        unit_id=unit_id,
        name=_text(first_match(UNIT_NAME_STRATEGIES, raw), "Untitled Unit"),
        sub_units=[
            parse_sub_unit(sub_id, unit_id, sub_raw)
            for sub_id, sub_raw in entries(raw.get("sub-units"))
        ],
        raw=raw,
    )

def parse_course(course_id: str, units_raw: Any) -> CourseTree:
    return CourseTree(
        course_id=course_id,
        units=[parse_unit(unit_id, unit_raw) for unit_id, unit_raw in entries(units_raw)],
    )

def _truthy_flag(raw: dict, *names: str) -> bool:
    return any(bool(raw.get(name)) for name in names)

def _option_text(value: Any) -> str:
    if isinstance(value, dict):
        for name in ("text", "option", "value", "label"):
            if value.get(name) is not None:
                return str(value[name])
        return ""
    return str(value)

def parse_mcq_question(question_id: str, raw: Any) -> McqQuestion:
    raw = raw if isinstance(raw, dict) else {}
    correct_index = raw.get("correct_option", raw.get("correctOption"))
    correct_index = int(correct_index) if is_number(correct_index) else None

    options = []
    for index, (_, value) in enumerate(entries(raw.get("options"))):
        flagged = isinstance(value, dict) and _truthy_flag(value, "is_correct", "isCorrect", "correct")
        options.append(OptionNode(
            index=index,
            text=_option_text(value),
            is_correct=flagged or index == correct_index,
        ))

    return McqQuestion(
        question_id=question_id,
        text=str(first_match(QUESTION_TEXT_STRATEGIES, raw, "")),
        options=options,
    )

def _test_cases(node: Any) -> List[TestCaseNode]:
    cases = []
    for _, value in entries(node):
        if not isinstance(value, dict):
            continue
        expected = value.get("output")
        if expected is None:
            expected = value.get("expected_output", value.get("expectedOutput"))
        cases.append(TestCaseNode(input=value.get("input"), expected_output=expected))
    return cases

def parse_coding_question(question_id: str, raw: Any) -> CodingQuestion:
    raw = raw if isinstance(raw, dict) else {}
    return CodingQuestion(
        question_id=question_id,
        title=str(first_match(QUESTION_TEXT_STRATEGIES, raw, "Untitled Question")),
        description=raw.get("description"),
        sample_test_cases=_test_cases(raw.get("sample-test-cases")),
        hidden_test_cases=_test_cases(raw.get("hidden-test-cases")),
        solution=raw.get("solution"),
    )
