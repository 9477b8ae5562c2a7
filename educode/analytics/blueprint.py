"""
Content blueprint builder.

A blueprint is the ordered list of gradable sub-units of a course (or unit),
each tagged with the modalities a student must submit to complete it. It is
the denominator for every completion percentage, so a sub-unit with no mcq and
no coding content never enters it.
"""

from typing import Iterable, List, Optional

from pydantic import BaseModel

from educode.content.tree import CourseTree, SubUnitNode, UnitNode


class BlueprintItem(BaseModel):
    sub_unit_id: str
    unit_id: str
    title: str
    has_mcq: bool
    has_coding: bool


def _items(sub_units: Iterable[SubUnitNode], sub_type: Optional[str]) -> List[BlueprintItem]:
    items = []
    for sub_unit in sub_units:
        if sub_type is not None and sub_unit.sub_type != sub_type:
            continue
        has_mcq, has_coding = sub_unit.has_mcq, sub_unit.has_coding
        if not (has_mcq or has_coding):
            continue
        items.append(BlueprintItem(
            sub_unit_id=sub_unit.sub_unit_id,
            unit_id=sub_unit.unit_id,
            title=sub_unit.title,
            has_mcq=has_mcq,
            has_coding=has_coding,
        ))
    return items


def build_blueprint(tree: CourseTree, sub_type: Optional[str] = None) -> List[BlueprintItem]:
    """Gradable items across all units; ``sub_type=None`` keeps every subtype"""
    return _items(tree.iter_sub_units(), sub_type)


def build_unit_blueprint(unit: UnitNode, sub_type: Optional[str] = None) -> List[BlueprintItem]:
    return _items(unit.sub_units, sub_type)
