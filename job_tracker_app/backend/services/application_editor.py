"""
Immutable edits of a single record's tags and interview stages.

Each helper returns a new ``JobApplication``; the input is never modified.
"""
from typing import Optional

from .. import schemas


def add_tag(record: schemas.JobApplication, tag: str) -> schemas.JobApplication:
    """Append ``tag`` (trimmed). Blank and duplicate tags leave the record as is."""
    tag = tag.strip()
    if not tag or tag in record.tags:
        return record
    return record.model_copy(update={"tags": [*record.tags, tag]})


def remove_tag(record: schemas.JobApplication, tag: str) -> schemas.JobApplication:
    if tag not in record.tags:
        return record
    return record.model_copy(update={"tags": [t for t in record.tags if t != tag]})


def add_interview_stage(
    record: schemas.JobApplication, stage: str, date: str, notes: Optional[str] = None
) -> schemas.JobApplication:
    if not stage or not stage.strip() or not date or not date.strip():
        raise ValueError("Interview stage needs both a name and a date")
    new_stage = schemas.InterviewStage(stage=stage, date=date, notes=notes or None)
    return record.model_copy(update={"interview_stages": [*record.interview_stages, new_stage]})


def remove_interview_stage(record: schemas.JobApplication, index: int) -> schemas.JobApplication:
    if index < 0 or index >= len(record.interview_stages):
        raise IndexError(f"No interview stage at position {index}")
    stages = [s for i, s in enumerate(record.interview_stages) if i != index]
    return record.model_copy(update={"interview_stages": stages})
