# jobs.py

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from batch_summarize import BatchSummarizer
from config import DEFERRAL_BATCH_SIZE, EPIC_MIN_CONTEXT_CHARS, MIN_CONTEXT_CHARS, ORCHESTRATOR_BATCH_SIZE
from orchestrator import BatchOrchestrator, run_plan
from prompts import (
    DEFERRAL_INSTRUCTION,
    EPIC_BATCH_INSTRUCTIONS,
    MERGED_BATCH_INSTRUCTIONS,
    PERSPECTIVES,
    build_merged_prompt,
    build_single_epic_prompt,
)
from schema_models import BatchOptions, TaskPlan
from task_builder import (
    Record,
    build_context,
    build_merge_tasks,
    build_single_tasks,
    field_value,
)

log = logging.getLogger("tasks")

# Logical field -> accepted header names; first header present in the row wins.
COLUMN_MAPPINGS: Dict[str, List[str]] = {
    "key": ["Key", "Issue Key"],
    "parentKey": ["Parent Key"],
    "issueType": ["Issue Type"],
    "summary": ["Summary", "Epic Summary"],
    "epicName": ["Epic Name"],
    "piObjective": ["PI Objective"],
    "benefitHypothesis": ["Benefit Hypothesis"],
    "acceptanceCriteria": ["Acceptance Criteria"],
    "initiativeTitle": ["Initiative Title", "Program Initiative"],
    "initiativeDescription": ["Initiative Description"],
    "ragNote": ["RAG Note"],
}

EPIC_FIELDS = [
    ("summary", "Epic Summary"),
    ("piObjective", "PI Objective"),
    ("benefitHypothesis", "Benefit Hypothesis"),
    ("acceptanceCriteria", "Acceptance Criteria"),
]

MERGED_SINGLE_FIELDS = [
    ("initiativeTitle", "Initiative"),
    ("initiativeDescription", "Description"),
    ("epicName", "Epic"),
    ("summary", "Summary"),
    ("piObjective", "PI Objective"),
    ("benefitHypothesis", "Benefit"),
    ("acceptanceCriteria", "Acceptance"),
]

MERGED_CHILD_FIELDS = [
    ("epicName", "Epic Name"),
    ("summary", "Summary"),
    ("piObjective", "PI Objective"),
    ("benefitHypothesis", "Benefit"),
    ("acceptanceCriteria", "Acceptance"),
]

DEFERRAL_OUTPUT_COLUMN = "RAG Note - AI Summary"


class JobError(Exception):
    pass


class SummaryJob(BaseModel):
    """A built plan plus everything needed to run it and where its text lands."""

    name: str
    output_column: str
    instruction: str
    batch_size: int
    plan: TaskPlan


def normalize_row(row: Mapping[str, Any], mappings: Mapping[str, Sequence[str]] = COLUMN_MAPPINGS) -> Dict[str, str]:
    """Map a header-keyed row onto logical field names. Missing columns read as ''."""
    out: Dict[str, str] = {}
    for name, headers in mappings.items():
        out[name] = ""
        for h in headers:
            if h in row:
                out[name] = field_value(row, h)
                break
    return out


def require_column(rows: Sequence[Mapping[str, Any]], name: str) -> None:
    headers = COLUMN_MAPPINGS[name]
    if rows and not any(h in row for row in rows for h in headers):
        raise JobError(f"Could not find column. Missing: [{', '.join(headers)}]")


def _is_epic(rec: Record) -> bool:
    return field_value(rec, "issueType") == "Epic"


# -----------------------------------------------------------------------------
# Epic-level perspectives
# -----------------------------------------------------------------------------
def epic_context(rec: Record) -> str:
    key = field_value(rec, "key")
    parent = field_value(rec, "parentKey")
    title = field_value(rec, "initiativeTitle")
    description = field_value(rec, "initiativeDescription")

    if parent and (title or description):
        text = f"=== OVERALL INITIATIVE (Parent: {parent}) ===\n"
        text += build_context(rec, [("initiativeTitle", "Initiative"), ("initiativeDescription", "Description")])
        text += f"\n=== THIS PI'S EPIC ({key}) ===\n"
    else:
        text = f"=== EPIC {key} (No Parent Initiative) ===\n"
    return text + build_context(rec, EPIC_FIELDS)


def epic_perspective_job(rows: Sequence[Mapping[str, Any]], perspective: str) -> SummaryJob:
    require_column(rows, "issueType")
    records = [normalize_row(r) for r in rows]
    plan = build_single_tasks(
        records,
        key_field="key",
        context_for=epic_context,
        prompt_for=lambda key, rec, ctx: ctx,
        min_context_chars=EPIC_MIN_CONTEXT_CHARS,
        include=_is_epic,
    )
    return SummaryJob(
        name=f"epic-{perspective.lower()}",
        output_column=f"{perspective} Perspective",
        instruction=EPIC_BATCH_INSTRUCTIONS[perspective],
        batch_size=ORCHESTRATOR_BATCH_SIZE,
        plan=plan,
    )


# -----------------------------------------------------------------------------
# Initiative-level (merged) perspectives
# -----------------------------------------------------------------------------
def merged_perspective_job(rows: Sequence[Mapping[str, Any]], perspective: str) -> SummaryJob:
    require_column(rows, "issueType")
    require_column(rows, "parentKey")
    records = [normalize_row(r) for r in rows]

    def _merge_prompt(parent_key: str, children: Sequence[Record], context: str) -> str:
        first = children[0]
        return build_merged_prompt(
            field_value(first, "initiativeTitle") or "Unknown Initiative",
            parent_key,
            field_value(first, "initiativeDescription"),
            context,
            perspective,
        )

    plan = build_merge_tasks(
        records,
        parent_field="parentKey",
        child_key_field="key",
        child_fields=MERGED_CHILD_FIELDS,
        single_context_for=lambda rec: build_context(rec, MERGED_SINGLE_FIELDS),
        single_prompt_for=lambda key, rec, ctx: build_single_epic_prompt(key, ctx, perspective),
        merge_prompt_for=_merge_prompt,
        min_context_chars=MIN_CONTEXT_CHARS,
        include=_is_epic,
    )
    return SummaryJob(
        name=f"merged-{perspective.lower()}",
        output_column=f"Merged {perspective} Perspective",
        instruction=MERGED_BATCH_INSTRUCTIONS[perspective],
        batch_size=ORCHESTRATOR_BATCH_SIZE,
        plan=plan,
    )


# -----------------------------------------------------------------------------
# PI deferral notes
# -----------------------------------------------------------------------------
def _has_note(rec: Record) -> bool:
    note = field_value(rec, "ragNote")
    return bool(note) and note.lower() != "n/a"


def deferral_job(rows: Sequence[Mapping[str, Any]]) -> SummaryJob:
    require_column(rows, "ragNote")
    records = [normalize_row(r) for r in rows]
    # Notes are per row; two rows for the same issue can carry different notes.
    plan = build_single_tasks(
        records,
        key_field=None,
        context_for=lambda rec: field_value(rec, "ragNote"),
        prompt_for=lambda key, rec, ctx: ctx,
        min_context_chars=0,
        include=_has_note,
    )
    return SummaryJob(
        name="deferrals",
        output_column=DEFERRAL_OUTPUT_COLUMN,
        instruction=DEFERRAL_INSTRUCTION,
        batch_size=DEFERRAL_BATCH_SIZE,
        plan=plan,
    )


JobBuilder = Callable[[Sequence[Mapping[str, Any]]], SummaryJob]

JOBS: Dict[str, JobBuilder] = {
    "deferrals": deferral_job,
}
for _p in PERSPECTIVES:
    JOBS[f"epic-{_p.lower()}"] = lambda rows, p=_p: epic_perspective_job(rows, p)
    JOBS[f"merged-{_p.lower()}"] = lambda rows, p=_p: merged_perspective_job(rows, p)

# Composite jobs run their parts in order against the same rows.
COMPOSITE_JOBS: Dict[str, List[str]] = {
    "readout": ["epic-business", "epic-technical", "merged-business", "merged-technical"],
}


def job_names() -> List[str]:
    return sorted(JOBS) + sorted(COMPOSITE_JOBS)


def expand_job(name: str) -> List[str]:
    if name in COMPOSITE_JOBS:
        return list(COMPOSITE_JOBS[name])
    if name in JOBS:
        return [name]
    raise JobError(f"Unknown job '{name}'. Choose one of: {', '.join(job_names())}")


def run_job(
    job: SummaryJob,
    rows: List[Dict[str, Any]],
    summarizer: Optional[BatchSummarizer] = None,
    *,
    batch_size: Optional[int] = None,
    options: Optional[BatchOptions] = None,
) -> Dict[str, str]:
    """Run one job and write its text into `rows` (row refs are list indices)."""
    if not job.plan.tasks:
        log.warning(f"[tasks] {job.name}: no rows with sufficient data were found.")
        return {}

    def _write(ref: int, value: str) -> None:
        rows[ref][job.output_column] = value

    orchestrator = BatchOrchestrator(summarizer, batch_size=batch_size or job.batch_size)
    return run_plan(job.plan, job.instruction, _write, orchestrator=orchestrator, options=options)
