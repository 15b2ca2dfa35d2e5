# task_builder.py

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from config import MIN_CONTEXT_CHARS
from prompts import MERGED_CHILD_HEADER
from schema_models import PLACEHOLDERS, ErrorKind, RowRef, Task, TaskPlan, TaskState

log = logging.getLogger("tasks")

Record = Mapping[str, Any]
FieldSpec = Sequence[Tuple[str, str]]  # (field name, label shown in the prompt)

SKIP_VALUE = PLACEHOLDERS[ErrorKind.SKIPPED]


def field_value(record: Record, name: str) -> str:
    v = record.get(name)
    if v is None:
        return ""
    return str(v).strip()


def build_context(record: Record, fields: FieldSpec) -> str:
    """'Label: value' lines for every non-blank field; blank fields are left out entirely."""
    lines = []
    for name, label in fields:
        v = field_value(record, name)
        if v:
            lines.append(f"{label}: {v}\n")
    return "".join(lines)


def _rows(records: Sequence[Record], row_refs: Optional[Sequence[RowRef]]) -> Iterable[Tuple[RowRef, Record]]:
    if row_refs is not None and len(row_refs) != len(records):
        raise ValueError(f"row_refs has {len(row_refs)} entries for {len(records)} records")
    refs = row_refs if row_refs is not None else range(len(records))
    return zip(refs, records)


def make_task(key: str, prompt: str, context: str, rows: List[RowRef],
              min_context_chars: int, skip_value: str = SKIP_VALUE) -> Task:
    """Prompted task, or a skipped one carrying skip_value when the context is no longer than min_context_chars."""
    if len(context) <= min_context_chars:
        return Task(key=key, direct_value=skip_value, origin_rows=rows, state=TaskState.SKIPPED)
    return Task(key=key, prompt=prompt, origin_rows=rows)


def build_single_tasks(
    records: Sequence[Record],
    *,
    key_field: Optional[str],
    context_for: Callable[[Record], str],
    prompt_for: Callable[[str, Record, str], str],
    min_context_chars: int = MIN_CONTEXT_CHARS,
    skip_value: str = SKIP_VALUE,
    include: Optional[Callable[[Record], bool]] = None,
    row_refs: Optional[Sequence[RowRef]] = None,
) -> TaskPlan:
    """
    One task per record, keyed by the record's own identifier. Records without
    an identifier (or every record, when key_field is None) are keyed by their
    row reference.
    """
    plan = TaskPlan()
    for ref, rec in _rows(records, row_refs):
        if include is not None and not include(rec):
            continue
        key = (field_value(rec, key_field) if key_field else "") or f"row:{ref}"
        context = context_for(rec)
        plan.add(make_task(key, prompt_for(key, rec, context), context, [ref], min_context_chars, skip_value))
    _log_plan("single", plan)
    return plan


def group_by_parent(
    records: Sequence[Record],
    parent_field: str,
    *,
    include: Optional[Callable[[Record], bool]] = None,
    row_refs: Optional[Sequence[RowRef]] = None,
) -> Dict[str, List[Tuple[RowRef, Record]]]:
    """Children grouped under their parent id, in first-seen order. Orphans are dropped."""
    groups: Dict[str, List[Tuple[RowRef, Record]]] = {}
    for ref, rec in _rows(records, row_refs):
        if include is not None and not include(rec):
            continue
        parent = field_value(rec, parent_field)
        if not parent:
            continue
        groups.setdefault(parent, []).append((ref, rec))
    return groups


def children_block(children: Sequence[Record], child_key_field: str, child_fields: FieldSpec) -> str:
    parts = []
    for idx, child in enumerate(children, start=1):
        parts.append(MERGED_CHILD_HEADER.format(index=idx, key=field_value(child, child_key_field)))
        parts.append(build_context(child, child_fields))
    return "".join(parts)


def build_merge_tasks(
    records: Sequence[Record],
    *,
    parent_field: str,
    child_key_field: str,
    child_fields: FieldSpec,
    single_context_for: Callable[[Record], str],
    single_prompt_for: Callable[[str, Record, str], str],
    merge_prompt_for: Callable[[str, Sequence[Record], str], str],
    min_context_chars: int = MIN_CONTEXT_CHARS,
    skip_value: str = SKIP_VALUE,
    include: Optional[Callable[[Record], bool]] = None,
    row_refs: Optional[Sequence[RowRef]] = None,
) -> TaskPlan:
    """
    One task per parent. A parent with a single child is summarised from that
    child's own context; several children are described together and the
    prompt asks for a synthesis. Either way the task fans out to every child row.
    """
    plan = TaskPlan()
    groups = group_by_parent(records, parent_field, include=include, row_refs=row_refs)
    for parent_key, members in groups.items():
        rows = [ref for ref, _ in members]
        children = [rec for _, rec in members]
        if len(children) == 1:
            child = children[0]
            context = single_context_for(child)
            prompt = single_prompt_for(field_value(child, child_key_field) or parent_key, child, context)
        else:
            context = children_block(children, child_key_field, child_fields)
            prompt = merge_prompt_for(parent_key, children, context)
        # Multi-child groups go through the same threshold; a block of bare keys is still skipped.
        plan.add(make_task(parent_key, prompt, context, rows, min_context_chars, skip_value))
    _log_plan("merge", plan)
    return plan


def _log_plan(kind: str, plan: TaskPlan) -> None:
    fanout = sum(len(t.origin_rows) for t in plan.tasks)
    log.info(
        f"[tasks] Built {len(plan)} {kind} task(s): {len(plan.ai_tasks)} need AI, "
        f"{len(plan.direct_tasks)} answered directly, {fanout} row(s) covered"
    )
