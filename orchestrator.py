# orchestrator.py

import logging
import math
import time
from collections import Counter
from typing import Callable, Dict, Optional

from batch_summarize import BatchSummarizer
from config import BATCH_DELAY_SECONDS, ORCHESTRATOR_BATCH_SIZE
from schema_models import BatchOptions, CallResult, ErrorKind, RowRef, TaskPlan, TaskState

log = logging.getLogger("orchestrator")

ProgressFn = Callable[[int, int, int, int], None]  # (batch_num, total_batches, done, total)
WriteFn = Callable[[RowRef, str], None]


def _log_progress(batch_num: int, total_batches: int, done: int, total: int) -> None:
    pct = (done / total * 100.0) if total else 100.0
    log.info(f"[orchestrator] Batch {batch_num}/{total_batches} done. Overall: {done}/{total} ({pct:.1f}%)")


class BatchOrchestrator:
    """
    Drives a TaskPlan through the batch client in fixed-size batches and keeps
    the key -> result map. Sequential: one batch in flight at a time.
    """

    def __init__(
        self,
        summarizer: Optional[BatchSummarizer] = None,
        *,
        batch_size: int = ORCHESTRATOR_BATCH_SIZE,
        batch_delay_seconds: float = BATCH_DELAY_SECONDS,
        progress: Optional[ProgressFn] = _log_progress,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.summarizer = summarizer or BatchSummarizer()
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.progress = progress

    def run(self, plan: TaskPlan, instruction: str, options: Optional[BatchOptions] = None) -> Dict[str, CallResult]:
        results: Dict[str, CallResult] = {}

        for task in plan.direct_tasks:
            results[task.key] = CallResult.success(task.direct_value)
            task.state = TaskState.RESOLVED

        pending = plan.ai_tasks
        for task in pending:
            task.state = TaskState.QUEUED
        if not pending:
            log.info("[orchestrator] No tasks need AI generation.")
            return results

        total_batches = math.ceil(len(pending) / self.batch_size)
        log.info(f"[orchestrator] Processing {len(pending)} task(s) in {total_batches} batch(es) of <= {self.batch_size}")

        done = 0
        for bi, start in enumerate(range(0, len(pending), self.batch_size), start=1):
            if bi > 1 and self.batch_delay_seconds > 0:
                time.sleep(self.batch_delay_seconds)
            batch = pending[start:start + self.batch_size]
            for task in batch:
                task.state = TaskState.AI_CALLED

            batch_results = self.summarizer.summarize_batch_results([t.prompt for t in batch], instruction, options)
            if len(batch_results) != len(batch):
                log.error(f"[orchestrator] Batch {bi} mismatch: expected {len(batch)}, got {len(batch_results)}")
                batch_results = [
                    CallResult.failure(ErrorKind.BATCH_MISMATCH, f"expected {len(batch)}, got {len(batch_results)}")
                    for _ in batch
                ]

            for task, res in zip(batch, batch_results):
                results[task.key] = res
                task.state = TaskState.RESOLVED

            done += len(batch)
            if self.progress is not None:
                self.progress(bi, total_batches, done, len(pending))

        log.info(f"[orchestrator] Completed {len(pending)} AI task(s); outcome: {dict(summarize_outcomes(results))}")
        return results


def summarize_outcomes(results: Dict[str, CallResult]) -> Counter:
    return Counter("ok" if r.ok else r.kind.value for r in results.values())


def resolve(plan: TaskPlan, results: Dict[str, CallResult]) -> Dict[str, str]:
    """Render the final key -> text map. A key with no result is a bug, not a placeholder."""
    missing = [t.key for t in plan.tasks if t.key not in results]
    if missing:
        raise KeyError(f"Tasks left unresolved: {missing[:5]}")
    return {t.key: results[t.key].render() for t in plan.tasks}


def scatter(plan: TaskPlan, resolved: Dict[str, str], write: WriteFn) -> int:
    """Write every task's text to each of its origin rows. Returns the number of writes."""
    writes = 0
    for key, rows in plan.row_map.items():
        value = resolved[key]
        for row in rows:
            write(row, value)
            writes += 1
    return writes


def run_plan(
    plan: TaskPlan,
    instruction: str,
    write: WriteFn,
    *,
    orchestrator: Optional[BatchOrchestrator] = None,
    options: Optional[BatchOptions] = None,
) -> Dict[str, str]:
    """Build results for every task, scatter them, and hand back the rendered map."""
    orchestrator = orchestrator or BatchOrchestrator()
    resolved = resolve(plan, orchestrator.run(plan, instruction, options))
    writes = scatter(plan, resolved, write)
    log.info(f"[orchestrator] Wrote {writes} cell(s) for {len(resolved)} task(s)")
    return resolved
