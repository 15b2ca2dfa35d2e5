# test_orchestrator.py

import pytest

from batch_summarize import BatchSummarizer
from orchestrator import BatchOrchestrator, resolve, run_plan, scatter, summarize_outcomes
from schema_models import CallResult, ErrorKind, Task, TaskPlan, TaskState


class RecordingSummarizer:
    """Answers every prompt with 'S:<prompt>' and remembers each batch it saw."""

    def __init__(self, drop_last=False):
        self.batches = []
        self.drop_last = drop_last

    def summarize_batch_results(self, texts, instruction, options=None):
        self.batches.append(list(texts))
        out = [CallResult.success(f"S:{t}") for t in texts]
        return out[:-1] if self.drop_last else out


def _plan(n_ai, n_direct=0):
    plan = TaskPlan()
    for i in range(n_ai):
        plan.add(Task(key=f"k{i}", prompt=f"p{i}", origin_rows=[i]))
    for j in range(n_direct):
        plan.add(Task(key=f"d{j}", direct_value="N/A*", origin_rows=[100 + j], state=TaskState.SKIPPED))
    return plan


def test_runs_ai_tasks_in_fixed_size_batches(sleeps):
    summarizer = RecordingSummarizer()
    progress = []
    orch = BatchOrchestrator(
        summarizer, batch_size=2, batch_delay_seconds=0.5,
        progress=lambda *args: progress.append(args),
    )
    plan = _plan(5)
    results = orch.run(plan, "instr")

    assert summarizer.batches == [["p0", "p1"], ["p2", "p3"], ["p4"]]
    assert results["k3"].value == "S:p3"
    assert progress == [(1, 3, 2, 5), (2, 3, 4, 5), (3, 3, 5, 5)]
    assert sleeps == [0.5, 0.5]
    assert all(t.state == TaskState.RESOLVED for t in plan.tasks)


def test_direct_tasks_never_reach_the_model():
    summarizer = RecordingSummarizer()
    plan = _plan(1, n_direct=2)
    results = BatchOrchestrator(summarizer, progress=None).run(plan, "instr")
    assert summarizer.batches == [["p0"]]
    assert results["d0"].render() == "N/A*"
    assert results["d1"].ok


def test_no_ai_tasks_means_no_calls():
    summarizer = RecordingSummarizer()
    results = BatchOrchestrator(summarizer).run(_plan(0, n_direct=1), "instr")
    assert summarizer.batches == []
    assert list(results) == ["d0"]


def test_length_mismatch_fails_the_whole_batch():
    plan = _plan(3)
    results = BatchOrchestrator(RecordingSummarizer(drop_last=True), batch_size=3, progress=None).run(plan, "i")
    assert {k: r.kind for k, r in results.items()} == {
        "k0": ErrorKind.BATCH_MISMATCH,
        "k1": ErrorKind.BATCH_MISMATCH,
        "k2": ErrorKind.BATCH_MISMATCH,
    }
    assert results["k0"].render() == "Error: AI response mismatch."
    assert summarize_outcomes(results) == {"batch_mismatch": 3}


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        BatchOrchestrator(RecordingSummarizer(), batch_size=0)


def test_scatter_writes_every_origin_row():
    plan = TaskPlan()
    plan.add(Task(key="I-1", prompt="p", origin_rows=["r0", "r1", "r4"]))
    plan.add(Task(key="I-2", direct_value="N/A*", origin_rows=["r2"]))
    written = {}
    count = scatter(plan, {"I-1": "merged text", "I-2": "N/A*"}, lambda row, v: written.__setitem__(row, v))
    assert count == 4
    assert written == {"r0": "merged text", "r1": "merged text", "r4": "merged text", "r2": "N/A*"}


def test_resolve_refuses_unresolved_tasks():
    plan = _plan(2)
    with pytest.raises(KeyError):
        resolve(plan, {"k0": CallResult.success("x")})


def test_run_plan_end_to_end_with_http_stub(make_client):
    client, session = make_client('["Summary for zero.", "Summary for one."]')
    plan = _plan(2, n_direct=1)
    rows = {}
    resolved = run_plan(
        plan, "instr", rows.__setitem__,
        orchestrator=BatchOrchestrator(BatchSummarizer(client), progress=None),
    )
    assert resolved == {"k0": "Summary for zero.", "k1": "Summary for one.", "d0": "N/A*"}
    assert rows == {0: "Summary for zero.", 1: "Summary for one.", 100: "N/A*"}
    assert len(session.calls) == 1


def test_run_plan_renders_failures_as_placeholders(make_client):
    client, _ = make_client(500)
    rows = {}
    run_plan(_plan(2), "instr", rows.__setitem__,
             orchestrator=BatchOrchestrator(BatchSummarizer(client), progress=None))
    assert rows == {0: "AI response failed", 1: "AI response failed"}
