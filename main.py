# main.py

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

from activity_log import log_activity
from batch_summarize import BatchSummarizer, default_batch_options
from config import GeminiSettings, LOG_LEVEL, LOG_TIMESTAMP
from gemini_client import GeminiClient
from jobs import JOBS, JobError, expand_job, job_names, run_job
from schema_models import PLACEHOLDERS

DATA = Path("data")

log = logging.getLogger("main")

# rendered placeholder text -> error kind name
_PLACEHOLDER_KINDS = {text: kind.value for kind, text in PLACEHOLDERS.items()}


def setup_logging(level: str = LOG_LEVEL, timestamps: bool = LOG_TIMESTAMP) -> None:
    fmt = "%(levelname)s %(name)s: %(message)s"
    if timestamps:
        fmt = "%(asctime)s " + fmt
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=fmt)


def read_rows(path: Path) -> List[Dict[str, Any]]:
    """A JSON array of row objects (header -> cell value)."""
    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValueError(f"{path} must contain a JSON array of objects")
    return rows


def write_rows(rows: List[Dict[str, Any]], path: Path):
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
        return True, f"Saved {len(rows)} row(s) → {path}"
    except OSError as e:
        return False, f"Failed to write {path}: {e}"


def _default_output(input_path: Path, job: str) -> Path:
    return DATA / f"{input_path.stem}.{job}.json"


def build_summarizer(model: Optional[str] = None) -> BatchSummarizer:
    settings = GeminiSettings.from_env()
    if model:
        settings = settings.model_copy(update={"model": model})
    return BatchSummarizer(GeminiClient(settings))


def run(
    rows: List[Dict[str, Any]],
    job: str,
    summarizer: BatchSummarizer,
    *,
    batch_size: Optional[int] = None,
    chunk_size: Optional[int] = None,
) -> Counter:
    """Run a job (or each part of a composite job) in place on `rows`; returns placeholder/ok counts."""
    options = default_batch_options()
    if chunk_size:
        options = options.model_copy(update={"chunk_size": chunk_size})

    outcome: Counter = Counter()
    for name in expand_job(job):
        built = JOBS[name](rows)
        with log_activity(name, rows=len(rows), tasks=len(built.plan)) as activity:
            resolved = run_job(built, rows, summarizer, batch_size=batch_size, options=options)
            activity["result"] = list(resolved.values())
        outcome.update(_outcome_kinds(resolved))
    return outcome


def _outcome_kinds(resolved: Dict[str, str]) -> Counter:
    return Counter(_PLACEHOLDER_KINDS.get(text, "ok") for text in resolved.values())


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Batch AI summaries for PI readout rows.")
    parser.add_argument("--input", required=True, type=Path, help="JSON array of row objects")
    parser.add_argument("--job", required=True, choices=job_names())
    parser.add_argument("--output", type=Path, default=None, help="where to write the updated rows")
    parser.add_argument("--batch-size", type=int, default=None, help="tasks per orchestrator batch")
    parser.add_argument("--chunk-size", type=int, default=None, help="items per API request")
    parser.add_argument("--model", default=None)
    args = parser.parse_args(argv)

    setup_logging()

    try:
        rows = read_rows(args.input)
    except (OSError, ValueError) as e:
        log.error(f"[main] Could not read {args.input}: {e}")
        return 1
    log.info(f"[main] Loaded {len(rows)} row(s) from {args.input}")

    try:
        with log_activity(args.job, input=str(args.input), model=args.model) as activity:
            outcome = run(
                rows,
                args.job,
                build_summarizer(args.model),
                batch_size=args.batch_size,
                chunk_size=args.chunk_size,
            )
            activity["result"] = dict(outcome)
    except (JobError, ValueError) as e:
        log.error(f"[main] {args.job} failed: {e}")
        return 1

    ok, msg = write_rows(rows, args.output or _default_output(args.input, args.job))
    if not ok:
        log.error(f"[main] {msg}")
        return 1
    log.info(f"[main] {msg}")
    log.info(f"[main] Outcome: {dict(outcome)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
