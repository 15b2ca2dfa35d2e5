# activity_log.py

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator

log = logging.getLogger("activity")


def _summarize_result(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, (list, tuple)):
        return f"Array with {len(result)} items"
    if isinstance(result, dict):
        return f"Object with keys: {', '.join(list(map(str, result))[:3])}"
    return str(result)[:100]


@contextmanager
def log_activity(name: str, **params: Any) -> Iterator[Dict[str, Any]]:
    """
    Log one run of `name`: session id, parameters, status, duration, error.
    The yielded dict may receive a "result" entry to include in the summary line.
    Exceptions are logged and re-raised.
    """
    session_id = uuid.uuid4().hex[:8]
    record: Dict[str, Any] = {"session_id": session_id}
    start = time.monotonic()
    log.info(f"[activity] {name} started session={session_id} params={params}")
    try:
        yield record
    except Exception as e:
        elapsed = time.monotonic() - start
        log.error(f"[activity] {name} ERROR session={session_id} duration={elapsed:.2f}s error={e}")
        raise
    elapsed = time.monotonic() - start
    summary = _summarize_result(record.get("result"))
    log.info(
        f"[activity] {name} SUCCESS session={session_id} duration={elapsed:.2f}s"
        + (f" result={summary}" if summary else "")
    )
