# batch_summarize.py

import json
import logging
import time
from typing import Any, Iterator, List, Optional, Sequence

from config import CHUNK_DELAY_SECONDS
from gemini_client import GeminiClient, preview
from json_recovery import parse_json_array
from prompts import BATCH_ITEM, BATCH_USER
from schema_models import BatchOptions, CallResult, ErrorKind

log = logging.getLogger("batch")


def default_batch_options() -> BatchOptions:
    return BatchOptions()

# -----------------------------------------------------------------------------
# Prompt + response helpers
# -----------------------------------------------------------------------------
def build_batch_prompt(texts: Sequence[str], instruction: str) -> str:
    count = len(texts)
    items = "\n".join(
        BATCH_ITEM.format(index=i, count=count, text=t) for i, t in enumerate(texts, start=1)
    )
    return BATCH_USER.format(instruction=instruction, count=count, items=items)


def _as_result(item: Any) -> CallResult:
    if isinstance(item, str):
        return CallResult.success(item.strip())
    if item is None:
        return CallResult.failure(ErrorKind.FORMAT_INVALID, "null item")
    if isinstance(item, (int, float, bool)):
        return CallResult.success(str(item))
    return CallResult.success(json.dumps(item, ensure_ascii=False))


def reconcile_count(items: List[Any], expected: int, texts: Sequence[str] = ()) -> List[CallResult]:
    """Force the parsed array to exactly `expected` entries (truncate or pad)."""
    results = [_as_result(it) for it in items]
    if len(results) == expected:
        log.info(f"[batch] Batch successful: {expected} summaries generated")
        return results
    if len(results) > expected:
        log.warning(
            f"[batch] Truncating {len(results) - expected} extra summaries "
            f"(expected {expected}, got {len(results)}). "
            f"First inputs: {preview(list(texts[:3]), 200)} First outputs: {preview(items[:3], 200)}"
        )
        return results[:expected]
    log.warning(
        f"[batch] Too few summaries: expected {expected}, got {len(results)}; padding the tail. "
        f"First inputs: {preview(list(texts[:3]), 200)}"
    )
    missing = expected - len(results)
    return results + [CallResult.failure(ErrorKind.INCOMPLETE) for _ in range(missing)]


def _chunked(texts: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(texts), size):
        yield texts[start:start + size]

# -----------------------------------------------------------------------------
# Batch client
# -----------------------------------------------------------------------------
class BatchSummarizer:
    """One request per chunk of texts; always returns one result per input text."""

    def __init__(self, client: Optional[GeminiClient] = None, chunk_delay_seconds: float = CHUNK_DELAY_SECONDS):
        self.client = client or GeminiClient()
        self.chunk_delay_seconds = chunk_delay_seconds

    def summarize_batch_results(
        self,
        texts: Sequence[str],
        instruction: str,
        options: Optional[BatchOptions] = None,
    ) -> List[CallResult]:
        texts = list(texts or [])
        if not texts:
            return []
        opts = options or default_batch_options()

        if not self.client.has_credentials:
            log.error("[batch] GEMINI_API_KEY is not configured; no requests sent.")
            return [CallResult.failure(ErrorKind.AUTH_MISSING) for _ in texts]

        chunks = list(_chunked(texts, opts.chunk_size))
        if len(chunks) > 1:
            log.info(f"[batch] Splitting {len(texts)} item(s) into {len(chunks)} chunk(s) of <= {opts.chunk_size}")

        results: List[CallResult] = []
        for ci, chunk in enumerate(chunks, start=1):
            if ci > 1 and self.chunk_delay_seconds > 0:
                time.sleep(self.chunk_delay_seconds)
            log.debug(f"[chunk {ci}/{len(chunks)}] {len(chunk)} item(s)")
            results.extend(self._summarize_chunk(chunk, instruction, opts))
        return results

    def _summarize_chunk(self, texts: Sequence[str], instruction: str, opts: BatchOptions) -> List[CallResult]:
        expected = len(texts)
        prompt = build_batch_prompt(texts, instruction)
        raw = self.client.complete(prompt, opts.model, opts.generation_config())
        if not raw.ok:
            log.error(f"[batch] Request failed ({raw.kind.value}); marking {expected} item(s).")
            return [CallResult.failure(raw.kind, raw.detail) for _ in texts]

        log.debug(f"[batch] Raw AI response: {preview(raw.value, 500)}")
        parsed = parse_json_array(raw.value)
        if parsed is None:
            log.error(f"[batch] AI response is not a parseable JSON array: {preview(raw.value, 500)}")
            return [CallResult.failure(ErrorKind.FORMAT_INVALID) for _ in texts]
        return reconcile_count(parsed, expected, texts)

    def summarize_batch(
        self,
        texts: Sequence[str],
        instruction: str,
        options: Optional[BatchOptions] = None,
    ) -> List[str]:
        """Summaries aligned to `texts`; failures render as placeholder strings."""
        return [r.render() for r in self.summarize_batch_results(texts, instruction, options)]


def summarize_batch(texts: Sequence[str], instruction: str, options: Optional[BatchOptions] = None,
                    summarizer: Optional[BatchSummarizer] = None) -> List[str]:
    """Module-level convenience wrapper around BatchSummarizer.summarize_batch."""
    return (summarizer or BatchSummarizer()).summarize_batch(texts, instruction, options)
