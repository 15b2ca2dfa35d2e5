# fallback.py

import logging
import re
from typing import Optional

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from config import (
    FALLBACK_BACKOFF_SECONDS,
    FALLBACK_MAX_OUTPUT_TOKENS,
    FALLBACK_MAX_RETRIES,
    FALLBACK_TEMPERATURE,
)
from gemini_client import GeminiClient, preview

log = logging.getLogger("fallback")

MIN_CHARS = 10     # exclusive
MAX_CHARS = 1200   # exclusive
MAX_WORDS = 60

_EDGE_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_FENCE_RE = re.compile(r"^```.*\n?|\n?```$")
_EMPHASIS_RE = re.compile(r"^\*\*|^\*|\*\*$|\*$")
_BULLET_RE = re.compile(r"[•\-]\s")
_NUMBERED_RE = re.compile(r"^\d+\.\s")


class InvalidResponseError(Exception):
    pass


def clean_response(text: str) -> str:
    """Drop the wrapping artifacts models like to add around a one-liner."""
    cleaned = text.strip()
    cleaned = _EDGE_QUOTES_RE.sub("", cleaned)
    cleaned = _FENCE_RE.sub("", cleaned)
    cleaned = _EMPHASIS_RE.sub("", cleaned)
    return cleaned.strip()


def validation_problem(cleaned: str) -> Optional[str]:
    """Return a short reason when the text breaks the structural rules, else None."""
    words = len(cleaned.split())
    has_bullets = bool(_BULLET_RE.search(cleaned) or _NUMBERED_RE.search(cleaned))
    if not (MIN_CHARS < len(cleaned) < MAX_CHARS) or has_bullets or words > MAX_WORDS:
        return f"length={len(cleaned)}, words={words}, bullets={has_bullets}"
    return None


def generate_with_fallback(
    client: GeminiClient,
    prompt: str,
    fallback: str,
    model: Optional[str] = None,
    *,
    max_retries: int = FALLBACK_MAX_RETRIES,
    backoff_seconds: float = FALLBACK_BACKOFF_SECONDS,
) -> str:
    """
    Ask for one short answer, retrying invalid or failed responses up to
    max_retries times. Returns `fallback` once attempts are exhausted.
    """
    generation_config = {"temperature": FALLBACK_TEMPERATURE, "maxOutputTokens": FALLBACK_MAX_OUTPUT_TOKENS}

    def _attempt() -> str:
        result = client.complete(prompt, model, generation_config)
        if not result.ok:
            raise InvalidResponseError(f"call failed: {result.kind.value} {result.detail}".strip())
        cleaned = clean_response(result.value)
        problem = validation_problem(cleaned)
        if problem:
            raise InvalidResponseError(f"{problem}; text={preview(cleaned, 120)}")
        return cleaned

    def _log_retry(state: RetryCallState) -> None:
        log.warning(f"[fallback] Invalid AI response (attempt {state.attempt_number}): {state.outcome.exception()}")

    def _give_up(state: RetryCallState) -> str:
        log.warning(
            f"[fallback] Giving up after {state.attempt_number} attempt(s): {state.outcome.exception()}; "
            f"using fallback {fallback!r}"
        )
        return fallback

    retryer = Retrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_fixed(backoff_seconds),
        retry=retry_if_exception_type((InvalidResponseError, requests.RequestException)),
        before_sleep=_log_retry,
        retry_error_callback=_give_up,
    )
    return retryer(_attempt)
