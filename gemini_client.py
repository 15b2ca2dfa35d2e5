# gemini_client.py

import json
import logging
import re
from typing import Any, Dict, Optional

import requests

from config import GeminiSettings, MIN_WORDS, SHORT_INPUT_WORDS
from prompts import SINGLE_INPUT_DELIMITER
from schema_models import CallResult, ErrorKind

log = logging.getLogger("gemini")

# -----------------------------------------------------------------------------
# Redaction helpers (keys travel in the query string)
# -----------------------------------------------------------------------------
_KEY_PARAM_RE = re.compile(r"([?&]key=)[^&\s]+")
_GOOGLE_KEY_RE = re.compile(r"\bAIza[0-9A-Za-z\-_]{20,}\b")
_LETTER_RE = re.compile(r"[A-Za-z]")

def redact(s: object) -> str:
    """Strip API keys out of anything headed for the logs."""
    if s is None:
        return "None"
    if not isinstance(s, str):
        s = str(s)
    s = _KEY_PARAM_RE.sub(r"\1[redacted]", s)
    return _GOOGLE_KEY_RE.sub("[redacted]", s)

def preview(s: object, n: int = 400) -> str:
    """Safe preview w/ redaction and length cap."""
    if s is None:
        return "None"
    if not isinstance(s, str):
        try:
            s = json.dumps(s, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(s)
    s = redact(s)
    return s[:n] + ("..." if len(s) > n else "")

# -----------------------------------------------------------------------------
# Input screening
# -----------------------------------------------------------------------------
def screen_input(text: Optional[str]) -> Optional[CallResult]:
    """
    Decide locally whether an input is worth a network call.
    Returns a ready result when it is not, None when the call should go out.
    """
    if text is None or not text.strip() or text.strip() == "N/A":
        return CallResult.failure(ErrorKind.NOT_APPLICABLE, "empty input")
    words = text.split()
    if len(words) < MIN_WORDS or not _LETTER_RE.search(text):
        return CallResult.failure(
            ErrorKind.NOT_APPLICABLE,
            f"degenerate input (words={len(words)}, has_letters={bool(_LETTER_RE.search(text))})",
        )
    if len(words) < SHORT_INPUT_WORDS:
        return CallResult.success(text.strip())
    return None

def extract_candidate_text(body: Any) -> Optional[str]:
    """candidates[0].content.parts[0].text, or None for any other shape."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None

# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------
class GeminiClient:
    """
    Thin generateContent client. Every public call returns a value; transport
    problems come back as failed CallResults instead of exceptions.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None, session: Optional[Any] = None):
        self.settings = settings or GeminiSettings.from_env()
        self.session = session or requests.Session()

    @property
    def has_credentials(self) -> bool:
        return self.settings.has_credentials

    def _url(self, model: str) -> str:
        return f"{self.settings.api_base_url.rstrip('/')}/models/{model}:generateContent"

    def complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> CallResult:
        """One POST with the prompt as-is. No screening, no retries."""
        if not self.has_credentials:
            log.error("[gemini] GEMINI_API_KEY is not configured.")
            return CallResult.failure(ErrorKind.AUTH_MISSING)

        model = model or self.settings.model
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config if generation_config is not None
            else self.settings.generation_config(),
        }
        log.debug(f"[gemini] POST model={model} prompt_len={len(prompt)}")

        try:
            resp = self.session.post(
                self._url(model),
                params={"key": self.settings.api_key},
                json=payload,
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as e:
            log.error(f"[gemini] Failed to call Gemini API: {redact(e)}")
            return CallResult.failure(ErrorKind.CONNECTION_ERROR, redact(e))
        except Exception as e:
            log.error(f"[gemini] Unexpected error calling Gemini API: {redact(e)}")
            return CallResult.failure(ErrorKind.CONNECTION_ERROR, f"{type(e).__name__}: {redact(e)}")

        if resp.status_code != 200:
            log.error(f"[gemini] API status={resp.status_code} body={preview(resp.text, 300)}")
            return CallResult.failure(ErrorKind.REQUEST_FAILED, f"HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            log.error(f"[gemini] Response body is not JSON: {preview(resp.text, 300)}")
            return CallResult.failure(ErrorKind.REQUEST_FAILED, f"undecodable body: {e}")

        text = extract_candidate_text(body)
        if text is None:
            log.warning(f"[gemini] No candidate text in response: {preview(body, 300)}")
            return CallResult.failure(ErrorKind.EMPTY_RESPONSE)
        return CallResult.success(text.strip())

    def generate_result(
        self,
        input_text: str,
        instruction: str,
        model: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> CallResult:
        screened = screen_input(input_text)
        if screened is not None:
            log.debug(f"[gemini] Skipping API call: {screened.detail or 'short input returned verbatim'}")
            return screened
        return self.complete(instruction + SINGLE_INPUT_DELIMITER + input_text, model, generation_config)

    def generate(
        self,
        input_text: str,
        instruction: str,
        model: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Summarize one input; returns the summary or a readable placeholder."""
        return self.generate_result(input_text, instruction, model, generation_config).render()


def summarize(text: str, prompt: str, model: Optional[str] = None,
              generation_args: Optional[Dict[str, Any]] = None,
              client: Optional[GeminiClient] = None) -> str:
    """Module-level convenience wrapper around GeminiClient.generate."""
    return (client or GeminiClient()).generate(text, prompt, model, generation_args)
