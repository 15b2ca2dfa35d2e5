# config.py

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

# --- helpers ---
def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")

def _get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default

def _get_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default

def _get_optional_float(name: str) -> Optional[float]:
    v = os.getenv(name)
    if not v:
        return None
    try:
        return float(v)
    except ValueError:
        return None

# --- Auth ---
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")

# --- Endpoint / model ---
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_API_BASE_URL = os.getenv("GEMINI_API_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_REQUEST_TIMEOUT = _get_optional_float("GEMINI_REQUEST_TIMEOUT")  # None = requests default

# --- Generation defaults per call style ---
SINGLE_TEMPERATURE         = _get_float("SINGLE_TEMPERATURE", 0.2)
SINGLE_MAX_OUTPUT_TOKENS   = _get_int("SINGLE_MAX_OUTPUT_TOKENS", 256)
BATCH_TEMPERATURE          = _get_float("BATCH_TEMPERATURE", 0.7)
BATCH_MAX_OUTPUT_TOKENS    = _get_int("BATCH_MAX_OUTPUT_TOKENS", 4096)
FALLBACK_TEMPERATURE       = _get_float("FALLBACK_TEMPERATURE", 0.7)
FALLBACK_MAX_OUTPUT_TOKENS = _get_int("FALLBACK_MAX_OUTPUT_TOKENS", 200)

# --- Batch client chunking ---
BATCH_CHUNK_SIZE    = _get_int("BATCH_CHUNK_SIZE", 20)        # items per request
CHUNK_DELAY_SECONDS = _get_float("CHUNK_DELAY_SECONDS", 1.0)  # pause between chunk requests

# --- Orchestrator batching ---
ORCHESTRATOR_BATCH_SIZE = _get_int("ORCHESTRATOR_BATCH_SIZE", 25)
DEFERRAL_BATCH_SIZE     = _get_int("DEFERRAL_BATCH_SIZE", 10)
BATCH_DELAY_SECONDS     = _get_float("BATCH_DELAY_SECONDS", 0.5)  # pause between orchestrator batches

# --- Fallback caller ---
FALLBACK_MAX_RETRIES     = _get_int("FALLBACK_MAX_RETRIES", 2)  # 2 retries = 3 attempts
FALLBACK_BACKOFF_SECONDS = _get_float("FALLBACK_BACKOFF_SECONDS", 0.5)

# --- Input screening / skip thresholds ---
MIN_WORDS               = _get_int("MIN_WORDS", 2)          # fewer words -> not applicable
SHORT_INPUT_WORDS       = _get_int("SHORT_INPUT_WORDS", 5)  # fewer words -> returned verbatim
MIN_CONTEXT_CHARS       = _get_int("MIN_CONTEXT_CHARS", 50)       # context must be longer to get an AI call
EPIC_MIN_CONTEXT_CHARS  = _get_int("EPIC_MIN_CONTEXT_CHARS", 100)

# --- Logging ---
LOG_LEVEL     = os.getenv("LOG_LEVEL", "INFO")
LOG_TIMESTAMP = _get_bool("LOG_TIMESTAMP", False)


class GeminiSettings(BaseModel):
    """Everything a client needs to talk to the generateContent endpoint."""

    api_key: str = ""
    model: str = GEMINI_MODEL
    api_base_url: str = GEMINI_API_BASE_URL
    request_timeout: Optional[float] = None
    temperature: float = SINGLE_TEMPERATURE
    max_output_tokens: int = SINGLE_MAX_OUTPUT_TOKENS

    @classmethod
    def from_env(cls) -> "GeminiSettings":
        return cls(
            api_key=GEMINI_API_KEY,
            model=GEMINI_MODEL,
            api_base_url=GEMINI_API_BASE_URL,
            request_timeout=GEMINI_REQUEST_TIMEOUT,
            temperature=SINGLE_TEMPERATURE,
            max_output_tokens=SINGLE_MAX_OUTPUT_TOKENS,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def generation_config(self) -> Dict[str, Any]:
        return {"temperature": self.temperature, "maxOutputTokens": self.max_output_tokens}
