# schema_models.py

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from config import BATCH_CHUNK_SIZE, BATCH_MAX_OUTPUT_TOKENS, BATCH_TEMPERATURE

RowRef = Any  # opaque write target supplied by the caller

# --------------------------
# Result type
# --------------------------
class ErrorKind(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    SKIPPED = "skipped"
    AUTH_MISSING = "auth_missing"
    REQUEST_FAILED = "request_failed"
    CONNECTION_ERROR = "connection_error"
    EMPTY_RESPONSE = "empty_response"
    FORMAT_INVALID = "format_invalid"
    INCOMPLETE = "incomplete"
    BATCH_MISMATCH = "batch_mismatch"

# What ends up in the cell when there is no real summary.
PLACEHOLDERS: Dict[ErrorKind, str] = {
    ErrorKind.NOT_APPLICABLE: "N/A",
    ErrorKind.SKIPPED: "N/A*",
    ErrorKind.AUTH_MISSING: "AI key not configured.",
    ErrorKind.REQUEST_FAILED: "AI response failed",
    ErrorKind.CONNECTION_ERROR: "Error: Connecting to AI",
    ErrorKind.EMPTY_RESPONSE: "Response not available.",
    ErrorKind.FORMAT_INVALID: "Error: AI response format invalid",
    ErrorKind.INCOMPLETE: "Error: AI response incomplete",
    ErrorKind.BATCH_MISMATCH: "Error: AI response mismatch.",
}

class CallResult(BaseModel):
    ok: bool
    value: Optional[str] = None
    kind: Optional[ErrorKind] = None
    detail: str = ""

    @model_validator(mode="after")
    def _tagged(self):
        if self.ok:
            assert self.value is not None, "ok result needs a value"
            assert self.kind is None, "ok result cannot carry an error kind"
        else:
            assert self.kind is not None, "failed result needs an error kind"
        return self

    @classmethod
    def success(cls, value: str) -> "CallResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, detail: str = "") -> "CallResult":
        return cls(ok=False, kind=kind, detail=detail)

    def render(self) -> str:
        if self.ok:
            return self.value or ""
        return PLACEHOLDERS[self.kind]

# --------------------------
# Batch options
# --------------------------
class BatchOptions(BaseModel):
    chunk_size: int = Field(default=BATCH_CHUNK_SIZE, ge=1)
    temperature: float = BATCH_TEMPERATURE
    max_output_tokens: int = Field(default=BATCH_MAX_OUTPUT_TOKENS, ge=1)
    model: Optional[str] = None

    def generation_config(self) -> Dict[str, Any]:
        return {"temperature": self.temperature, "maxOutputTokens": self.max_output_tokens}

# --------------------------
# Tasks
# --------------------------
class TaskState(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    QUEUED = "queued"
    AI_CALLED = "ai_called"
    RESOLVED = "resolved"

class Task(BaseModel):
    key: str
    prompt: Optional[str] = None
    direct_value: Optional[str] = None
    origin_rows: List[RowRef]
    state: TaskState = TaskState.PENDING

    @model_validator(mode="after")
    def _one_source(self):
        assert self.key, "Task key required"
        assert (self.prompt is None) != (self.direct_value is None), \
            "Exactly one of prompt/direct_value must be set"
        assert self.origin_rows, "Task needs at least one origin row"
        return self

    @property
    def needs_ai(self) -> bool:
        return self.prompt is not None

class TaskPlan(BaseModel):
    """Ordered tasks for one run; keys are unique, repeated keys merge their rows."""

    tasks: List[Task] = []
    _by_key: Dict[str, Task] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        incoming, self.tasks = list(self.tasks), []
        for t in incoming:
            self.add(t)

    def add(self, task: Task) -> Task:
        existing = self._by_key.get(task.key)
        if existing is None:
            self._by_key[task.key] = task
            self.tasks.append(task)
            return task
        for row in task.origin_rows:
            if row not in existing.origin_rows:
                existing.origin_rows.append(row)
        return existing

    def get(self, key: str) -> Optional[Task]:
        return self._by_key.get(key)

    def __len__(self) -> int:
        return len(self.tasks)

    @property
    def ai_tasks(self) -> List[Task]:
        return [t for t in self.tasks if t.needs_ai]

    @property
    def direct_tasks(self) -> List[Task]:
        return [t for t in self.tasks if not t.needs_ai]

    @property
    def row_map(self) -> Dict[str, List[RowRef]]:
        return {t.key: list(t.origin_rows) for t in self.tasks}
