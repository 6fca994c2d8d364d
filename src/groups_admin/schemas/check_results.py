"""Per-check votes embedded in automated detection events.

The payload is stored as raw JSON and parsed on read. Parsing either yields a
fully typed list or ``None``; a malformed payload is never coerced into a
default.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class CheckVerdict(str, enum.Enum):
    """Vote cast by a single detection check."""

    SPAM = "spam"
    CLEAN = "clean"


class CheckResult(BaseModel):
    """Outcome of one independent detection check."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    result: CheckVerdict
    confidence: float
    reason: str | None = None
    processing_time_ms: float | None = Field(default=None, alias="processingTimeMs")

    @property
    def is_spam(self) -> bool:
        return self.result is CheckVerdict.SPAM


_CHECK_LIST_ADAPTER = TypeAdapter(list[CheckResult])


def parse_check_results(raw: str | None) -> list[CheckResult] | None:
    """Parse a stored check payload.

    Returns:
        The typed check list, or ``None`` when the payload is absent or does
        not match the expected shape.
    """
    if raw is None or not raw.strip():
        return None
    try:
        return _CHECK_LIST_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        logger.debug("Skipping malformed check payload: %s", exc.errors()[:1])
        return None


def serialize_check_results(checks: Iterable[CheckResult]) -> str:
    """Encode checks into the stored JSON representation."""
    return _CHECK_LIST_ADAPTER.dump_json(list(checks), by_alias=True, exclude_none=True).decode()
