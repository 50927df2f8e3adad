"""
Best-effort step execution for side effects that must not abort a workflow.
"""

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx

from castops.db.helpers import DatabaseError
from castops.infrastructure.observability.logging import log_side_effect
from castops.services.calendar.google_client import GoogleCalendarError
from castops.services.notion.client import NotionError
from castops.services.slack.client import SlackError

T = TypeVar("T")

# Failures a side-effect step is allowed to absorb
STEP_ERRORS: tuple[type[Exception], ...] = (
    SlackError,
    GoogleCalendarError,
    NotionError,
    DatabaseError,
    httpx.HTTPError,
)


@dataclass(slots=True)
class StepResult(Generic[T]):
    ok: bool
    value: T
    error: str | None = None


async def best_effort(step: str, awaitable: Awaitable[T], default: T, **context: Any) -> StepResult[T]:
    """
    Await ``awaitable``; on an adapter or storage failure log it under
    ``step`` with ``context`` and return ``default`` instead.
    """
    try:
        value = await awaitable
    except STEP_ERRORS as e:
        log_side_effect(step, ok=False, error=str(e), **context)
        return StepResult(ok=False, value=default, error=str(e))

    log_side_effect(step, ok=True, **context)
    return StepResult(ok=True, value=value)
