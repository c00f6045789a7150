"""Interval domain types."""

from __future__ import annotations

from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from interval_loop.infrastructure.config import (
    DEFAULT_DEBOUNCE_INTERVAL,
    DEFAULT_MAX_LOOP_TIMES,
    DEFAULT_RETRY,
    DEFAULT_RETRY_DEFER,
)

IntervalState = Literal["idle", "running", "paused", "stopped"]


class EventInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    loop_num: int
    loop_max_times: int | None = None
    loop_start_time: float | None = None  # clock() before the action ran
    loop_end_time: float | None = None  # clock() after it returned


EventCallback = Callable[[EventInfo], Any]


class IntervalOptions(BaseModel):
    """Options for an Interval. All durations are in seconds."""

    model_config = ConfigDict(frozen=True)

    # Minimum spacing between the starts of two invocations. If the action
    # takes longer, the next one starts as soon as it finishes.
    debounce_interval: float = Field(default=DEFAULT_DEBOUNCE_INTERVAL, ge=0)
    retry: bool = DEFAULT_RETRY
    # None falls back to debounce_interval
    retry_defer: float | None = Field(default=DEFAULT_RETRY_DEFER, ge=0, validate_default=True)
    # None means no limit
    max_loop_times: int | None = Field(default=DEFAULT_MAX_LOOP_TIMES, ge=1)

    on_start: EventCallback | None = None
    on_pause: EventCallback | None = None
    on_restart: EventCallback | None = None
    on_loop: EventCallback | None = None
    on_looped: Callable[[Any, EventInfo], Any] | None = None
    on_stop: EventCallback | None = None
    on_loop_max_times: EventCallback | None = None
    on_error: Callable[[Exception, EventInfo], Any] | None = None

    @field_validator("retry_defer")
    @classmethod
    def _default_retry_defer(cls, v: float | None, info: ValidationInfo) -> float | None:
        if v is None:
            return info.data.get("debounce_interval")
        return v
