from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class JobType(str, Enum):
    extract = "extract"
    parse = "parse"
    export = "export"
    execute_pre = "execute-pre"
    execute_post = "execute-post"
    full = "full"


# Job types whose completion changes the target database
EXECUTE_JOB_TYPES = frozenset({JobType.execute_pre.value, JobType.execute_post.value, JobType.full.value})


class JobState(str, Enum):
    idle = "IDLE"
    running = "RUNNING"
    completed = "COMPLETED"
    failed = "FAILED"
    cancelled = "CANCELLED"


DEFAULT_TOTAL_STEPS = 6

# (canonical field, percentage wire key, fraction wire key)
_PROGRESS_SOURCES = (
    ("overall_percent", "overallProgressPercentage", "overallProgress"),
    ("step_percent", "stepProgressPercentage", "stepProgress"),
)

# Falsy values on the wire fall back to the field default
_DEFAULTED_KEYS = ("currentStep", "currentStepNumber", "totalSteps", "subStepDetails")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def _to_percent(data: Dict[str, Any], percent_key: str, fraction_key: str) -> float:
    percent = data.get(percent_key)
    if percent is not None:
        return float(percent)
    fraction = data.get(fraction_key)
    if fraction is not None:
        return float(fraction) * 100
    return 0.0


class Job(BaseModel):
    """One snapshot of a backend migration job.

    The backend reports progress either as a 0-1 fraction or as a 0-100
    percentage.  Both are folded into ``overall_percent``/``step_percent``
    on validation, so nothing downstream sees the wire representation.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    job_id: Optional[str] = None
    job_type: str
    state: JobState
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    overall_percent: float = 0.0
    step_percent: float = 0.0
    current_step: str = ""
    current_step_number: int = 0
    total_steps: int = DEFAULT_TOTAL_STEPS
    sub_step_details: str = ""
    estimated_completion_time: Optional[datetime] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_wire(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for field, percent_key, fraction_key in _PROGRESS_SOURCES:
            value = data.pop(to_camel(field), None)
            if value is None:
                value = data.get(field)
            if value is None:
                value = _to_percent(data, percent_key, fraction_key)
            data[field] = _clamp_percent(float(value))
        for key in _DEFAULTED_KEYS:
            if not data.get(key):
                data.pop(key, None)
        return data

    @property
    def overall_display(self) -> int:
        return round_half_up(self.overall_percent)

    @property
    def step_display(self) -> int:
        return round_half_up(self.step_percent)

    @property
    def shows_progress(self) -> bool:
        return self.state == JobState.running or self.overall_percent > 0 or bool(self.current_step)

    def eta_minutes(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole minutes until the estimated completion of a running job, or None."""
        eta = self.estimated_completion_time
        if self.state != JobState.running or eta is None:
            return None
        now = now or datetime.now(eta.tzinfo)
        if eta <= now:
            return None
        minutes = round_half_up((eta - now).total_seconds() / 60)
        return minutes if minutes > 0 else None

    def started_sort_key(self) -> float:
        return self.started_at.timestamp() if self.started_at else float("-inf")


class ExecuteSlot(BaseModel):
    """Latest execute-like job of a poll plus the state remembered from the poll before."""

    job: Optional[Job] = None
    previous_state: Optional[JobState] = None

    @property
    def state(self) -> Optional[JobState]:
        return self.job.state if self.job else None

    @property
    def just_completed(self) -> bool:
        return self.state == JobState.completed and self.previous_state != JobState.completed


def idle_indicators() -> Dict[str, JobState]:
    return {job_type.value: JobState.idle for job_type in JobType}


class JobsSnapshot(BaseModel):
    jobs: List[Job] = Field(default_factory=list)
    indicators: Dict[str, JobState] = Field(default_factory=idle_indicators)
    execute_slot: ExecuteSlot = Field(default_factory=ExecuteSlot)
    available: bool = True
