from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _Counters(BaseModel):
    """Flat integer counters; absent or null keys read as 0."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _null_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class DataOverview(_Counters):
    # Extraction phase
    schemas: int = 0
    tables: int = 0
    views: int = 0
    synonyms: int = 0
    object_type_specs: int = 0
    object_type_bodies: int = 0
    package_specs: int = 0
    package_bodies: int = 0
    triggers: int = 0
    constraints: int = 0
    indexes: int = 0

    # Parse (AST) phase
    parsed_views: int = 0
    parsed_object_types: int = 0
    parsed_packages: int = 0
    parsed_triggers: int = 0

    total_row_count: int = 0


class TargetCounters(_Counters):
    schemas: int = 0
    tables: int = 0
    views: int = 0
    functions: int = 0
    procedures: int = 0
    types: int = 0
    triggers: int = 0
    constraints: int = 0
    indexes: int = 0
    total_row_count: int = 0


class Freshness(str, Enum):
    never_fetched = "never-fetched"
    error = "error"
    fetched = "fetched"


class TargetStats(BaseModel):
    stats: TargetCounters = Field(default_factory=TargetCounters)
    fetched_at: int = 0  # epoch milliseconds, 0 = never fetched
    error_message: Optional[str] = None

    @property
    def freshness(self) -> Freshness:
        if self.error_message:
            return Freshness.error
        if self.fetched_at > 0:
            return Freshness.fetched
        return Freshness.never_fetched

    @property
    def fetched_at_datetime(self) -> Optional[datetime]:
        if self.fetched_at <= 0:
            return None
        return datetime.fromtimestamp(self.fetched_at / 1000, tz=timezone.utc)

    @classmethod
    def failed(cls, message: str) -> "TargetStats":
        return cls(stats=TargetCounters(), fetched_at=0, error_message=message)
