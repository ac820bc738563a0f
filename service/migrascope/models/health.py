from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

SERVICE_UNAVAILABLE = "Service unavailable"


class DependencyHealth(BaseModel):
    connected: bool = False
    error: Optional[str] = None
    url: Optional[str] = None
    user: Optional[str] = None

    @field_validator("connected", mode="before")
    @classmethod
    def _null_is_disconnected(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def label(self) -> str:
        if self.connected:
            return "Connected"
        return self.error or "Disconnected"

    @classmethod
    def unavailable(cls) -> "DependencyHealth":
        return cls(connected=False, error=SERVICE_UNAVAILABLE)


class HealthSnapshot(BaseModel):
    service_online: bool = False
    oracle: DependencyHealth = Field(default_factory=DependencyHealth)
    postgres: DependencyHealth = Field(default_factory=DependencyHealth)

    @field_validator("oracle", "postgres", mode="before")
    @classmethod
    def _missing_dependency(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def unavailable(cls) -> "HealthSnapshot":
        """Both dependencies forced down when the health endpoint itself fails."""
        return cls(
            service_online=False,
            oracle=DependencyHealth.unavailable(),
            postgres=DependencyHealth.unavailable(),
        )
