from .health import SERVICE_UNAVAILABLE, DependencyHealth, HealthSnapshot
from .job import EXECUTE_JOB_TYPES, ExecuteSlot, Job, JobsSnapshot, JobState, JobType
from .migration_config import MigrationConfig
from .overview import DataOverview, Freshness, TargetCounters, TargetStats

__all__ = [
    "SERVICE_UNAVAILABLE",
    "DependencyHealth",
    "HealthSnapshot",
    "EXECUTE_JOB_TYPES",
    "ExecuteSlot",
    "Job",
    "JobsSnapshot",
    "JobState",
    "JobType",
    "MigrationConfig",
    "DataOverview",
    "Freshness",
    "TargetCounters",
    "TargetStats",
]
