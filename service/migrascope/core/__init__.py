from .cache import ConfigCacheBase, FileConfigCache, InMemoryConfigCache, build_config_cache
from .config_sync import ConfigReconciler, ConfigSource, build_save_payload
from .dashboard import Dashboard
from .health import HealthMonitor
from .jobs import JobMonitor, derive_execute_candidate
from .logs import LogMonitor, filter_log_lines
from .notifications import Notification, NotificationLevel, Notifier
from .overview import DataOverviewMonitor
from .scheduler import AsyncioScheduler, Poller, PollHandle, SchedulerBase, VirtualScheduler
from .target_stats import TargetStatsMonitor
