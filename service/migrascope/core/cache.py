"""Config cache abstraction: ConfigCacheBase ABC, InMemoryConfigCache, and FileConfigCache.

The cache holds one entry, the last canonical configuration returned by the
server, stored as raw JSON text.  Parsing is left to the reconciler so a
corrupt entry can be detected and discarded there.

Tests use InMemoryConfigCache.  The dashboard uses FileConfigCache when
MIGRASCOPE_CONFIG_CACHE_PATH is set.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config import Settings, get_settings


class ConfigCacheBase(abc.ABC):
    """Interface that InMemoryConfigCache and FileConfigCache both implement."""

    @abc.abstractmethod
    def read(self) -> Optional[str]:
        """Return the raw cached entry, or None when there is none."""
        ...

    @abc.abstractmethod
    def write(self, raw: str) -> None: ...

    @abc.abstractmethod
    def delete(self) -> None: ...


class InMemoryConfigCache(ConfigCacheBase):
    def __init__(self, raw: Optional[str] = None):
        self._raw = raw

    def read(self) -> Optional[str]:
        return self._raw

    def write(self, raw: str) -> None:
        self._raw = raw

    def delete(self) -> None:
        self._raw = None


class FileConfigCache(ConfigCacheBase):
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            # An unreadable entry is treated like a corrupt one
            logger.warning("Config cache {} unreadable: {}", self.path, exc)
            return ""

    def write(self, raw: str) -> None:
        """Write atomically so a crash never leaves a half-written entry."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(raw, encoding="utf-8")
        tmp.replace(self.path)

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)


def build_config_cache(settings: Settings | None = None) -> ConfigCacheBase:
    settings = settings or get_settings()
    if not settings.config_cache_path:
        logger.info("Config cache path empty; keeping cached config in memory")
        return InMemoryConfigCache()
    logger.info("Using config cache at {}", settings.config_cache_path)
    return FileConfigCache(settings.config_cache_path)
