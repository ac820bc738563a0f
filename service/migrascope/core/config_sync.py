"""Two-source configuration reconciliation: local cache vs. server.

Load precedence
    1. A cache entry that parses is used as-is, then pushed to the server
       (best effort) so the server converges on what the user last saved.
    2. A cache entry that does not parse is deleted; the server wins.
    3. No cache entry: the server wins.

Saving sends every process flag and the scope field, but a connection or
path field only when it has a non-blank value, so a field the user left
empty never wipes a secret stored on the server.  The server answers with
the canonical full configuration, and that (not the outgoing payload) is
what gets cached.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from ..client import MigrationClient, MigrationClientError
from ..models.migration_config import (
    CONNECTION_FIELDS,
    PATH_FIELDS,
    PROCESS_FLAGS,
    SCOPE_FIELD,
    MigrationConfig,
)
from .cache import ConfigCacheBase
from .notifications import Notifier, fan_out

AfterHook = Callable[[], Awaitable[Any]]
ConfigListener = Callable[[MigrationConfig], None]


class ConfigSource(str, Enum):
    cached = "cached"
    cache_corrupt = "cache-corrupt"
    server_only = "server-only"


def build_save_payload(form: MigrationConfig) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for name in PROCESS_FLAGS:
        payload[name] = bool(getattr(form, name))
    payload[SCOPE_FIELD] = (getattr(form, SCOPE_FIELD) or "").strip()
    for name in CONNECTION_FIELDS + PATH_FIELDS:
        value = (getattr(form, name) or "").strip()
        if value:
            payload[name] = value
    return {to_camel(name): value for name, value in payload.items()}


class ConfigReconciler:
    def __init__(
        self,
        client: MigrationClient,
        cache: ConfigCacheBase,
        notifier: Optional[Notifier] = None,
        after_sync: Optional[AfterHook] = None,
        after_save: Optional[AfterHook] = None,
    ):
        self.client = client
        self.cache = cache
        self.notifier = notifier or Notifier()
        self.after_sync = after_sync
        self.after_save = after_save
        self.source: Optional[ConfigSource] = None
        # Last configuration accepted from cache or server
        self.loaded: Optional[MigrationConfig] = None
        # What the user is editing; replaced whenever ``loaded`` changes
        self.form: Optional[MigrationConfig] = None
        self._listeners: List[ConfigListener] = []

    def subscribe(self, listener: ConfigListener) -> None:
        self._listeners.append(listener)

    # -- Load --

    async def load(self) -> Optional[MigrationConfig]:
        raw = self.cache.read()
        if raw is not None:
            try:
                cached = MigrationConfig.model_validate_json(raw)
            except ValidationError:
                logger.warning("Failed to parse cached config, falling back to server config")
                self.cache.delete()
                self.source = ConfigSource.cache_corrupt
            else:
                logger.info("Loading configuration from local cache")
                self.source = ConfigSource.cached
                self._populate(cached)
                await self._sync_to_server(cached)
                self.notifier.success("Configuration loaded from local storage and synced to server")
                if self.after_sync is not None:
                    await self.after_sync()
                return self.loaded
        else:
            self.source = ConfigSource.server_only

        await self._load_from_server()
        return self.loaded

    async def _sync_to_server(self, config: MigrationConfig) -> bool:
        """Push the cached config to the server.  Never raises."""
        try:
            result = await self.client.update_config(config.to_wire())
        except MigrationClientError as exc:
            logger.warning("Failed to sync config to server: {}", exc.message or exc.detail)
            return False
        except httpx.RequestError as exc:
            logger.warning("Error syncing config to server: {}", exc)
            return False

        canonical = _canonical_from(result)
        if canonical is not None:
            self.cache.write(canonical.model_dump_json(by_alias=True))
        logger.info("Synced cached config to server")
        return True

    async def _load_from_server(self) -> bool:
        try:
            body = await self.client.get_config()
            config = MigrationConfig.model_validate(body)
        except MigrationClientError as exc:
            logger.error("Server config unavailable: {}", exc)
            self.notifier.error("Failed to load configuration from server")
            return False
        except (httpx.RequestError, ValueError) as exc:
            logger.error("Error loading configuration: {}", exc)
            self.notifier.error(f"Error loading configuration: {exc}")
            return False
        logger.info("Loaded configuration from server")
        self._populate(config)
        return True

    # -- Edit / Save / Reset --

    def edit(self, **changes: Any) -> MigrationConfig:
        """Apply user edits to the form without touching the loaded config."""
        unknown = set(changes) - set(MigrationConfig.model_fields)
        if unknown:
            raise ValueError(f"Unknown config fields: {sorted(unknown)}")
        base = self.form or self.loaded or MigrationConfig()
        self.form = MigrationConfig.model_validate({**base.model_dump(), **changes})
        return self.form

    async def save(self) -> bool:
        form = self.form or self.loaded or MigrationConfig()
        payload = build_save_payload(form)
        try:
            result = await self.client.update_config(payload)
        except MigrationClientError as exc:
            self.notifier.error(f"Failed to save configuration: {exc.message or exc.detail}")
            return False
        except httpx.RequestError as exc:
            logger.error("Error saving configuration: {}", exc)
            self.notifier.error(f"Error saving configuration: {exc}")
            return False

        canonical = _canonical_from(result)
        if canonical is None:
            self.notifier.error("Failed to save configuration: server returned no configuration")
            return False

        self.cache.write(canonical.model_dump_json(by_alias=True))
        self._populate(canonical)
        self.notifier.success("Configuration saved successfully (server + local storage)")
        if self.after_save is not None:
            await self.after_save()
        return True

    async def reset(self) -> bool:
        """Drop the cache entry and any edits, then reload from the server."""
        self.cache.delete()
        self.source = ConfigSource.server_only
        if self.loaded is not None:
            self.form = self.loaded.model_copy()
        ok = await self._load_from_server()
        if ok:
            self.notifier.success("Configuration reset to server values (local storage cleared)")
        return ok

    # -- helpers --

    def _populate(self, config: MigrationConfig) -> None:
        self.loaded = config
        self.form = config.model_copy()
        fan_out(self._listeners, config, "Config")


def _canonical_from(result: Any) -> Optional[MigrationConfig]:
    if not isinstance(result, dict) or not isinstance(result.get("config"), dict):
        logger.warning("Config update response carried no canonical config")
        return None
    try:
        return MigrationConfig.model_validate(result["config"])
    except ValidationError as exc:
        logger.warning("Canonical config in response did not validate: {}", exc)
        return None
