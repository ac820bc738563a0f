import json

import pytest

from migrascope.core.cache import FileConfigCache, InMemoryConfigCache
from migrascope.core.config_sync import ConfigReconciler, ConfigSource, build_save_payload
from migrascope.core.notifications import NotificationLevel
from migrascope.models.migration_config import PROCESS_FLAGS, MigrationConfig


def cached_entry(**overrides):
    config = MigrationConfig(
        do_table=True,
        do_data=False,
        do_only_test_schema="SALES",
        oracle_url="jdbc:oracle:thin:@db:1521/ORCL",
        oracle_password="cached-oracle-secret",
    )
    return config.model_copy(update=overrides).model_dump_json(by_alias=True)


class AfterSpy:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


@pytest.fixture
def cache():
    return InMemoryConfigCache()


@pytest.fixture
def reconciler(client, cache, notifier):
    return ConfigReconciler(client, cache, notifier=notifier)


# ---- Save payload ----

def test_payload_omits_blank_connection_fields():
    form = MigrationConfig(postgre_password="", oracle_password="  s3cret  ", do_only_test_schema="  HR ")
    payload = build_save_payload(form)

    assert "postgrePassword" not in payload
    assert payload["oraclePassword"] == "s3cret"
    assert payload["doOnlyTestSchema"] == "HR"
    assert "pathTargetProjectRoot" not in payload


def test_payload_always_carries_every_flag():
    payload = build_save_payload(MigrationConfig())
    assert len(PROCESS_FLAGS) == 18
    for name in ("doAllSchemas", "doTable", "doViewDdl", "doRestControllerProcedures"):
        assert payload[name] is False
    assert payload["doOnlyTestSchema"] == ""
    assert len(payload) == 19


# ---- Load ----

@pytest.mark.asyncio
async def test_valid_cache_wins_and_is_pushed_to_server(client, backend, cache, notifier):
    cache.write(cached_entry())
    after_sync = AfterSpy()
    reconciler = ConfigReconciler(client, cache, notifier=notifier, after_sync=after_sync)

    loaded = await reconciler.load()
    assert reconciler.source == ConfigSource.cached
    assert loaded.do_only_test_schema == "SALES"
    assert reconciler.form.oracle_password == "cached-oracle-secret"
    assert backend.count("GET", "/migration/config") == 0
    assert backend.config_puts[0]["doOnlyTestSchema"] == "SALES"
    assert after_sync.calls == 1
    assert notifier.messages(NotificationLevel.success) == [
        "Configuration loaded from local storage and synced to server"
    ]
    # The cache now holds the server's canonical answer
    assert json.loads(cache.read()) == backend.config


@pytest.mark.asyncio
async def test_sync_failure_keeps_cached_values(client, backend, cache, notifier):
    cache.write(cached_entry())
    backend.config_put_status = 500
    reconciler = ConfigReconciler(client, cache, notifier=notifier)

    loaded = await reconciler.load()
    assert loaded.do_only_test_schema == "SALES"
    assert json.loads(cache.read())["doOnlyTestSchema"] == "SALES"
    assert notifier.messages(NotificationLevel.error) == []


@pytest.mark.asyncio
async def test_corrupt_cache_is_discarded(reconciler, backend, cache):
    cache.write("{not json")

    loaded = await reconciler.load()
    assert reconciler.source == ConfigSource.cache_corrupt
    assert cache.read() is None
    assert loaded.do_only_test_schema == "HR"
    assert backend.config_puts == []


@pytest.mark.asyncio
async def test_no_cache_reads_server(reconciler, backend, cache):
    loaded = await reconciler.load()
    assert reconciler.source == ConfigSource.server_only
    assert loaded.postgre_password == "server-pg-secret"
    assert backend.count("GET", "/migration/config") == 1
    assert cache.read() is None


@pytest.mark.asyncio
async def test_server_load_failure_is_notified(reconciler, backend, notifier):
    backend.config_get_status = 500
    assert await reconciler.load() is None
    assert notifier.messages(NotificationLevel.error) == ["Failed to load configuration from server"]


# ---- Edit / Save ----

@pytest.mark.asyncio
async def test_edit_touches_only_the_form(reconciler):
    await reconciler.load()
    reconciler.edit(do_data=False, postgre_password="")

    assert reconciler.form.do_data is False
    assert reconciler.loaded.do_data is True
    with pytest.raises(ValueError):
        reconciler.edit(do_everything=True)


@pytest.mark.asyncio
async def test_save_caches_canonical_config_with_server_secrets(client, backend, cache, notifier):
    after_save = AfterSpy()
    reconciler = ConfigReconciler(client, cache, notifier=notifier, after_save=after_save)
    await reconciler.load()
    reconciler.edit(do_data=False, postgre_password="")

    assert await reconciler.save()
    sent = backend.config_puts[-1]
    assert sent["doData"] is False
    assert "postgrePassword" not in sent

    stored = json.loads(cache.read())
    assert stored["doData"] is False
    assert stored["postgrePassword"] == "server-pg-secret"
    assert reconciler.loaded.do_data is False
    assert after_save.calls == 1
    assert "Configuration saved successfully (server + local storage)" in notifier.messages()


@pytest.mark.asyncio
async def test_save_failure_leaves_loaded_untouched(reconciler, backend, cache, notifier):
    await reconciler.load()
    reconciler.edit(do_data=False)
    backend.config_put_status = 400

    assert not await reconciler.save()
    assert reconciler.loaded.do_data is True
    assert reconciler.form.do_data is False
    assert cache.read() is None
    assert notifier.messages(NotificationLevel.error) == [
        "Failed to save configuration: Failed to update configuration: invalid JDBC URL"
    ]


@pytest.mark.asyncio
async def test_save_without_canonical_echo_counts_as_failure(reconciler, backend, cache):
    await reconciler.load()
    backend.config_put_echo = False

    assert not await reconciler.save()
    assert cache.read() is None


# ---- Reset ----

@pytest.mark.asyncio
async def test_reset_drops_cache_and_reloads_server(reconciler, backend, cache, notifier):
    cache.write(cached_entry())
    await reconciler.load()
    backend.config["doOnlyTestSchema"] = "FINANCE"
    reconciler.edit(do_table=False)

    assert await reconciler.reset()
    assert cache.read() is None
    assert reconciler.source == ConfigSource.server_only
    assert reconciler.loaded.do_only_test_schema == "FINANCE"
    assert reconciler.form == reconciler.loaded
    assert notifier.messages()[-1] == "Configuration reset to server values (local storage cleared)"


# ---- File cache ----

def test_file_cache_round_trip(tmp_path):
    cache = FileConfigCache(tmp_path / "nested" / "config.json")
    assert cache.read() is None

    cache.write('{"doTable": true}')
    assert cache.read() == '{"doTable": true}'

    cache.delete()
    cache.delete()
    assert cache.read() is None


@pytest.mark.asyncio
async def test_file_cache_corrupt_entry_is_removed(tmp_path, client, backend):
    path = tmp_path / "config.json"
    path.write_text("]]]", encoding="utf-8")
    reconciler = ConfigReconciler(client, FileConfigCache(path))

    await reconciler.load()
    assert not path.exists()
    assert reconciler.loaded.do_only_test_schema == "HR"
