import asyncio

from services.record_sync.DebouncedSync import DebouncedSync
from services.record_sync.ReconciliationService import ReconciliationService
from shared.clients.store.models.StoreErrors import (
    PropertyMissingError,
    StoreApiError,
    StoreAuthorizationError,
    StoreConfigurationError,
)
from shared.models.sync import SaveErrorKind, SaveStatus

from tests.support import FakeStoreClient


def _service(helper_config, store):
    return ReconciliationService(helper_config=helper_config, store_client=store)


def test_full_save_writes_one_batch(helper_config):
    store = FakeStoreClient(records={"1": {}})
    result = asyncio.run(_service(helper_config, store).do_full_save("1", {"a_required": True, "a_provided": False}))
    assert result.status == SaveStatus.SUCCESS
    assert result.attempts == 1
    assert store.records["1"] == {"a_required": "true", "a_provided": "false"}


def test_empty_batch_is_success_without_call(helper_config):
    store = FakeStoreClient(records={"1": {}})
    result = asyncio.run(_service(helper_config, store).do_full_save("1", {}))
    assert result.status == SaveStatus.SUCCESS
    assert store.update_calls == []


def test_scenario_e_missing_field_is_eliminated_and_retried(helper_config):
    store = FakeStoreClient(records={"1": {}}, missing_fields={"foo_required"})
    values = {"foo_required": True, "bar_required": True, "bar_provided": False}
    result = asyncio.run(_service(helper_config, store).do_full_save("1", values))

    assert result.status == SaveStatus.PARTIAL_SUCCESS
    assert result.failed_fields == ["foo_required"]
    assert sorted(result.written_fields) == ["bar_provided", "bar_required"]
    assert result.attempts == 2
    assert "foo_required" not in store.update_calls[1][1]
    assert store.records["1"] == {"bar_required": "true", "bar_provided": "false"}


def test_batch_emptied_by_drift_is_success(helper_config):
    store = FakeStoreClient(records={"1": {}}, missing_fields={"foo_required"})
    result = asyncio.run(_service(helper_config, store).do_full_save("1", {"foo_required": True}))
    assert result.status == SaveStatus.SUCCESS
    assert result.failed_fields == ["foo_required"]


def test_retry_budget_then_per_field_writes(helper_config):
    store = FakeStoreClient(records={"1": {}})
    # three batch attempts each reveal one more missing field, then one field fails alone
    store.errors = [
        PropertyMissingError({"a"}),
        PropertyMissingError({"b"}),
        PropertyMissingError({"c"}),
        StoreApiError("boom", status_code=500),
    ]
    values = {"a": "1", "b": "2", "c": "3", "d": "4", "e": "5"}
    result = asyncio.run(_service(helper_config, store).do_full_save("1", values))

    assert result.status == SaveStatus.PARTIAL_SUCCESS
    assert result.written_fields == ["e"]
    assert result.failed_fields == ["a", "b", "c", "d"]
    assert result.attempts == 5
    assert store.records["1"] == {"e": "5"}


def test_per_field_writes_all_failing_is_error(helper_config):
    store = FakeStoreClient(records={"1": {}})
    store.errors = [PropertyMissingError({"a"}), PropertyMissingError({"b"}), PropertyMissingError({"c"}), StoreApiError("boom")]
    result = asyncio.run(_service(helper_config, store).do_full_save("1", {"a": "1", "b": "2", "c": "3", "d": "4"}))
    assert result.status == SaveStatus.ERROR
    assert result.error_kind == SaveErrorKind.API


def test_record_not_found_is_benign(helper_config):
    store = FakeStoreClient(records={})
    result = asyncio.run(_service(helper_config, store).do_full_save("404", {"a": True}))
    assert result.status == SaveStatus.SUCCESS
    assert result.not_found


def test_api_error_is_reported_generically(helper_config):
    store = FakeStoreClient(records={"1": {}})
    store.errors = [StoreApiError("Server exploded", status_code=500)]
    result = asyncio.run(_service(helper_config, store).do_full_save("1", {"a": True}))
    assert result.status == SaveStatus.ERROR
    assert result.error_kind == SaveErrorKind.API
    assert "exploded" not in result.message


def test_configuration_error_is_sticky_until_next_success(helper_config):
    store = FakeStoreClient(records={"1": {}})
    service = _service(helper_config, store)
    store.errors = [StoreConfigurationError("no token")]

    result = asyncio.run(service.do_full_save("1", {"a": True}))
    assert result.error_kind == SaveErrorKind.CONFIGURATION
    assert service.error_state.active

    # partial syncs are suppressed without calling the store
    calls = len(store.update_calls)
    assert asyncio.run(service.do_partial_sync("1", {"missing_doc": ""})) is False
    assert len(store.update_calls) == calls

    # an explicit save still tries and clears the state
    assert asyncio.run(service.do_full_save("1", {"a": True})).status == SaveStatus.SUCCESS
    assert not service.error_state.active
    assert asyncio.run(service.do_partial_sync("1", {"missing_doc": ""})) is True


def test_sticky_error_is_surfaced_once(helper_config):
    store = FakeStoreClient(records={"1": {}})
    service = _service(helper_config, store)
    assert service.error_state.record(StoreAuthorizationError("denied", status_code=401)) is True
    assert service.error_state.record(StoreAuthorizationError("denied", status_code=401)) is False
    assert service.error_state.kind == SaveErrorKind.AUTHORIZATION


def test_partial_sync_swallows_api_errors(helper_config):
    store = FakeStoreClient(records={"1": {}})
    service = _service(helper_config, store)
    store.errors = [StoreApiError("rate limited", status_code=429)]
    assert asyncio.run(service.do_partial_sync("1", {"missing_doc": "<ul></ul>"})) is False
    assert not service.error_state.active


def test_partial_sync_drops_missing_field(helper_config):
    store = FakeStoreClient(records={"1": {}}, missing_fields={"missing_doc"})
    service = _service(helper_config, store)
    assert asyncio.run(service.do_partial_sync("1", {"missing_doc": "x"})) is False
    assert len(store.update_calls) == 1


def test_debounced_sync_coalesces_bursts(helper_config):
    calls = []

    async def action():
        calls.append(1)

    async def scenario():
        debounced = DebouncedSync(helper_config, action, delay=0.01)
        for _ in range(5):
            debounced.schedule()
        assert debounced.is_pending()
        await debounced.wait()
        assert not debounced.is_pending()

    asyncio.run(scenario())
    assert calls == [1]


def test_debounced_sync_cancel(helper_config):
    calls = []

    async def action():
        calls.append(1)

    async def scenario():
        debounced = DebouncedSync(helper_config, action, delay=0.01)
        debounced.schedule()
        debounced.cancel()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())
    assert calls == []


def test_debounced_sync_logs_failures(helper_config):
    async def action():
        raise RuntimeError("boom")

    async def scenario():
        debounced = DebouncedSync(helper_config, action, delay=0)
        debounced.schedule()
        await debounced.wait()

    asyncio.run(scenario())
