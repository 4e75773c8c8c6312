"""Reconciliation between the local checklist and the record store.

Three kinds of remote calls go through this service:
  * fetches, which read the record fields;
  * partial syncs, which push a small set of derived fields after a local change
    and never report errors to the user;
  * full saves, which write the whole checklist and tolerate schema drift by
    dropping non-existent fields and retrying within a bounded budget.
"""

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.StoreErrors import PropertyMissingError, RecordNotFoundError, StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.property_bag import PropertyValue
from shared.models.sync import SaveErrorKind, SaveResult, SaveStatus
from services.record_sync.SyncErrorState import SyncErrorState
from services.record_sync.schema_drift import eliminate_failed_fields, serialize_values

GENERIC_ERROR_MESSAGE = "The checklist could not be saved. Please try again later."


class ReconciliationService:
    def __init__(self, helper_config: HelperConfig, store_client: StoreClientInterface, error_state: SyncErrorState | None = None):
        self.logging = helper_config.get_logger()
        self._store_client = store_client
        self.error_state = error_state or SyncErrorState(helper_config=helper_config)
        self._drift_retries = max(0, int(helper_config.get_number_val("CHECKLIST_DRIFT_RETRIES", default=2)))

    ##########################################
    ################# FETCH ##################
    ##########################################

    async def do_fetch(self, record_id: str, field_names: list[str], priority_field: str | None = None) -> dict[str, PropertyValue]:
        """
        Reads the record fields and keeps the error state up to date.

        Raises:
            StoreError: Any store failure, after it has been recorded.
        """
        try:
            values = await self._store_client.do_fetch_record(record_id, field_names, priority_field=priority_field)
        except StoreError as e:
            if SyncErrorState.is_sticky_error(e):
                self.error_state.record(e)
            raise
        self.error_state.clear()
        return values

    ##########################################
    ############## PARTIAL SYNC ##############
    ##########################################

    async def do_partial_sync(self, record_id: str, values: dict[str, object]) -> bool:
        """
        Pushes a few derived fields. Failures are logged, never raised.

        Skipped entirely while a configuration or authorization error is pending.

        Returns:
            bool: True if the fields were written.
        """
        if self.error_state.active:
            self.logging.debug("Partial sync of record %s skipped, store in %s error state.", record_id, self.error_state.kind.value)
            return False

        pending = serialize_values(values)
        if not pending:
            return True
        try:
            await self._store_client.do_update_record(record_id, pending)
        except PropertyMissingError as e:
            pending = eliminate_failed_fields(pending, e.property_names)
            self.logging.debug("Partial sync of record %s: fields %s do not exist.", record_id, sorted(e.property_names))
            if not pending:
                return False
            try:
                await self._store_client.do_update_record(record_id, pending)
            except StoreError as retry_error:
                self._handle_partial_error(record_id, retry_error)
                return False
        except RecordNotFoundError:
            self.logging.debug("Partial sync of record %s skipped, record not found.", record_id)
            return False
        except StoreError as e:
            self._handle_partial_error(record_id, e)
            return False

        self.error_state.clear()
        return True

    def _handle_partial_error(self, record_id: str, error: StoreError) -> None:
        if SyncErrorState.is_sticky_error(error):
            self.error_state.record(error)
        else:
            self.logging.warning("Partial sync of record %s failed: %s", record_id, error)

    ##########################################
    ############### FULL SAVE ################
    ##########################################

    async def do_full_save(self, record_id: str, values: dict[str, object]) -> SaveResult:
        """
        Writes a full batch of fields, dropping fields the store does not know.

        The batch is retried up to CHECKLIST_DRIFT_RETRIES extra times, each time without
        the fields reported as non-existent. When the budget is spent, every remaining
        field is written on its own once.

        Args:
            record_id (str): The record id.
            values (dict[str, object]): Field name -> value (booleans are serialized).

        Returns:
            SaveResult: The outcome. Errors are reported in the result, never raised.
        """
        pending = serialize_values(values)
        if not pending:
            return SaveResult(status=SaveStatus.SUCCESS, message="No properties to update.")

        eliminated: list[str] = []
        attempts = 0
        for _ in range(1 + self._drift_retries):
            attempts += 1
            try:
                written = await self._store_client.do_update_record(record_id, pending)
            except PropertyMissingError as e:
                failed = e.property_names & pending.keys()
                if not failed:
                    self.logging.error("Save of record %s rejected for unknown fields %s.", record_id, sorted(e.property_names))
                    return self._error_result(SaveErrorKind.API, GENERIC_ERROR_MESSAGE, attempts, eliminated)
                self.logging.warning("Save of record %s: fields %s do not exist, retrying without them.", record_id, sorted(failed))
                eliminated.extend(sorted(failed))
                pending = eliminate_failed_fields(pending, failed)
                if not pending:
                    self.error_state.clear()
                    return SaveResult(
                        status=SaveStatus.SUCCESS,
                        message="Nothing left to write, the remaining fields do not exist.",
                        failed_fields=eliminated,
                        attempts=attempts,
                    )
                continue
            except RecordNotFoundError:
                self.logging.info("Save of record %s skipped, record not found.", record_id)
                return SaveResult(status=SaveStatus.SUCCESS, message="Record not found, save skipped.", not_found=True, attempts=attempts)
            except StoreError as e:
                return self._store_error_result(record_id, e, attempts, eliminated)

            self.error_state.clear()
            if eliminated:
                return SaveResult(
                    status=SaveStatus.PARTIAL_SUCCESS,
                    message=f"Saved; {len(eliminated)} field(s) do not exist in the store.",
                    written_fields=written,
                    failed_fields=eliminated,
                    attempts=attempts,
                )
            return SaveResult(status=SaveStatus.SUCCESS, message="Checklist saved.", written_fields=written, attempts=attempts)

        return await self._do_per_field_save(record_id, pending, eliminated, attempts)

    async def _do_per_field_save(self, record_id: str, pending: dict[str, str], eliminated: list[str], attempts: int) -> SaveResult:
        """Writes the remaining fields one by one once the batch retry budget is spent."""
        self.logging.warning("Save of record %s: retry budget spent, writing %d field(s) one by one.", record_id, len(pending))
        written: list[str] = []
        failed: list[str] = list(eliminated)
        for name, value in pending.items():
            attempts += 1
            try:
                written.extend(await self._store_client.do_update_record(record_id, {name: value}))
            except RecordNotFoundError:
                return SaveResult(status=SaveStatus.SUCCESS, message="Record not found, save skipped.", not_found=True, attempts=attempts)
            except StoreError as e:
                if SyncErrorState.is_sticky_error(e):
                    return self._store_error_result(record_id, e, attempts, failed)
                self.logging.warning("Field %s of record %s could not be written: %s", name, record_id, e)
                failed.append(name)

        if written:
            self.error_state.clear()
            return SaveResult(
                status=SaveStatus.PARTIAL_SUCCESS,
                message=f"Saved {len(written)} field(s); {len(failed)} could not be written.",
                written_fields=written,
                failed_fields=failed,
                attempts=attempts,
            )
        return self._error_result(SaveErrorKind.API, GENERIC_ERROR_MESSAGE, attempts, failed)

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _store_error_result(self, record_id: str, error: StoreError, attempts: int, failed: list[str]) -> SaveResult:
        kind = SyncErrorState.classify(error)
        if SyncErrorState.is_sticky_error(error):
            self.error_state.record(error)
            message = "The store credential is missing or invalid." if kind == SaveErrorKind.CONFIGURATION else "The store rejected the credential."
            return self._error_result(kind, message, attempts, failed)
        self.logging.error("Save of record %s failed: %s", record_id, error)
        return self._error_result(kind, GENERIC_ERROR_MESSAGE, attempts, failed)

    def _error_result(self, kind: SaveErrorKind, message: str, attempts: int, failed: list[str]) -> SaveResult:
        return SaveResult(status=SaveStatus.ERROR, message=message, error_kind=kind, failed_fields=list(failed), attempts=attempts)
