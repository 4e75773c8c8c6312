"""Checklist of one record.

Holds the fetched property bag, the derived document set and the baseline of the
last full fetch. Local toggles mutate the document set in memory; the missing
documents summary follows every change through a debounced partial sync, and
`save()` persists the whole checklist.
"""

import asyncio

from shared.catalog.CatalogLoader import CatalogError
from shared.clients.store.models.StoreErrors import StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.catalog import Catalog, ViewDefinition
from shared.models.document import DocumentState, DossierState, Progress
from shared.models.property_bag import PropertyBag
from shared.models.sync import SaveResult, SaveStatus
from shared.rules import completion
from shared.rules.RequirementResolver import RequirementResolver
from shared.rules.ViewRouter import RouteResult, ViewRouter
from shared.rules.VisibilityFilter import ViewListing, VisibilityFilter
from services.record_sync.DebouncedSync import DebouncedSync
from services.record_sync.ReconciliationService import ReconciliationService

TOGGLE_FIELDS = ("required", "provided")


class UnknownDocumentError(KeyError):
    """The document id is not part of the catalog."""


class ChecklistSession:
    def __init__(
        self,
        helper_config: HelperConfig,
        record_id: str,
        catalog: Catalog,
        reconciliation: ReconciliationService,
        resolver: RequirementResolver | None = None,
        router: ViewRouter | None = None,
        debounce_seconds: float | None = None,
    ):
        self.logging = helper_config.get_logger()
        self.record_id = str(record_id)
        self._catalog = catalog
        self._reconciliation = reconciliation
        self._resolver = resolver or RequirementResolver(helper_config=helper_config)
        self._router = router or ViewRouter(helper_config=helper_config, catalog=catalog)
        self._visibility = VisibilityFilter(helper_config=helper_config, resolver=self._resolver, overflow_view_id=catalog.overflow_view_id)
        self._debounced = DebouncedSync(helper_config=helper_config, action=self._push_missing_documents, delay=debounce_seconds)

        # store fields written next to the document flags
        self._completion_property = helper_config.get_string_val("CHECKLIST_COMPLETION_PROPERTY", default="documents_completed")
        self._dossier_state_property = helper_config.get_string_val("CHECKLIST_DOSSIER_STATE_PROPERTY", default="etat_du_dossier")
        self._missing_doc_property = helper_config.get_string_val("CHECKLIST_MISSING_DOC_PROPERTY", default="missing_doc")
        self._send_mail_property = helper_config.get_string_val("CHECKLIST_SEND_MAIL_PROPERTY", default="send_mail")

        # state
        self._bag = PropertyBag()
        self._documents: list[DocumentState] = []
        self._baseline: dict[str, tuple[bool, bool]] = {}
        self._route = RouteResult()
        self._loaded = False
        self._saving = False
        self._save_counter = 0
        # serializes full saves: auto-correct, save and notify
        self._write_lock = asyncio.Lock()
        self.external_drift = False
        self.last_error: str | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def documents(self) -> list[DocumentState]:
        return list(self._documents)

    @property
    def properties(self) -> PropertyBag:
        return self._bag

    @property
    def overflow_view_id(self) -> str:
        return self._catalog.overflow_view_id

    @property
    def active_view(self) -> str | None:
        return self._route.view_id

    @property
    def route(self) -> RouteResult:
        return self._route

    @property
    def progress(self) -> Progress:
        return completion.calculate_progress(self._documents)

    @property
    def dossier_state(self) -> DossierState:
        return completion.calculate_dossier_state(self._documents)

    @property
    def is_completed(self) -> bool:
        return completion.is_completed(self._documents)

    @property
    def missing_documents(self) -> list[str]:
        return completion.get_missing_documents(self._documents)

    @property
    def has_unsaved_changes(self) -> bool:
        return any(
            (state.required, state.provided) != self._baseline.get(state.id, (state.required, state.provided))
            for state in self._documents
        )

    @property
    def is_saving(self) -> bool:
        return self._saving

    def get_document(self, document_id: str) -> DocumentState:
        for state in self._documents:
            if state.id == document_id:
                return state
        raise UnknownDocumentError(document_id)

    def displayable_views(self) -> list[ViewDefinition]:
        """
        Returns the views to offer: the active view and the overflow view, or every view
        when the category does not route anywhere.
        """
        if self.active_view is None:
            return list(self._catalog.views)
        return [
            view for view in self._catalog.views
            if view.id in (self.active_view, self._catalog.overflow_view_id)
        ]

    def visible_documents(self, view_id: str | None = None, search: str | None = None) -> ViewListing:
        """
        Lists the documents of a view.

        Args:
            view_id (str | None): The view to list. Defaults to the active view, or the first displayable view.
            search (str | None): Optional case-insensitive filter on document names.

        Returns:
            ViewListing: The visible documents, sorted.

        Raises:
            CatalogError: If the view does not exist.
        """
        if view_id is None:
            views = self.displayable_views()
            view_id = self.active_view or (views[0].id if views else self._catalog.overflow_view_id)
        if self._catalog.get_view(view_id) is None:
            raise CatalogError(f"Unknown view '{view_id}'.")
        return self._visibility.get_visible_documents(self._documents, self._bag, view_id, self.active_view, search)

    ##########################################
    ################# FETCH ##################
    ##########################################

    def _get_field_names(self) -> list[str]:
        names = [self._catalog.category_property]
        names.extend(self._catalog.conditional_properties)
        for document in self._catalog.documents:
            names.extend([document.required_property, document.provided_property])
        names.extend([self._completion_property, self._dossier_state_property])
        return list(dict.fromkeys(names))

    async def fetch_all(self) -> bool:
        """
        Fetches the record and rebuilds the document set.

        A fetch that completes while a save is running (or after one started) is
        discarded, the save refetches on its own.

        Returns:
            bool: True if the fetched values were applied.

        Raises:
            StoreError: If the record cannot be read (e.g. RecordNotFoundError).
        """
        started_at = self._save_counter
        try:
            values = await self._reconciliation.do_fetch(self.record_id, self._get_field_names(), priority_field=self._catalog.category_property)
        except StoreError as e:
            self.last_error = self._reconciliation.error_state.message or str(e)
            raise
        if self._saving or self._save_counter != started_at:
            self.logging.debug("Discarding fetch of record %s, a save is in flight.", self.record_id)
            return False

        self._apply_fetch(values)
        self.last_error = None
        await self._auto_correct()
        self._debounced.schedule()
        return True

    def _apply_fetch(self, values: dict) -> None:
        self._bag = PropertyBag(values)
        self._documents = [self._resolver.build_state(document, self._bag) for document in self._catalog.documents]
        self._baseline = {state.id: (state.required, state.provided) for state in self._documents}
        self._route = self._router.route(self._bag.get_text(self._catalog.category_property))
        self._loaded = True

        stored_completed = self._bag.get_flag(self._completion_property)
        stored_state_label = self._bag.get_text(self._dossier_state_property)
        drift = stored_completed != self.is_completed
        if stored_state_label and DossierState.from_label(stored_state_label) != self.dossier_state:
            drift = True
        self.external_drift = drift
        if drift:
            self.logging.info(
                "Record %s: stored completion (%s, '%s') differs from computed (%s, '%s').",
                self.record_id, stored_completed, stored_state_label, self.is_completed, self.dossier_state.value,
            )

    async def _auto_correct(self) -> None:
        """Persists the required flag of documents whose conditions hold but whose stored flag is false."""
        corrections = [state for state in self._documents if self._resolver.needs_correction(state)]
        if not corrections:
            return
        values = {state.definition.required_property: True for state in corrections}
        async with self._write_lock:
            result = await self._reconciliation.do_full_save(self.record_id, values)
        if result.wrote_anything:
            written = set(result.written_fields)
            for state in corrections:
                if state.definition.required_property in written:
                    state.stored_required = True
            self.logging.info("Record %s: auto-corrected required flag of %d document(s).", self.record_id, len(written))
        else:
            self.logging.warning("Record %s: auto-correction of required flags failed: %s", self.record_id, result.message)

    ##########################################
    ############### MUTATIONS ################
    ##########################################

    async def toggle(self, document_id: str, field: str, value: bool, view_id: str | None = None) -> bool:
        """
        Changes the required or provided flag of a document.

        Args:
            document_id (str): The catalog document id.
            field (str): "required" or "provided".
            value (bool): The new value.
            view_id (str | None): The view the toggle comes from; the overflow view allows manual overrides.

        Returns:
            bool: False if the toggle was rejected by the document's conditions.

        Raises:
            UnknownDocumentError: If the document does not exist.
            ValueError: If the field is not a toggleable flag.
        """
        if field not in TOGGLE_FIELDS:
            raise ValueError(f"Unknown field '{field}', expected one of {TOGGLE_FIELDS}.")
        state = self.get_document(document_id)
        in_overflow = view_id == self._catalog.overflow_view_id

        if field == "required":
            if not self._resolver.apply_required_toggle(state, self._bag, value, in_overflow):
                return False
        else:
            state.provided = value

        self._debounced.schedule()
        return True

    async def reset(self) -> None:
        """Restores every document to the last fetched flags."""
        for state in self._documents:
            if state.id in self._baseline:
                state.required, state.provided = self._baseline[state.id]
        self._debounced.schedule()

    async def _push_missing_documents(self) -> bool:
        summary = completion.format_missing_documents(self.missing_documents)
        return await self._reconciliation.do_partial_sync(self.record_id, {self._missing_doc_property: summary})

    async def wait_for_sync(self) -> None:
        """Waits for a pending debounced sync to finish."""
        await self._debounced.wait()

    ##########################################
    ################# SAVE ###################
    ##########################################

    def _build_save_values(self) -> dict[str, object]:
        values: dict[str, object] = {}
        for state in self._documents:
            if not state.is_trackable():
                continue
            values[state.definition.required_property] = state.required
            values[state.definition.provided_property] = state.provided
        values[self._completion_property] = self.is_completed
        values[self._dossier_state_property] = self.dossier_state.value
        values[self._missing_doc_property] = completion.format_missing_documents(self.missing_documents)
        return values

    async def save(self) -> SaveResult:
        """
        Persists the full checklist and refetches on success.

        Returns:
            SaveResult: The outcome; SKIPPED if another save of this record is running.
        """
        if self._saving:
            return SaveResult(status=SaveStatus.SKIPPED, message="A save is already in progress.")
        if not self._loaded:
            await self.fetch_all()

        self._saving = True
        self._save_counter += 1
        # the full save carries the summary
        self._debounced.cancel()
        try:
            # waits for an auto-correct write still running after a fetch
            async with self._write_lock:
                result = await self._reconciliation.do_full_save(self.record_id, self._build_save_values())
            if result.wrote_anything and not result.not_found:
                try:
                    values = await self._reconciliation.do_fetch(self.record_id, self._get_field_names(), priority_field=self._catalog.category_property)
                    self._apply_fetch(values)
                except StoreError as e:
                    self.logging.warning("Refetch of record %s after save failed: %s", self.record_id, e)
            self.last_error = result.message if result.status == SaveStatus.ERROR else None
            self.logging.info("Save of record %s: %s (%d attempt(s)).", self.record_id, result.status.value, result.attempts)
            return result
        finally:
            self._saving = False

    async def notify_missing_documents(self) -> SaveResult:
        """Sets the notification flag so the store workflow emails the missing documents list."""
        values = {
            self._missing_doc_property: completion.format_missing_documents(self.missing_documents),
            self._send_mail_property: True,
        }
        async with self._write_lock:
            result = await self._reconciliation.do_full_save(self.record_id, values)
        if result.status == SaveStatus.ERROR:
            self.last_error = result.message
        return result
