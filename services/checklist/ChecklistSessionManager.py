from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.catalog import Catalog
from shared.rules.RequirementResolver import RequirementResolver
from shared.rules.ViewRouter import ViewRouter
from services.checklist.ChecklistSession import ChecklistSession
from services.record_sync.ReconciliationService import ReconciliationService
from services.record_sync.SyncErrorState import SyncErrorState


class ChecklistSessionManager:
    """Keeps one checklist session per record, sharing the rule components and the store error state."""

    def __init__(self, helper_config: HelperConfig, catalog: Catalog, store_client: StoreClientInterface):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.catalog = catalog
        self.store_client = store_client

        self.resolver = RequirementResolver(helper_config=helper_config)
        self.router = ViewRouter(helper_config=helper_config, catalog=catalog)
        # one credential for all records, so one sticky error state
        self.error_state = SyncErrorState(helper_config=helper_config)
        self.reconciliation = ReconciliationService(
            helper_config=helper_config,
            store_client=store_client,
            error_state=self.error_state,
        )
        self._sessions: dict[str, ChecklistSession] = {}

    def get_session(self, record_id: str) -> ChecklistSession:
        """Returns the session of a record, creating it on first access."""
        key = self.store_client.normalize_record_id(record_id)
        session = self._sessions.get(key)
        if session is None:
            session = ChecklistSession(
                helper_config=self.helper_config,
                record_id=key,
                catalog=self.catalog,
                reconciliation=self.reconciliation,
                resolver=self.resolver,
                router=self.router,
            )
            self._sessions[key] = session
            self.logging.debug("Opened checklist session for record %s.", key)
        return session

    async def get_loaded_session(self, record_id: str) -> ChecklistSession:
        """Returns the session of a record, fetching it if it has never been loaded."""
        session = self.get_session(record_id)
        if not session.loaded:
            await session.fetch_all()
        return session

    def drop_session(self, record_id: str) -> None:
        self._sessions.pop(self.store_client.normalize_record_id(record_id), None)

    async def close(self) -> None:
        """Flushes pending partial syncs of every session."""
        for session in self._sessions.values():
            await session.wait_for_sync()
        self._sessions.clear()
