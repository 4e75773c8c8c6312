from shared.clients.store.models.StoreErrors import StoreAuthorizationError, StoreConfigurationError, StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.sync import SaveErrorKind


class SyncErrorState:
    """
    Sticky record of a configuration or authorization failure.

    Once set, debounced partial syncs are suppressed. The state is cleared by the
    next successful remote call. Each transition into the error state is logged
    once at error level; repeats are logged at debug level.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._kind: SaveErrorKind | None = None
        self._message: str = ""

    @staticmethod
    def classify(error: StoreError) -> SaveErrorKind:
        if isinstance(error, StoreConfigurationError):
            return SaveErrorKind.CONFIGURATION
        if isinstance(error, StoreAuthorizationError):
            return SaveErrorKind.AUTHORIZATION
        return SaveErrorKind.API

    @staticmethod
    def is_sticky_error(error: Exception) -> bool:
        return isinstance(error, (StoreConfigurationError, StoreAuthorizationError))

    @property
    def active(self) -> bool:
        return self._kind is not None

    @property
    def kind(self) -> SaveErrorKind | None:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    def record(self, error: StoreError) -> bool:
        """
        Records a configuration or authorization failure.

        Args:
            error (StoreError): The failure.

        Returns:
            bool: True if this is a transition into the error state (surface it), False if already set.
        """
        kind = self.classify(error)
        if self._kind == kind:
            self.logging.debug("Store still failing with %s error: %s", kind.value, error)
            return False
        self._kind = kind
        self._message = str(error)
        self.logging.error("Store %s error, partial syncs suspended until the next successful call: %s", kind.value, error)
        return True

    def clear(self) -> None:
        if self._kind is not None:
            self.logging.info("Store reachable again, clearing %s error state.", self._kind.value)
        self._kind = None
        self._message = ""
