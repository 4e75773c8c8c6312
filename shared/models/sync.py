"""Pydantic models describing the outcome of writes to the record store."""

from enum import Enum

from pydantic import BaseModel


class SaveStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    ERROR = "error"
    SKIPPED = "skipped"


class SaveErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    AUTHORIZATION = "authorization"
    API = "api"


class SaveResult(BaseModel):
    """
    Result of a full save.

    Attributes:
        status (SaveStatus): Overall outcome.
        message (str): Human readable summary.
        written_fields (list[str]): Fields confirmed written by the store.
        failed_fields (list[str]): Fields that could not be written (schema drift or per-field failures).
        error_kind (SaveErrorKind | None): Error class when status is ERROR or SKIPPED.
        not_found (bool): True when the record no longer exists; reported as a successful no-op.
        attempts (int): Number of write calls issued.
    """

    status: SaveStatus
    message: str = ""
    written_fields: list[str] = []
    failed_fields: list[str] = []
    error_kind: SaveErrorKind | None = None
    not_found: bool = False
    attempts: int = 0

    @property
    def is_success(self) -> bool:
        return self.status == SaveStatus.SUCCESS

    @property
    def wrote_anything(self) -> bool:
        return self.status in (SaveStatus.SUCCESS, SaveStatus.PARTIAL_SUCCESS)
