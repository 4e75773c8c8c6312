from pydantic import BaseModel

from shared.models.document import Progress
from shared.models.sync import SaveResult


class ViewItem(BaseModel):
    id: str
    title: str
    description: str = ""


class DocumentItem(BaseModel):
    id: str
    name: str
    required: bool
    provided: bool
    source: str
    locked: bool


class ChecklistResponse(BaseModel):
    record_id: str
    active_view: str | None
    view: str
    views: list[ViewItem]
    documents: list[DocumentItem]
    empty_reason: str | None = None
    progress: Progress
    dossier_state: str
    is_completed: bool
    has_unsaved_changes: bool
    external_drift: bool
    missing_documents: list[str]
    last_error: str | None = None


class SaveResponse(BaseModel):
    result: SaveResult
    checklist: ChecklistResponse
