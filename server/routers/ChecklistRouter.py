from fastapi import APIRouter, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import ToggleRequest
from server.models.responses import ChecklistResponse, DocumentItem, SaveResponse, ViewItem
from services.checklist.ChecklistSession import ChecklistSession, UnknownDocumentError
from services.checklist.ChecklistSessionManager import ChecklistSessionManager
from shared.catalog.CatalogLoader import CatalogError
from shared.clients.store.models.StoreErrors import (
    RecordNotFoundError,
    StoreAuthorizationError,
    StoreConfigurationError,
    StoreError,
)
from shared.models.document import RequirementSource

router = APIRouter(prefix="/records", tags=["checklist"])


def _get_manager(request: Request) -> ChecklistSessionManager:
    return request.app.state.session_manager


def _to_http_error(error: Exception) -> HTTPException:
    """Maps domain errors to HTTP errors: unknown record/document/view 404, credentials 503, other store errors 502."""
    if isinstance(error, (RecordNotFoundError, UnknownDocumentError, CatalogError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (StoreConfigurationError, StoreAuthorizationError)):
        return HTTPException(status_code=503, detail=str(error))
    if isinstance(error, StoreError):
        return HTTPException(status_code=502, detail="The record store request failed.")
    return HTTPException(status_code=500, detail="Internal error")


async def _load_session(request: Request, record_id: str) -> ChecklistSession:
    manager = _get_manager(request)
    try:
        return await manager.get_loaded_session(record_id)
    except StoreError as e:
        manager.drop_session(record_id)
        raise _to_http_error(e)


def _build_checklist(session: ChecklistSession, view_id: str | None = None, search: str | None = None) -> ChecklistResponse:
    try:
        listing = session.visible_documents(view_id, search)
    except CatalogError as e:
        raise _to_http_error(e)

    in_overflow = listing.view_id == session.overflow_view_id
    documents = [
        DocumentItem(
            id=state.id,
            name=state.name,
            required=state.required,
            provided=state.provided,
            source=state.source.value,
            locked=state.source == RequirementSource.CONDITION and not in_overflow,
        )
        for state in listing.documents
    ]
    return ChecklistResponse(
        record_id=session.record_id,
        active_view=session.active_view,
        view=listing.view_id,
        views=[ViewItem(id=view.id, title=view.title, description=view.description) for view in session.displayable_views()],
        documents=documents,
        empty_reason=listing.empty_reason.value if listing.empty_reason else None,
        progress=session.progress,
        dossier_state=session.dossier_state.value,
        is_completed=session.is_completed,
        has_unsaved_changes=session.has_unsaved_changes,
        external_drift=session.external_drift,
        missing_documents=session.missing_documents,
        last_error=session.last_error,
    )


@router.get("/{record_id}/checklist")
async def get_checklist(
    request: Request,
    record_id: str,
    view: str | None = None,
    search: str | None = None,
    _: None = Depends(verify_api_key),
) -> ChecklistResponse:
    """Return the checklist of a record, fetching it on first access.

    Args:
        request (Request): FastAPI request (provides app.state.session_manager).
        record_id (str): The record id.
        view (str | None): The view to list; defaults to the active view.
        search (str | None): Optional filter on document names.
        _ (None): Auth dependency result (unused).

    Returns:
        ChecklistResponse: The checklist snapshot.
    """
    session = await _load_session(request, record_id)
    return _build_checklist(session, view, search)


@router.post("/{record_id}/refresh")
async def refresh_checklist(request: Request, record_id: str, _: None = Depends(verify_api_key)) -> ChecklistResponse:
    """Refetch the record unconditionally (e.g. when the user comes back to the page)."""
    manager = _get_manager(request)
    session = manager.get_session(record_id)
    try:
        await session.fetch_all()
    except StoreError as e:
        raise _to_http_error(e)
    return _build_checklist(session)


@router.post("/{record_id}/documents/{document_id}/toggle")
async def toggle_document(
    request: Request,
    record_id: str,
    document_id: str,
    body: ToggleRequest,
    _: None = Depends(verify_api_key),
) -> ChecklistResponse:
    """Change the required or provided flag of a document.

    Raises:
        HTTPException: 404 for an unknown document, 409 if the document's conditions reject the value.
    """
    session = await _load_session(request, record_id)
    try:
        applied = await session.toggle(document_id, body.field, body.value, body.view_id)
    except UnknownDocumentError as e:
        raise _to_http_error(e)
    if not applied:
        raise HTTPException(status_code=409, detail=f"The conditions of '{document_id}' do not allow {body.field}={body.value}.")
    return _build_checklist(session, body.view_id)


@router.post("/{record_id}/save")
async def save_checklist(request: Request, record_id: str, _: None = Depends(verify_api_key)) -> SaveResponse:
    """Persist the full checklist of a record."""
    session = await _load_session(request, record_id)
    result = await session.save()
    return SaveResponse(result=result, checklist=_build_checklist(session))


@router.post("/{record_id}/reset")
async def reset_checklist(request: Request, record_id: str, _: None = Depends(verify_api_key)) -> ChecklistResponse:
    """Discard the unsaved changes of a record."""
    session = await _load_session(request, record_id)
    await session.reset()
    return _build_checklist(session)


@router.post("/{record_id}/notify")
async def notify_missing_documents(request: Request, record_id: str, _: None = Depends(verify_api_key)) -> SaveResponse:
    """Ask the store workflow to email the missing documents list."""
    session = await _load_session(request, record_id)
    result = await session.notify_missing_documents()
    return SaveResponse(result=result, checklist=_build_checklist(session))
