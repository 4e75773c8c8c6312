"""Aggregate completion of a record's document set.

Only trackable documents (with at least one view configuration) count.
"""

import html
import math

from shared.models.document import DocumentState, DossierState, Progress


def _trackable(documents: list[DocumentState]) -> list[DocumentState]:
    return [document for document in documents if document.is_trackable()]


def calculate_dossier_state(documents: list[DocumentState]) -> DossierState:
    """
    Derives the dossier state.

    No required document: TO_BUILD. Some document provided: COMPLETE when every
    required document is provided, INCOMPLETE otherwise. Required documents but
    nothing provided yet: TO_BUILD.
    """
    docs = _trackable(documents)
    if not any(document.required for document in docs):
        return DossierState.TO_BUILD
    if any(document.provided for document in docs):
        if all(document.provided for document in docs if document.required):
            return DossierState.COMPLETE
        return DossierState.INCOMPLETE
    return DossierState.TO_BUILD


def is_completed(documents: list[DocumentState]) -> bool:
    """True when at least one document is required and all required documents are provided."""
    required = [document for document in _trackable(documents) if document.required]
    return bool(required) and all(document.provided for document in required)


def calculate_progress(documents: list[DocumentState]) -> Progress:
    required = [document for document in _trackable(documents) if document.required]
    provided = [document for document in required if document.provided]
    if not required:
        return Progress(provided=0, required=0, percentage=100, displayable=False)
    # half-up rounding, round() would round 12.5 down to 12
    percentage = math.floor(len(provided) * 100 / len(required) + 0.5)
    return Progress(provided=len(provided), required=len(required), percentage=percentage, displayable=True)


def get_missing_documents(documents: list[DocumentState]) -> list[str]:
    """Names of required documents that are not provided, skipping unnamed ones."""
    return [
        document.name.strip()
        for document in _trackable(documents)
        if document.required and not document.provided and document.has_name()
    ]


def format_missing_documents(names: list[str]) -> str:
    """Renders the missing documents as an HTML list for the rich-text store field."""
    if not names:
        return ""
    items = "".join(f"<li>{html.escape(name)}</li>" for name in names)
    return f"<ul>{items}</ul>"
