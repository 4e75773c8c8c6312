from enum import Enum

from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentState
from shared.models.property_bag import PropertyBag
from shared.rules.RequirementResolver import RequirementResolver


class EmptyReason(str, Enum):
    EMPTY_VIEW = "empty_view"
    NO_SEARCH_MATCH = "no_search_match"


class ViewListing(BaseModel):
    """Documents to display in one view, already filtered and sorted."""

    view_id: str
    documents: list[DocumentState] = []
    empty_reason: EmptyReason | None = None


class VisibilityFilter:
    """Decides which documents appear in the active view and in the overflow view."""

    def __init__(self, helper_config: HelperConfig, resolver: RequirementResolver, overflow_view_id: str):
        self.logging = helper_config.get_logger()
        self._resolver = resolver
        self._overflow_view_id = overflow_view_id

    ##########################################
    ################ CHECKER #################
    ##########################################

    def is_claimed(self, state: DocumentState, bag: PropertyBag, active_view_id: str | None) -> bool:
        """True when the document belongs to the active view and its conditions hold there."""
        if not state.definition.belongs_to(active_view_id):
            return False
        return self._resolver.conditions_met(state.definition, bag, active_view_id)

    def is_visible_in_overflow(self, state: DocumentState, bag: PropertyBag, active_view_id: str | None) -> bool:
        """
        Overflow view: flagged documents the active view does not claim, plus documents of
        the active view whose conditions do not hold (manageable exceptions).
        """
        claimed = self.is_claimed(state, bag, active_view_id)
        if (state.required or state.provided) and not claimed:
            return True
        return state.definition.belongs_to(active_view_id) and not claimed

    def is_visible_in_view(self, state: DocumentState, bag: PropertyBag, view_id: str) -> bool:
        """
        Regular view: documents of the view whose conditions hold there, or that are both
        required and provided so completed items stay visible after their trigger stops.
        """
        if not state.definition.belongs_to(view_id):
            return False
        if state.required and state.provided:
            return True
        return self._resolver.conditions_met(state.definition, bag, view_id)

    ##########################################
    ################ FILTER ##################
    ##########################################

    def get_visible_documents(
        self,
        documents: list[DocumentState],
        bag: PropertyBag,
        view_id: str,
        active_view_id: str | None,
        search_term: str | None = None,
    ) -> ViewListing:
        """
        Filters and sorts the documents of a view.

        Args:
            documents (list[DocumentState]): The full document set of the record.
            bag (PropertyBag): The record properties.
            view_id (str): The view to list.
            active_view_id (str | None): The routed active view, used by the overflow view.
            search_term (str | None): Optional case-insensitive filter on document names.

        Returns:
            ViewListing: Sorted documents, with the reason when the list is empty.
        """
        in_overflow = view_id == self._overflow_view_id
        visible: list[DocumentState] = []
        for state in documents:
            # unnamed or unconfigured documents are never rendered
            if not state.has_name() or not state.is_trackable():
                continue
            if in_overflow:
                shown = self.is_visible_in_overflow(state, bag, active_view_id)
            else:
                shown = self.is_visible_in_view(state, bag, view_id)
            if shown:
                visible.append(state)

        if not visible:
            return ViewListing(view_id=view_id, empty_reason=EmptyReason.EMPTY_VIEW)

        term = (search_term or "").strip().lower()
        if term:
            visible = [state for state in visible if term in state.name.lower()]
            if not visible:
                return ViewListing(view_id=view_id, empty_reason=EmptyReason.NO_SEARCH_MATCH)

        order_view = active_view_id if in_overflow else view_id
        visible.sort(key=lambda state: (
            not state.required,
            state.definition.get_order(order_view),
            state.name.lower(),
        ))
        return ViewListing(view_id=view_id, documents=visible)
