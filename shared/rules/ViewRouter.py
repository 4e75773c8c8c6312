from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig
from shared.models.catalog import Catalog, ConditionOperator, DocumentDefinition
from shared.rules.conditions import normalize_text


class RouteResult(BaseModel):
    """
    Outcome of routing a category value to a view.

    Attributes:
        view_id (str | None): The active view, or None when nothing matched.
        candidates (list[str]): Every view whose configuration references the category value.
        matched_by (str): Which rule decided: "unique", "single_condition", "rule", "fallback" or "none".
        ambiguous (bool): True when the catalog maps the category to several views.
    """

    view_id: str | None = None
    candidates: list[str] = []
    matched_by: str = "none"
    ambiguous: bool = False


class ViewRouter:
    """Maps the record's category value to exactly one active view."""

    def __init__(self, helper_config: HelperConfig, catalog: Catalog):
        self.logging = helper_config.get_logger()
        self._catalog = catalog
        self._category_property = catalog.category_property
        self._overflow_view_id = catalog.overflow_view_id
        self._view_order = catalog.get_view_ids()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_overflow_view_id(self) -> str:
        return self._overflow_view_id

    def get_category_property(self) -> str:
        return self._category_property

    ##########################################
    ################ ROUTING #################
    ##########################################

    def route(self, category_value: str | None) -> RouteResult:
        """
        Determines the active view for a category value.

        Resolution order: a single candidate view; views where the category condition is
        the only condition; the ordered keyword rule table; the first candidate in view
        order (logged as a configuration warning).

        Args:
            category_value (str | None): The record's category value.

        Returns:
            RouteResult: The routing outcome. `view_id` is None when nothing matches.
        """
        if not category_value or not category_value.strip():
            return RouteResult()

        normalized = normalize_text(category_value)
        pairs = self._find_candidates(normalized)
        candidates = self._sorted_views({view_id for _, view_id in pairs})
        if not candidates:
            self.logging.debug("No view references category value %r.", normalized)
            return RouteResult()

        if len(candidates) == 1:
            return RouteResult(view_id=candidates[0], candidates=candidates, matched_by="unique")

        # prefer views in which the category condition stands alone
        single = self._sorted_views({
            view_id for document, view_id in pairs
            if len(document.get_conditions(view_id)) == 1
        })
        if len(single) == 1:
            return RouteResult(view_id=single[0], candidates=candidates, matched_by="single_condition", ambiguous=True)

        pool = single or candidates
        lowered = normalized.lower()
        for rule in self._catalog.routing_rules:
            if rule.keyword.lower() in lowered and rule.view in pool:
                return RouteResult(view_id=rule.view, candidates=candidates, matched_by="rule", ambiguous=True)

        self.logging.warning(
            "Category value %r matches several views %s and no routing rule decides; using '%s'.",
            normalized, pool, pool[0],
        )
        return RouteResult(view_id=pool[0], candidates=candidates, matched_by="fallback", ambiguous=True)

    def audit(self) -> dict[str, list[str]]:
        """
        Lists every category value that the catalog maps to more than one view.

        Returns:
            dict[str, list[str]]: Category value -> candidate view ids, only for ambiguous values.
        """
        values: dict[str, set[str]] = {}
        for document in self._catalog.documents:
            for view_id, cfg in document.view_config.items():
                if view_id == self._overflow_view_id:
                    continue
                for condition in cfg.conditions:
                    if self._is_category_condition(condition.property, condition.operator):
                        values.setdefault(normalize_text(condition.value), set()).add(view_id)

        ambiguous = {value: self._sorted_views(views) for value, views in values.items() if len(views) > 1}
        for value, views in ambiguous.items():
            self.logging.warning("Configuration warning: category value %r maps to several views %s.", value, views)
        return ambiguous

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _is_category_condition(self, property_name: str, operator: str) -> bool:
        return property_name == self._category_property and operator == ConditionOperator.EQUALS.value

    def _find_candidates(self, normalized_value: str) -> list[tuple[DocumentDefinition, str]]:
        pairs: list[tuple[DocumentDefinition, str]] = []
        for document in self._catalog.documents:
            for view_id, cfg in document.view_config.items():
                if view_id == self._overflow_view_id:
                    continue
                for condition in cfg.conditions:
                    if self._is_category_condition(condition.property, condition.operator) and normalize_text(condition.value) == normalized_value:
                        pairs.append((document, view_id))
                        break
        return pairs

    def _sorted_views(self, view_ids: set[str]) -> list[str]:
        """Sorts view ids by their catalog order; unknown views go last, alphabetically."""
        known = [view_id for view_id in self._view_order if view_id in view_ids]
        unknown = sorted(view_id for view_id in view_ids if view_id not in self._view_order)
        return known + unknown
