"""Loads the static document catalog from JSON files.

Files expected in the catalog directory:
  documents.json               list of document entries
  views.json                   list of {id, title, description}
  conditional_properties.json  flat list of record field names used by conditions
  routing.json                 {categoryProperty, overflowView, rules: [{keyword, view}]}

Document entries use either the current shape
  {id, name, requiredProperty, providedProperty, viewConfig: {view: {order, conditions}}}
or the legacy shape
  {id, name, requiredProperty, providedProperty, tab: str | [str], order: int | [int], conditions: [...]}
in which case the shared conditions are attached to every listed view.
"""

import json
import os

from pydantic import ValidationError

from shared.helper.HelperConfig import HelperConfig
from shared.models.catalog import (
    DEFAULT_ORDER,
    Catalog,
    ConditionOperator,
    DocumentDefinition,
    RoutingRule,
    ViewDefinition,
)

DOCUMENTS_FILE = "documents.json"
VIEWS_FILE = "views.json"
PROPERTIES_FILE = "conditional_properties.json"
ROUTING_FILE = "routing.json"

DEFAULT_CATEGORY_PROPERTY = "sous_categorie"
DEFAULT_OVERFLOW_VIEW = "autre"


class CatalogError(Exception):
    """The catalog cannot be used as configured."""


class CatalogLoader:
    """Reads and validates the catalog once at startup."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._catalog_dir = helper_config.get_path_val("CATALOG_DIR", default="catalog")
        self._permissive = helper_config.get_bool_val("CATALOG_PERMISSIVE_OPERATORS", default=False)

    ##########################################
    ################# LOAD ###################
    ##########################################

    def load(self) -> Catalog:
        """
        Loads all catalog files from the configured directory.

        Returns:
            Catalog: The validated catalog.

        Raises:
            CatalogError: If a file is missing or unreadable, or a condition uses an unknown operator.
        """
        raw_documents = self._read_json(DOCUMENTS_FILE)
        raw_views = self._read_json(VIEWS_FILE)
        raw_properties = self._read_json(PROPERTIES_FILE, default=[])
        raw_routing = self._read_json(ROUTING_FILE, default={})
        return self.build(raw_documents, raw_views, raw_properties, raw_routing)

    def build(self, raw_documents: list, raw_views: list, raw_properties: list | None = None, raw_routing: dict | None = None) -> Catalog:
        """
        Builds a catalog from already parsed JSON structures.

        Malformed document entries are skipped with a warning; unknown operators reject
        the whole catalog unless permissive operators are enabled.

        Returns:
            Catalog: The validated catalog.

        Raises:
            CatalogError: On structural problems or unknown operators.
        """
        if not isinstance(raw_documents, list):
            raise CatalogError(f"{DOCUMENTS_FILE} must contain a list of documents.")
        if not isinstance(raw_views, list):
            raise CatalogError(f"{VIEWS_FILE} must contain a list of views.")
        raw_routing = raw_routing or {}

        views = self._parse_views(raw_views)
        overflow_view_id = raw_routing.get("overflowView") or DEFAULT_OVERFLOW_VIEW
        if overflow_view_id not in {view.id for view in views}:
            views.append(ViewDefinition(id=overflow_view_id, title="Autre"))

        documents: list[DocumentDefinition] = []
        seen_ids: set[str] = set()
        for index, raw in enumerate(raw_documents):
            document = self._parse_document(raw, index)
            if document is None:
                continue
            if document.id in seen_ids:
                self.logging.warning("Duplicate document id '%s' in catalog, keeping the first entry.", document.id)
                continue
            seen_ids.add(document.id)
            documents.append(document)

        self._check_operators(documents)

        rules = []
        for raw_rule in raw_routing.get("rules", []) or []:
            try:
                rules.append(RoutingRule.model_validate(raw_rule))
            except ValidationError as e:
                raise CatalogError(f"Invalid routing rule {raw_rule!r}: {e}")

        catalog = Catalog(
            documents=documents,
            views=views,
            category_property=raw_routing.get("categoryProperty") or DEFAULT_CATEGORY_PROPERTY,
            overflow_view_id=overflow_view_id,
            conditional_properties=[str(p) for p in (raw_properties or []) if str(p).strip()],
            routing_rules=rules,
        )
        self.logging.info(
            "Catalog loaded: %d documents, %d views, %d conditional properties.",
            len(catalog.documents), len(catalog.views), len(catalog.conditional_properties),
        )
        return catalog

    ##########################################
    ################ PARSER ##################
    ##########################################

    def _read_json(self, file_name: str, default=None):
        path = os.path.join(self._catalog_dir, file_name)
        if not os.path.exists(path):
            if default is not None:
                self.logging.debug("Optional catalog file %s not found, using default.", path)
                return default
            raise CatalogError(f"Catalog file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Catalog file {path} is not readable: {e}")

    def _parse_views(self, raw_views: list) -> list[ViewDefinition]:
        views: list[ViewDefinition] = []
        for raw in raw_views:
            try:
                views.append(ViewDefinition.model_validate(raw))
            except ValidationError as e:
                self.logging.warning("Skipping malformed view entry %r: %s", raw, e)
        return views

    def _parse_document(self, raw: object, index: int) -> DocumentDefinition | None:
        if not isinstance(raw, dict):
            self.logging.warning("Skipping catalog entry #%d: not an object.", index)
            return None
        if not str(raw.get("name") or "").strip():
            self.logging.warning("Skipping catalog entry #%d ('%s'): empty name.", index, raw.get("id"))
            return None

        data = dict(raw)
        if "viewConfig" not in data and "view_config" not in data:
            data["viewConfig"] = self._convert_legacy_views(data)
        data.pop("tab", None)
        data.pop("order", None)
        data.pop("conditions", None)

        try:
            return DocumentDefinition.model_validate(data)
        except ValidationError as e:
            self.logging.warning("Skipping malformed catalog entry #%d ('%s'): %s", index, raw.get("id"), e)
            return None

    def _convert_legacy_views(self, raw: dict) -> dict:
        """Converts the legacy tab/order/conditions triple into a viewConfig mapping."""
        tabs = raw.get("tab")
        if not tabs:
            return {}
        tabs = tabs if isinstance(tabs, list) else [tabs]
        orders = raw.get("order")
        conditions = raw.get("conditions") or []

        view_config = {}
        for position, tab in enumerate(tabs):
            if isinstance(orders, list):
                order = orders[position] if position < len(orders) else (orders[0] if orders else DEFAULT_ORDER)
            elif orders is None:
                order = DEFAULT_ORDER
            else:
                order = orders
            view_config[str(tab)] = {"order": order, "conditions": conditions}
        return view_config

    def _check_operators(self, documents: list[DocumentDefinition]) -> None:
        known = ConditionOperator.values()
        unknown = sorted({
            f"{document.id}:{condition.operator}"
            for document in documents
            for cfg in document.view_config.values()
            for condition in cfg.conditions
            if condition.operator not in known
        })
        if not unknown:
            return
        if self._permissive:
            self.logging.warning("Unknown condition operators accepted in permissive mode (treated as satisfied): %s", unknown)
            return
        raise CatalogError(f"Unknown condition operators in catalog: {', '.join(unknown)}")
