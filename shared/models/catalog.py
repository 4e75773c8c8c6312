"""Pydantic models for the static document catalog.

Hierarchy:
  Condition           : one predicate over a record property.
  ViewConfig          : per-view display order and applicability conditions.
  DocumentDefinition  : one trackable document and the views it belongs to.
  ViewDefinition      : a checklist view (tab).
  RoutingRule         : keyword rule used when a category maps to several views.
  Catalog             : everything above, loaded once at startup.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ORDER = 9999


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IN = "in"

    @classmethod
    def values(cls) -> set[str]:
        return {member.value for member in cls}


class Condition(BaseModel):
    """A single predicate evaluated against the record property bag.

    The operator is kept as a plain string so that a catalog loaded in
    permissive mode can still carry operators this module does not know.
    """

    model_config = ConfigDict(frozen=True)

    property: str
    operator: str
    value: str = ""


class ViewConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    order: int = DEFAULT_ORDER
    conditions: list[Condition] = []


class DocumentDefinition(BaseModel):
    """Represents one document of the catalog, as configured in documents.json."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    required_property: str = Field(alias="requiredProperty")
    provided_property: str = Field(alias="providedProperty")
    view_config: dict[str, ViewConfig] = Field(default_factory=dict, alias="viewConfig")

    def belongs_to(self, view_id: str | None) -> bool:
        return view_id is not None and view_id in self.view_config

    def is_trackable(self) -> bool:
        """A document without any view configuration is never shown nor counted."""
        return bool(self.view_config)

    def get_order(self, view_id: str | None) -> int:
        """Returns the display order for a view, or the smallest configured order as fallback."""
        if view_id is not None and view_id in self.view_config:
            return self.view_config[view_id].order
        if not self.view_config:
            return DEFAULT_ORDER
        return min(cfg.order for cfg in self.view_config.values())

    def get_conditions(self, view_id: str | None = None) -> list[Condition]:
        """Returns the conditions of one view, or the pooled conditions of all views.

        Pooled conditions are de-duplicated while keeping their first-seen order,
        so a condition repeated in several views is only evaluated once.
        """
        if view_id is not None:
            cfg = self.view_config.get(view_id)
            return list(cfg.conditions) if cfg else []

        pooled: list[Condition] = []
        for cfg in self.view_config.values():
            for condition in cfg.conditions:
                if condition not in pooled:
                    pooled.append(condition)
        return pooled

    def has_conditions(self, view_id: str | None = None) -> bool:
        return len(self.get_conditions(view_id)) > 0


class ViewDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""


class RoutingRule(BaseModel):
    """Keyword rule: a category value containing `keyword` prefers `view`."""

    model_config = ConfigDict(frozen=True)

    keyword: str
    view: str


class Catalog(BaseModel):
    """The complete static configuration the rule engine works on."""

    model_config = ConfigDict(frozen=True)

    documents: list[DocumentDefinition]
    views: list[ViewDefinition]
    category_property: str
    overflow_view_id: str
    conditional_properties: list[str] = []
    routing_rules: list[RoutingRule] = []

    def get_document(self, document_id: str) -> DocumentDefinition | None:
        for document in self.documents:
            if document.id == document_id:
                return document
        return None

    def get_view(self, view_id: str) -> ViewDefinition | None:
        for view in self.views:
            if view.id == view_id:
                return view
        return None

    def get_view_ids(self) -> list[str]:
        return [view.id for view in self.views]
