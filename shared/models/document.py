"""Pydantic models for the runtime document set of one record.

Hierarchy:
  RequirementStatus  : outcome of the requirement resolver for one document.
  DocumentState      : a catalog document merged with its current flags.
  DossierState       : aggregate completion state of the whole document set.
  Progress           : provided/required ratio.
"""

from enum import Enum

from pydantic import BaseModel

from shared.models.catalog import DocumentDefinition


class RequirementSource(str, Enum):
    CONDITION = "condition"
    MANUAL = "manual"


class RequirementStatus(BaseModel):
    required: bool
    source: RequirementSource
    conditions_met: bool
    has_conditions: bool

    @property
    def locked(self) -> bool:
        """Condition-required documents are read-only outside the overflow view."""
        return self.source == RequirementSource.CONDITION


class DocumentState(BaseModel):
    """
    Represents one document of the record at runtime.

    Attributes:
        definition (DocumentDefinition): The static catalog entry.
        required (bool): Current (possibly locally modified) required flag.
        provided (bool): Current (possibly locally modified) provided flag.
        stored_required (bool): Required flag as last read from the store.
        source (RequirementSource): Whether `required` comes from conditions or the manual flag.
    """

    definition: DocumentDefinition
    required: bool = False
    provided: bool = False
    stored_required: bool = False
    source: RequirementSource = RequirementSource.MANUAL

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    def has_name(self) -> bool:
        return bool(self.definition.name and self.definition.name.strip())

    def is_trackable(self) -> bool:
        return self.definition.is_trackable()


class DossierState(str, Enum):
    """Aggregate state of a dossier. Values are the labels persisted in the store."""

    TO_BUILD = "À construire"
    INCOMPLETE = "En construction"
    COMPLETE = "Complet"

    @classmethod
    def from_label(cls, label: str | None) -> "DossierState":
        """Parses a stored label; unknown or empty labels fall back to TO_BUILD."""
        if label:
            cleaned = label.strip()
            for member in cls:
                if member.value == cleaned or member.name == cleaned.upper():
                    return member
        return cls.TO_BUILD


class Progress(BaseModel):
    provided: int
    required: int
    percentage: int
    # False when nothing is required: 100% is vacuous and should not be rendered
    displayable: bool
