from shared.helper.HelperConfig import HelperConfig
from shared.models.catalog import DocumentDefinition
from shared.models.document import DocumentState, RequirementSource, RequirementStatus
from shared.models.property_bag import PropertyBag
from shared.rules.conditions import evaluate_conditions


class RequirementResolver:
    """Decides, per document, whether it is required and where that decision comes from."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    ##########################################
    ############### CONDITIONS ###############
    ##########################################

    def conditions_met(self, document: DocumentDefinition, bag: PropertyBag, view_id: str | None = None) -> bool:
        """
        Evaluates the conditions of a document.

        Args:
            document (DocumentDefinition): The catalog document.
            bag (PropertyBag): The record properties.
            view_id (str | None): Evaluate only the conditions of this view. None pools the conditions of all views.

        Returns:
            bool: True if every property group has at least one matching condition.
        """
        return evaluate_conditions(document.get_conditions(view_id), bag)

    ##########################################
    ############### RESOLUTION ###############
    ##########################################

    def resolve(self, document: DocumentDefinition, bag: PropertyBag, manual_required: bool, provided: bool) -> RequirementStatus:
        """
        Computes the required status of a document.

        Conditions that hold force the document to required. Conditions that do not
        hold keep the manual flag only while the document is provided; otherwise the
        requirement collapses to False. Without conditions the manual flag is used as is.

        Args:
            document (DocumentDefinition): The catalog document.
            bag (PropertyBag): The record properties.
            manual_required (bool): The required flag last persisted in the store.
            provided (bool): Whether the document is currently provided.

        Returns:
            RequirementStatus: The resolved status.
        """
        has_conditions = document.has_conditions()
        if not has_conditions:
            return RequirementStatus(
                required=manual_required,
                source=RequirementSource.MANUAL,
                conditions_met=True,
                has_conditions=False,
            )

        met = self.conditions_met(document, bag)
        if met:
            return RequirementStatus(
                required=True,
                source=RequirementSource.CONDITION,
                conditions_met=True,
                has_conditions=True,
            )

        return RequirementStatus(
            required=manual_required if provided else False,
            source=RequirementSource.MANUAL,
            conditions_met=False,
            has_conditions=True,
        )

    def build_state(self, document: DocumentDefinition, bag: PropertyBag) -> DocumentState:
        """Builds the runtime state of a document from freshly fetched store values."""
        stored_required = bag.get_flag(document.required_property)
        provided = bag.get_flag(document.provided_property)
        status = self.resolve(document, bag, manual_required=stored_required, provided=provided)
        return DocumentState(
            definition=document,
            required=status.required,
            provided=provided,
            stored_required=stored_required,
            source=status.source,
        )

    def needs_correction(self, state: DocumentState) -> bool:
        """True when conditions force a document to required but the store still says otherwise."""
        return state.source == RequirementSource.CONDITION and not state.stored_required

    ##########################################
    ################ TOGGLES #################
    ##########################################

    def can_toggle_required(self, state: DocumentState, bag: PropertyBag, value: bool, in_overflow_view: bool) -> bool:
        """
        Checks whether the user may set the required flag of a document to `value`.

        Manual control is always allowed in the overflow view. Elsewhere, a document
        with conditions only accepts the value its conditions dictate.

        Args:
            state (DocumentState): The document.
            bag (PropertyBag): The record properties.
            value (bool): Requested required flag.
            in_overflow_view (bool): Whether the toggle comes from the overflow view.

        Returns:
            bool: True if the toggle is allowed.
        """
        if in_overflow_view:
            return True
        if not state.definition.has_conditions():
            return True
        met = self.conditions_met(state.definition, bag)
        if value != met:
            self.logging.debug(
                "Rejected required=%s on '%s': conditions currently %s.",
                value, state.id, "met" if met else "unmet",
            )
            return False
        return True

    def apply_required_toggle(self, state: DocumentState, bag: PropertyBag, value: bool, in_overflow_view: bool) -> bool:
        """Applies a required toggle in place if allowed; returns whether it was applied."""
        if not self.can_toggle_required(state, bag, value, in_overflow_view):
            return False
        state.required = value
        if state.definition.has_conditions() and self.conditions_met(state.definition, bag) and value:
            state.source = RequirementSource.CONDITION
        else:
            state.source = RequirementSource.MANUAL
        return True
