from shared.models.catalog import DocumentDefinition
from shared.models.document import RequirementSource
from shared.models.property_bag import PropertyBag, to_bool
from shared.rules.RequirementResolver import RequirementResolver

from tests.support import DECRET, MARIAGE


def test_conditions_met_forces_required(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    bag = PropertyBag({"sous_categorie": MARIAGE, "passport_required": "false"})
    state = resolver.build_state(catalog.get_document("passport"), bag)
    assert state.required is True
    assert state.source == RequirementSource.CONDITION
    assert resolver.needs_correction(state)


def test_unmet_conditions_without_provided_collapse_to_false(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    bag = PropertyBag({"sous_categorie": "Autre chose", "passport_required": "true", "passport_provided": "false"})
    state = resolver.build_state(catalog.get_document("passport"), bag)
    assert state.required is False
    assert state.source == RequirementSource.MANUAL


def test_unmet_conditions_with_provided_keep_manual_flag(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    bag = PropertyBag({"sous_categorie": "Autre chose", "passport_required": "true", "passport_provided": "true"})
    state = resolver.build_state(catalog.get_document("passport"), bag)
    assert state.required is True
    assert state.source == RequirementSource.MANUAL
    assert not resolver.needs_correction(state)


def test_identity_law_for_documents_without_conditions(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    document = catalog.get_document("domicile")
    for manual in (True, False):
        for provided in (True, False):
            status = resolver.resolve(document, PropertyBag({"sous_categorie": MARIAGE}), manual, provided)
            assert status.required is manual
            assert status.source == RequirementSource.MANUAL
            assert not status.locked


def test_conditions_are_pooled_across_views(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    document = catalog.get_document("passport")
    assert resolver.conditions_met(document, PropertyBag({"sous_categorie": DECRET}))
    assert not resolver.conditions_met(document, PropertyBag({"sous_categorie": DECRET}), view_id="naturalisation_mariage")


def test_or_group_inside_document_conditions(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    document = catalog.get_document("bulletins")
    assert resolver.conditions_met(document, PropertyBag({"sous_categorie": DECRET, "situation_pro": "CDI"}))
    assert resolver.conditions_met(document, PropertyBag({"sous_categorie": DECRET, "situation_pro": "Salarié"}))
    assert not resolver.conditions_met(document, PropertyBag({"sous_categorie": DECRET, "situation_pro": "Retraité"}))
    assert not resolver.conditions_met(document, PropertyBag({"sous_categorie": MARIAGE, "situation_pro": "CDI"}))


def test_toggle_against_conditions_is_rejected_outside_overflow(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    bag = PropertyBag({"sous_categorie": MARIAGE})
    state = resolver.build_state(catalog.get_document("passport"), bag)

    assert not resolver.apply_required_toggle(state, bag, False, in_overflow_view=False)
    assert state.required is True

    assert resolver.apply_required_toggle(state, bag, False, in_overflow_view=True)
    assert state.required is False
    assert state.source == RequirementSource.MANUAL


def test_toggle_matching_unmet_conditions(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    bag = PropertyBag({"sous_categorie": "Autre"})
    state = resolver.build_state(catalog.get_document("passport"), bag)
    assert not resolver.can_toggle_required(state, bag, True, in_overflow_view=False)
    assert resolver.can_toggle_required(state, bag, False, in_overflow_view=False)


def test_toggle_without_conditions_is_always_allowed(helper_config, catalog):
    resolver = RequirementResolver(helper_config)
    bag = PropertyBag({})
    state = resolver.build_state(catalog.get_document("domicile"), bag)
    assert resolver.apply_required_toggle(state, bag, True, in_overflow_view=False)
    assert state.required is True


def test_to_bool_accepts_store_representations():
    for value in ("true", "TRUE", "1", "yes", "oui", " Oui ", True, 1):
        assert to_bool(value), value
    for value in ("false", "0", "no", "non", "--", "", None, False, 0, "maybe"):
        assert not to_bool(value), value


def test_document_definition_accepts_field_names():
    document = DocumentDefinition(id="x", name="X", required_property="x_required", provided_property="x_provided")
    assert not document.is_trackable()
    assert document.get_order("any") == 9999
