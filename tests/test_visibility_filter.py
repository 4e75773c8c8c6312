from shared.catalog.CatalogLoader import CatalogLoader
from shared.models.property_bag import PropertyBag
from shared.rules.RequirementResolver import RequirementResolver
from shared.rules.VisibilityFilter import EmptyReason, VisibilityFilter

from tests.support import DECRET, MARIAGE


def _states(helper_config, catalog, bag):
    resolver = RequirementResolver(helper_config)
    return resolver, [resolver.build_state(document, bag) for document in catalog.documents]


def _ids(listing):
    return [state.id for state in listing.documents]


def test_active_view_shows_documents_with_met_conditions(helper_config, catalog):
    bag = PropertyBag({"sous_categorie": MARIAGE, "marie_etranger": "Non"})
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")
    listing = visibility.get_visible_documents(states, bag, "naturalisation_mariage", "naturalisation_mariage")
    # required first, then view order
    assert _ids(listing) == ["passport", "domicile"]


def test_overflow_shows_unclaimed_flagged_and_unmet_documents(helper_config, catalog):
    bag = PropertyBag({
        "sous_categorie": MARIAGE,
        "marie_etranger": "Non",
        "enfants_required": "true",
        "enfants_provided": "true",
    })
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")
    listing = visibility.get_visible_documents(states, bag, "autre", "naturalisation_mariage")
    assert set(_ids(listing)) == {"enfants", "acte_mariage"}
    assert _ids(listing)[0] == "enfants"


def test_untrackable_documents_are_never_listed(helper_config, catalog):
    bag = PropertyBag({"orphelin_required": "true"})
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")
    for view_id in catalog.get_view_ids():
        assert "orphelin" not in _ids(visibility.get_visible_documents(states, bag, view_id, None))


def test_required_and_provided_document_stays_visible_when_condition_stops_matching(helper_config, catalog):
    bag = PropertyBag({"sous_categorie": DECRET, "passport_required": "true", "passport_provided": "true"})
    resolver, states = _states(helper_config, catalog, bag)
    passport = next(state for state in states if state.id == "passport")
    assert passport.required and passport.provided

    visibility = VisibilityFilter(helper_config, resolver, "autre")
    assert "passport" in _ids(visibility.get_visible_documents(states, bag, "naturalisation_mariage", "decret"))


def test_scenario_c_document_moves_to_overflow(helper_config, catalog):
    # passport was required for the mariage view, the category then changed
    bag = PropertyBag({"sous_categorie": "Titre de séjour", "passport_required": "true", "passport_provided": "true"})
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")
    assert "passport" in _ids(visibility.get_visible_documents(states, bag, "autre", None))


def test_empty_view_and_empty_search_are_distinct(helper_config, catalog):
    bag = PropertyBag({"sous_categorie": MARIAGE, "marie_etranger": "Oui"})
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")

    empty = visibility.get_visible_documents(states, bag, "autre", "naturalisation_mariage")
    assert empty.documents == [] and empty.empty_reason == EmptyReason.EMPTY_VIEW

    no_match = visibility.get_visible_documents(states, bag, "naturalisation_mariage", "naturalisation_mariage", "introuvable")
    assert no_match.documents == [] and no_match.empty_reason == EmptyReason.NO_SEARCH_MATCH


def test_search_is_case_insensitive(helper_config, catalog):
    bag = PropertyBag({"sous_categorie": MARIAGE})
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")
    listing = visibility.get_visible_documents(states, bag, "naturalisation_mariage", "naturalisation_mariage", "PASSE")
    assert _ids(listing) == ["passport"]
    assert listing.empty_reason is None


def _document(document_id, name, view_config):
    return {
        "id": document_id,
        "name": name,
        "requiredProperty": f"{document_id}_required",
        "providedProperty": f"{document_id}_provided",
        "viewConfig": view_config,
    }


def test_same_order_sorts_by_name_case_insensitive(helper_config):
    raw_views = [{"id": "pieces", "title": "Pièces"}, {"id": "autre", "title": "Autre"}]
    raw_documents = [
        _document("bulletin", "B doc", {"pieces": {"order": 1, "conditions": []}}),
        _document("avis", "a doc", {"pieces": {"order": 1, "conditions": []}}),
        _document("releve", "C doc", {"pieces": {"order": 0, "conditions": []}}),
    ]
    catalog = CatalogLoader(helper_config).build(raw_documents, raw_views)
    bag = PropertyBag({})
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")

    listing = visibility.get_visible_documents(states, bag, "pieces", "pieces")
    assert _ids(listing) == ["releve", "avis", "bulletin"]


def test_overflow_sorts_by_active_view_order(helper_config):
    unmet = [{"property": "statut", "operator": "equals", "value": "Oui"}]
    raw_views = [{"id": "pieces", "title": "Pièces"}, {"id": "autre", "title": "Autre"}]
    raw_documents = [
        _document("alpha", "Alpha", {"pieces": {"order": 2, "conditions": unmet}}),
        _document("zeta", "Zeta", {"pieces": {"order": 1, "conditions": unmet}}),
    ]
    catalog = CatalogLoader(helper_config).build(raw_documents, raw_views)
    bag = PropertyBag({"statut": "Non"})
    resolver, states = _states(helper_config, catalog, bag)
    visibility = VisibilityFilter(helper_config, resolver, "autre")

    listing = visibility.get_visible_documents(states, bag, "autre", "pieces")
    assert _ids(listing) == ["zeta", "alpha"]
