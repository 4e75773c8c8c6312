from shared.models.catalog import Condition
from shared.models.property_bag import PropertyBag
from shared.rules.conditions import evaluate_condition, evaluate_conditions, split_multi_value


def _cond(operator: str, value: str, prop: str = "field") -> Condition:
    return Condition(property=prop, operator=operator, value=value)


def test_equals_trims_both_sides():
    bag = PropertyBag({"field": "  Oui "})
    assert evaluate_condition(_cond("equals", "Oui "), bag)
    assert not evaluate_condition(_cond("equals", "oui"), bag)


def test_not_equals():
    bag = PropertyBag({"field": "Non"})
    assert evaluate_condition(_cond("not_equals", "Oui"), bag)
    assert not evaluate_condition(_cond("not_equals", "Non"), bag)


def test_contains_is_case_insensitive():
    bag = PropertyBag({"field": "Salarié en CDI"})
    assert evaluate_condition(_cond("contains", "cdi"), bag)
    assert evaluate_condition(_cond("not_contains", "retraité"), bag)
    assert not evaluate_condition(_cond("not_contains", "SALARIÉ"), bag)


def test_in_matches_semicolon_values():
    bag = PropertyBag({"field": "A;B"})
    assert evaluate_condition(_cond("in", "B"), bag)
    assert not evaluate_condition(_cond("in", "C"), bag)


def test_in_is_representation_invariant():
    representations = [["A", "B  C"], "A;B C", " A ; B   C ", "A,B C"]
    for raw in representations:
        bag = PropertyBag({"field": raw})
        assert evaluate_condition(_cond("in", "B C"), bag), raw
        assert not evaluate_condition(_cond("in", "B"), bag), raw


def test_in_with_single_value():
    assert evaluate_condition(_cond("in", "Oui"), PropertyBag({"field": "Oui"}))


def test_in_with_absent_or_empty_value_is_false():
    assert not evaluate_condition(_cond("in", "A"), PropertyBag({}))
    assert not evaluate_condition(_cond("in", "A"), PropertyBag({"field": ""}))
    assert not evaluate_condition(_cond("in", "A"), PropertyBag({"field": []}))


def test_property_name_falls_back_to_case_insensitive_lookup():
    bag = PropertyBag({"Sous_Categorie": "X"})
    assert evaluate_condition(_cond("equals", "X", prop="sous_categorie"), bag)


def test_exact_property_name_wins_over_case_insensitive_match():
    bag = PropertyBag({"Field": "other", "field": "X"})
    assert evaluate_condition(_cond("equals", "X", prop="field"), bag)


def test_unknown_operator_is_treated_as_satisfied():
    assert evaluate_condition(_cond("starts_with", "zzz"), PropertyBag({"field": "abc"}))


def test_conditions_on_same_property_are_or_combined():
    conditions = [_cond("equals", "A"), _cond("equals", "B")]
    assert evaluate_conditions(conditions, PropertyBag({"field": "B"}))
    assert not evaluate_conditions(conditions, PropertyBag({"field": "C"}))


def test_conditions_on_different_properties_are_and_combined():
    conditions = [_cond("equals", "A", prop="one"), _cond("equals", "B", prop="two")]
    assert evaluate_conditions(conditions, PropertyBag({"one": "A", "two": "B"}))
    assert not evaluate_conditions(conditions, PropertyBag({"one": "A", "two": "X"}))


def test_no_conditions_is_true():
    assert evaluate_conditions([], PropertyBag({}))


def test_split_multi_value_prefers_semicolon():
    assert split_multi_value("a,b;c") == ["a,b", "c"]
    assert split_multi_value("a, b") == ["a", "b"]
    assert split_multi_value(None) == []


def test_split_multi_value_normalizes_list_items():
    assert split_multi_value([" Oui ", "Marié  à", ""]) == ["Oui", "Marié à"]
