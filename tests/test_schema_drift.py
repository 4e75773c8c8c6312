from services.record_sync.schema_drift import eliminate_failed_fields, serialize_values


def test_eliminate_failed_fields_is_pure():
    pending = {"a_required": "true", "b_required": "false", "missing_doc": ""}
    result = eliminate_failed_fields(pending, {"b_required", "unknown"})
    assert result == {"a_required": "true", "missing_doc": ""}
    assert "b_required" in pending


def test_eliminating_everything_yields_empty_batch():
    assert eliminate_failed_fields({"a": "1"}, {"a"}) == {}


def test_serialize_values():
    assert serialize_values({"flag": True, "other": False, "label": "Complet", "summary": "", "skip": None}) == {
        "flag": "true",
        "other": "false",
        "label": "Complet",
        "summary": "",
    }
