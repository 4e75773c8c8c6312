"""Pure helpers for tolerating fields that are missing from the store schema."""


def eliminate_failed_fields(pending: dict[str, str], failed: set[str]) -> dict[str, str]:
    """Returns the pending write batch without the fields the store rejected as non-existent.

    Args:
        pending (dict[str, str]): Field name -> value still to be written.
        failed (set[str]): Field names reported as non-existent.

    Returns:
        dict[str, str]: A new batch; `pending` is not modified.
    """
    return {name: value for name, value in pending.items() if name not in failed}


def serialize_values(values: dict[str, object]) -> dict[str, str]:
    """Serializes a write batch for the store.

    Booleans become "true"/"false" and None values are dropped. Empty strings are
    kept so that a summary field can be cleared.
    """
    serialized: dict[str, str] = {}
    for name, value in values.items():
        if isinstance(value, bool):
            serialized[name] = "true" if value else "false"
        elif value is not None:
            serialized[name] = str(value)
    return serialized
