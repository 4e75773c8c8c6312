"""Read-only snapshot of the record properties fetched from the store."""

from typing import Iterator, Mapping

PropertyValue = str | list[str] | None

_TRUE_VALUES = ("true", "1", "yes", "oui")


class PropertyBag(Mapping[str, PropertyValue]):
    """Immutable mapping of store field names to their fetched values.

    Exact key lookup goes through the normal Mapping protocol. `lookup()` is
    the only place where a case-insensitive fallback is applied, because the
    casing of external field names is not under our control.
    """

    def __init__(self, values: Mapping[str, PropertyValue] | None = None) -> None:
        self._values: dict[str, PropertyValue] = dict(values or {})

    def __getitem__(self, key: str) -> PropertyValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PropertyBag({self._values!r})"

    def lookup(self, name: str) -> PropertyValue:
        """Returns the value for `name`, scanning case-insensitively when the exact key is absent.

        Args:
            name (str): The store field name.

        Returns:
            PropertyValue: The value, or None when no key matches.
        """
        if name in self._values:
            return self._values[name]
        lowered = name.lower()
        for key, value in self._values.items():
            if key.lower() == lowered:
                return value
        return None

    def get_text(self, name: str) -> str:
        """Returns the trimmed string form of a property; lists are joined with ';'."""
        value = self.lookup(name)
        if value is None:
            return ""
        if isinstance(value, list):
            return ";".join(str(item) for item in value).strip()
        return str(value).strip()

    def get_flag(self, name: str) -> bool:
        return to_bool(self.lookup(name))


def to_bool(value: object) -> bool:
    """Converts the various store representations of a checkbox into a boolean.

    Handles "true"/"false", "1"/"0", "yes"/"no", "oui"/"non" and "--".
    Anything unrecognised is False.
    """
    if isinstance(value, bool):
        return value
    if value is None or value == "":
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)
