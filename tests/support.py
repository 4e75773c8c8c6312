"""Catalog data and an in-memory record store shared by the tests."""

import asyncio

from shared.clients.store.models.StoreErrors import PropertyMissingError, RecordNotFoundError

MARIAGE = "Naturalisation par mariage"
DECRET = "Naturalisation par décret"


def _category(value: str) -> dict:
    return {"property": "sous_categorie", "operator": "equals", "value": value}


RAW_VIEWS = [
    {"id": "naturalisation_mariage", "title": "Naturalisation par mariage"},
    {"id": "decret", "title": "Naturalisation par décret"},
    {"id": "autre", "title": "Autre"},
]

RAW_ROUTING = {
    "categoryProperty": "sous_categorie",
    "overflowView": "autre",
    "rules": [
        {"keyword": "naturalisation", "view": "naturalisation_mariage"},
        {"keyword": "décret", "view": "decret"},
    ],
}

RAW_PROPERTIES = ["sous_categorie", "marie_etranger", "situation_pro", "enfants", "statut_refugie"]

RAW_DOCUMENTS = [
    {
        "id": "passport",
        "name": "Passeport",
        "requiredProperty": "passport_required",
        "providedProperty": "passport_provided",
        "viewConfig": {
            "naturalisation_mariage": {"order": 1, "conditions": [_category(MARIAGE)]},
            "decret": {"order": 1, "conditions": [_category(DECRET)]},
        },
    },
    {
        "id": "acte_mariage",
        "name": "Acte de mariage",
        "requiredProperty": "acte_mariage_required",
        "providedProperty": "acte_mariage_provided",
        "viewConfig": {
            "naturalisation_mariage": {
                "order": 2,
                "conditions": [_category(MARIAGE), {"property": "marie_etranger", "operator": "equals", "value": "Oui"}],
            },
        },
    },
    {
        "id": "bulletins",
        "name": "Bulletins de salaire",
        "requiredProperty": "bulletins_required",
        "providedProperty": "bulletins_provided",
        "viewConfig": {
            "decret": {
                "order": 2,
                "conditions": [
                    _category(DECRET),
                    {"property": "situation_pro", "operator": "contains", "value": "salarié"},
                    {"property": "situation_pro", "operator": "contains", "value": "CDI"},
                ],
            },
        },
    },
    {
        "id": "enfants",
        "name": "Actes de naissance des enfants",
        "requiredProperty": "enfants_required",
        "providedProperty": "enfants_provided",
        "viewConfig": {
            "decret": {"order": 3, "conditions": [{"property": "enfants", "operator": "in", "value": "Oui"}]},
        },
    },
    {
        "id": "domicile",
        "name": "Justificatif de domicile",
        "requiredProperty": "domicile_required",
        "providedProperty": "domicile_provided",
        "viewConfig": {
            "naturalisation_mariage": {"order": 5, "conditions": []},
            "decret": {"order": 4, "conditions": []},
        },
    },
    {
        "id": "refugie",
        "name": "Certificat de réfugié",
        "requiredProperty": "refugie_required",
        "providedProperty": "refugie_provided",
        "viewConfig": {
            "autre": {"order": 1, "conditions": [{"property": "statut_refugie", "operator": "equals", "value": "Oui"}]},
        },
    },
    {
        "id": "orphelin",
        "name": "Document sans vue",
        "requiredProperty": "orphelin_required",
        "providedProperty": "orphelin_provided",
    },
]


class FakeStoreClient:
    """In-memory record store mimicking StoreClientInterface."""

    def __init__(self, records: dict[str, dict] | None = None, missing_fields: set[str] | None = None):
        self.records: dict[str, dict] = {key: dict(value) for key, value in (records or {}).items()}
        self.missing_fields: set[str] = set(missing_fields or set())
        self.errors: list[Exception] = []
        self.fetch_calls: list[tuple[str, list[str]]] = []
        self.update_calls: list[tuple[str, dict]] = []
        self.writes_in_flight = 0
        self.max_writes_in_flight = 0

    def normalize_record_id(self, record_id) -> str:
        normalized = str(record_id).strip()
        return normalized.split("-")[-1] if "-" in normalized else normalized

    async def do_fetch_record(self, record_id, field_names, priority_field=None):
        record_id = self.normalize_record_id(record_id)
        self.fetch_calls.append((record_id, list(field_names)))
        # yield like a real request would
        await asyncio.sleep(0)
        if self.errors:
            raise self.errors.pop(0)
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        record = self.records[record_id]
        result = {}
        for name in field_names:
            raw = record.get(name)
            if "_required" in name or "_provided" in name:
                result[name] = "false" if raw in (None, "") else str(raw)
            else:
                result[name] = "" if raw is None else raw
        return result

    async def do_update_record(self, record_id, values):
        record_id = self.normalize_record_id(record_id)
        self.update_calls.append((record_id, dict(values)))
        self.writes_in_flight += 1
        self.max_writes_in_flight = max(self.max_writes_in_flight, self.writes_in_flight)
        try:
            await asyncio.sleep(0)
        finally:
            self.writes_in_flight -= 1
        if self.errors:
            raise self.errors.pop(0)
        missing = set(values) & self.missing_fields
        if missing:
            raise PropertyMissingError(missing)
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        self.records[record_id].update(values)
        return list(values.keys())


