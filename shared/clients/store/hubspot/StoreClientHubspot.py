import re

import httpx

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.models.StoreErrors import StoreConfigurationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.property_bag import PropertyValue

MISSING_PROPERTY_PATTERNS = [
    re.compile(r'"([^"]+)" does not exist'),
    re.compile(r'property "([^"]+)" does not exist', re.IGNORECASE),
]

# checkbox fields are normalized to "false" when empty
FLAG_FIELD_MARKERS = ("_required", "_provided")


class StoreClientHubspot(StoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api-eu1.hubapi.com", val_type="string")
        self._object_type = self.get_config_val("OBJECT_TYPE", default="p_dossier_juridique", val_type="string")
        self._object_type_id = self.get_config_val("OBJECT_TYPE_ID", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Hubspot"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        # the access token is checked per request, a missing token must not prevent startup
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api-eu1.hubapi.com"),
            EnvConfig(env_key="OBJECT_TYPE", val_type="string", default="p_dossier_juridique"),
            EnvConfig(env_key="OBJECT_TYPE_ID", val_type="string", default=""),
            EnvConfig(env_key="BATCH_SIZE", val_type="number", default=100),
        ]

    ################ AUTH ##################
    def _get_access_token(self) -> str:
        return self.get_first_config_val(["ACCESS_TOKEN", "PRIVATE_APP_TOKEN"])

    def _get_auth_header(self) -> dict:
        token = self._get_access_token()
        if not token:
            raise StoreConfigurationError(
                "No HubSpot credential configured (STORE_HUBSPOT_ACCESS_TOKEN or STORE_HUBSPOT_PRIVATE_APP_TOKEN)."
            )
        return {"Authorization": f"Bearer {token}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/crm/v3/objects/{self._object_type}?limit=1"

    def _get_object_types(self) -> list[str]:
        object_types = [self._object_type]
        if self._object_type_id and self._object_type_id != self._object_type:
            object_types.append(self._object_type_id)
        return object_types

    def _get_endpoint_record(self, object_type: str, record_id: str) -> str:
        return f"/crm/v3/objects/{object_type}/{record_id}"

    ################ REQUEST BUILDER ##################
    def _get_fetch_params(self, field_names: list[str]) -> dict:
        return {"properties": ",".join(field_names)}

    def _get_update_payload(self, values: dict[str, str]) -> dict:
        return {"properties": values}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_record_properties(self, response: dict) -> dict[str, PropertyValue]:
        return dict(response.get("properties") or {})

    def _normalize_fetched_values(self, field_names: list[str], raw_values: dict[str, object]) -> dict[str, PropertyValue]:
        result: dict[str, PropertyValue] = {}
        for name in field_names:
            raw = raw_values.get(name)
            if isinstance(raw, dict) and "value" in raw:
                raw = raw["value"]

            if any(marker in name for marker in FLAG_FIELD_MARKERS):
                result[name] = "false" if raw is None or raw == "" else str(raw)
            elif raw is None or raw == "":
                result[name] = ""
            elif isinstance(raw, list):
                result[name] = ";".join(str(item) for item in raw)
            else:
                result[name] = str(raw)
        return result

    def _extract_missing_properties(self, response: httpx.Response) -> set[str]:
        """
        Reads the offending field names of a HubSpot validation error.

        Structured `errors[].context.propertyName` entries are used first; the error
        messages (or the raw body when it is not JSON) are scanned as a fallback.
        """
        failed: set[str] = set()
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            self._scan_message(response.text, failed)
            return failed

        for error in body.get("errors") or []:
            if not isinstance(error, dict):
                continue
            names = (error.get("context") or {}).get("propertyName")
            if names:
                failed.update(names if isinstance(names, list) else [names])
            self._scan_message(error.get("message") or "", failed)

        if not failed:
            self._scan_message(body.get("message") or "", failed)
        return failed

    def _scan_message(self, message: str, failed: set[str]) -> None:
        for pattern in MISSING_PROPERTY_PATTERNS:
            failed.update(match for match in pattern.findall(message) if match)
