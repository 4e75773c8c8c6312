from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.store.models.StoreErrors import (
    PropertyMissingError,
    RecordNotFoundError,
    StoreApiError,
    StoreAuthorizationError,
    StoreError,
)
from shared.helper.HelperConfig import HelperConfig
from shared.models.property_bag import PropertyValue


class StoreClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.batch_size = int(self.get_config_val("BATCH_SIZE", default=100, val_type="number")) or 100

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "store"
        """
        return "store"

    def normalize_record_id(self, record_id: str | int) -> str:
        """
        Normalizes a record id. Composite ids of the form "0-123-456" are reduced to their last segment.

        Args:
            record_id (str | int): The raw record id.

        Returns:
            str: The normalized record id.
        """
        normalized = str(record_id).strip()
        if "-" in normalized:
            normalized = normalized.split("-")[-1]
        return normalized

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_object_types(self) -> list[str]:
        """
        Returns the object types to try for record requests, in order of preference.

        Returns:
            list[str]: Object type names or ids (e.g. ["p_dossier_juridique", "2-141688426"])
        """
        pass

    @abstractmethod
    def _get_endpoint_record(self, object_type: str, record_id: str) -> str:
        """
        Returns the endpoint path for reading and updating a single record.

        Args:
            object_type (str): The object type name or id.
            record_id (str): The normalized record id.

        Returns:
            str: The endpoint path (e.g. "/crm/v3/objects/p_dossier_juridique/123")
        """
        pass

    ################ REQUEST BUILDER ##################
    @abstractmethod
    def _get_fetch_params(self, field_names: list[str]) -> dict:
        """
        Returns the query parameters requesting the given fields.

        Args:
            field_names (list[str]): The fields of one chunk.

        Returns:
            dict: The query parameters.
        """
        pass

    @abstractmethod
    def _get_update_payload(self, values: dict[str, str]) -> dict:
        """
        Returns the JSON body of an update request.

        Args:
            values (dict[str, str]): Field name -> serialized value.

        Returns:
            dict: The request body.
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_record_properties(self, response: dict) -> dict[str, PropertyValue]:
        """
        Extracts the raw field values from a record response.

        Args:
            response (dict): The decoded JSON response.

        Returns:
            dict[str, PropertyValue]: Field name -> value as returned by the store.
        """
        pass

    @abstractmethod
    def _normalize_fetched_values(self, field_names: list[str], raw_values: dict[str, object]) -> dict[str, PropertyValue]:
        """
        Normalizes fetched values so that every requested field is present.

        Args:
            field_names (list[str]): All requested fields.
            raw_values (dict[str, object]): The merged raw values of all chunks.

        Returns:
            dict[str, PropertyValue]: One entry per requested field.
        """
        pass

    @abstractmethod
    def _extract_missing_properties(self, response: httpx.Response) -> set[str]:
        """
        Extracts the names of non-existent fields from an error response.

        Args:
            response (httpx.Response): The failed response.

        Returns:
            set[str]: Offending field names; empty when the error is not a schema error.
        """
        pass

    def _raise_for_response(self, response: httpx.Response, record_id: str) -> None:
        """
        Translates a non-2xx response into the matching StoreError.

        Raises:
            RecordNotFoundError: On 404.
            StoreAuthorizationError: On 401 and 403.
            PropertyMissingError: On 400 naming non-existent fields.
            StoreApiError: On any other failure.
        """
        status = response.status_code
        if status < 300:
            return
        if status == 404:
            raise RecordNotFoundError(record_id)
        if status in (401, 403):
            raise StoreAuthorizationError(f"Store rejected the credential with status {status}.", status_code=status)
        if status == 400:
            missing = self._extract_missing_properties(response)
            if missing:
                raise PropertyMissingError(missing, message=response.text)
        raise StoreApiError(f"Store request failed with status {status}.", status_code=status, body=response.text)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _send(self, method: str, endpoint: str, record_id: str, json: dict | None = None, params: dict | None = None) -> httpx.Response:
        try:
            response = await self.do_request(method=method, endpoint=endpoint, json=json, params=params)
        except httpx.TransportError as e:
            raise StoreApiError(f"Store not reachable: {e}")
        self._raise_for_response(response, record_id)
        return response

    async def _request_record(self, method: str, record_id: str, json: dict | None = None, params: dict | None = None) -> httpx.Response:
        """
        Sends a record request, trying each configured object type in turn.

        Only "not found" and API errors move on to the next object type; credential
        and schema errors are raised immediately.
        """
        object_types = self._get_object_types()
        last_error: StoreError | None = None
        for index, object_type in enumerate(object_types):
            endpoint = self._get_endpoint_record(object_type, record_id)
            try:
                return await self._send(method, endpoint, record_id, json=json, params=params)
            except (RecordNotFoundError, StoreApiError) as e:
                last_error = e
                if index + 1 < len(object_types):
                    self.logging.debug("%s %s failed (%s), trying next object type.", method, endpoint, e)
        raise last_error if last_error else StoreApiError("No object type configured.")

    async def do_fetch_record(self, record_id: str | int, field_names: list[str], priority_field: str | None = None) -> dict[str, PropertyValue]:
        """
        Fetches the given fields of a record, in chunks of `batch_size` fields.

        Args:
            record_id (str | int): The record id (composite ids are normalized).
            field_names (list[str]): The fields to read.
            priority_field (str | None): A field to request in the first chunk (e.g. the category field).

        Returns:
            dict[str, PropertyValue]: One normalized value per requested field.

        Raises:
            RecordNotFoundError: If the record does not exist.
            StoreConfigurationError: If no credential is configured.
            StoreAuthorizationError: If the credential is rejected.
            StoreApiError: If any chunk fails; no partial record is returned.
        """
        normalized_id = self.normalize_record_id(record_id)
        ordered = list(dict.fromkeys(field_names))
        if priority_field:
            ordered = [priority_field] + [name for name in ordered if name != priority_field]

        raw_values: dict[str, object] = {}
        for start in range(0, len(ordered), self.batch_size):
            chunk = ordered[start:start + self.batch_size]
            try:
                response = await self._request_record("GET", normalized_id, params=self._get_fetch_params(chunk))
            except StoreApiError as e:
                # missing fields would read back as "false", so a partial record is never returned
                self.logging.error("Fetching %d fields of record %s failed: %s", len(chunk), normalized_id, e)
                raise
            raw_values.update(self._parse_record_properties(response.json()))

        self.logging.debug("Fetched %d fields of record %s in %d call(s).", len(ordered), normalized_id, -(-len(ordered) // self.batch_size))
        return self._normalize_fetched_values(ordered, raw_values)

    async def do_update_record(self, record_id: str | int, values: dict[str, str]) -> list[str]:
        """
        Writes field values to a record in a single call.

        Args:
            record_id (str | int): The record id (composite ids are normalized).
            values (dict[str, str]): Field name -> serialized value.

        Returns:
            list[str]: The fields written.

        Raises:
            PropertyMissingError: If some fields do not exist in the store schema.
            RecordNotFoundError: If the record does not exist.
            StoreConfigurationError: If no credential is configured.
            StoreAuthorizationError: If the credential is rejected.
            StoreApiError: On any other failure.
        """
        if not values:
            return []
        normalized_id = self.normalize_record_id(record_id)
        await self._request_record("PATCH", normalized_id, json=self._get_update_payload(values))
        self.logging.debug("Updated %d fields of record %s.", len(values), normalized_id)
        return list(values.keys())
