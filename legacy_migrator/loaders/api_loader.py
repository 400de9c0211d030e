"""Generic REST API target writer."""

import logging
import time
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

import requests
from requests.auth import HTTPBasicAuth

from .base import BaseLoader
from ..exceptions import WriteError
from ..models.record import AttributeMap

logger = logging.getLogger(__name__)

AUTH_TYPES = ("bearer", "basic", "header")


class APILoader(BaseLoader):
    """
    Writes records to a REST collection endpoint.

    Expects the usual conventions:
    - POST {base_url}{endpoint} creates a record and returns it (with "id")
    - GET {base_url}{endpoint}?field=value lists matching records
    - DELETE {base_url}{endpoint}/{id} removes a record
    """

    def __init__(
        self,
        base_url: str,
        endpoint: str,
        api_key: Optional[str] = None,
        auth_type: str = "bearer",
        auth_header: str = "Authorization",
        rate_limit: float = 10.0,
        timeout: float = 30.0,
        dry_run: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the API loader.

        Args:
            base_url: Root URL of the target API
            endpoint: Collection path, e.g. "/posts"
            api_key: Credential sent with every request
            auth_type: One of "bearer", "basic" (key as username) or "header"
            auth_header: Header carrying the key for "header" authentication
            rate_limit: Max requests per second (0 disables throttling)
            timeout: Per-request timeout in seconds
            dry_run: If True, validate without sending create requests
            session: Optional preconfigured requests session
        """
        if auth_type not in AUTH_TYPES:
            raise ValueError(f"auth_type must be one of {', '.join(AUTH_TYPES)}, got {auth_type!r}")

        super().__init__(endpoint.strip("/") or base_url, dry_run=dry_run)
        self.base_url = base_url.rstrip("/")
        self.endpoint = "/" + endpoint.strip("/")
        self.timeout = timeout
        self._min_interval = 1.0 / rate_limit if rate_limit > 0 else 0.0
        self._next_request_at = 0.0
        self._session = session or build_session(api_key, auth_type, auth_header)

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.endpoint}"

    def _throttle(self) -> None:
        """Sleep until the next request slot."""
        now = time.monotonic()
        if now < self._next_request_at:
            time.sleep(self._next_request_at - now)
            now = self._next_request_at
        self._next_request_at = now + self._min_interval

    def _insert(self, attributes: AttributeMap) -> str:
        self._throttle()

        try:
            response = self._session.post(self.url, json=to_json_values(attributes), timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise WriteError(
                f"{self.url} rejected record: {_error_message(e)}",
                attributes=attributes,
                cause=e,
            ) from e
        except requests.exceptions.RequestException as e:
            raise WriteError(f"Request to {self.url} failed: {e}", attributes=attributes, cause=e) from e

        response_data = response.json() if response.text else {}
        target_id = response_data.get("id") or response_data.get("data", {}).get("id")
        if target_id is None:
            raise WriteError(f"{self.url} did not return an id", attributes=attributes)
        return str(target_id)

    def find_ids(self, criteria: Mapping[str, Any], limit: int = 2) -> List[str]:
        self._throttle()

        params: Dict[str, Any] = {key: _query_value(value) for key, value in criteria.items()}
        params["limit"] = limit

        try:
            response = self._session.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise WriteError(f"Lookup on {self.url} failed: {e}", cause=e) from e

        payload = response.json() if response.text else []
        if isinstance(payload, dict):
            payload = payload.get("data") or payload.get("results") or []

        # Keep exact matches only
        matches = [
            str(item["id"])
            for item in payload
            if "id" in item and all(_same_value(item.get(key), value) for key, value in criteria.items())
        ]
        return matches[:limit]

    def delete_record(self, record_id: str) -> bool:
        """Delete a record from the API."""
        self._throttle()

        try:
            response = self._session.delete(f"{self.url}/{record_id}", timeout=self.timeout)
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to delete {self.target_name} {record_id}: {e}")
            return False

    def validate_connection(self) -> bool:
        """Validate connection to the API."""
        try:
            self._throttle()
            response = self._session.get(self.base_url, timeout=self.timeout)
            return response.status_code < 500
        except requests.exceptions.RequestException as e:
            logger.error(f"API connection validation failed: {e}")
            return False


def _error_message(error: requests.exceptions.HTTPError) -> str:
    response = error.response
    if response is None:
        return str(error)
    try:
        error_data = response.json()
    except ValueError:
        return f"{response.status_code} {response.text or response.reason}"
    if isinstance(error_data, dict):
        return str(error_data.get("message") or error_data.get("error") or error_data)
    return str(error_data)


def build_session(api_key: Optional[str], auth_type: str, auth_header: str) -> requests.Session:
    """Create a JSON requests session carrying the API credential."""
    session = requests.Session()
    session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    if not api_key:
        return session

    if auth_type == "basic":
        session.auth = HTTPBasicAuth(api_key, "")
    elif auth_type == "header":
        session.headers[auth_header] = api_key
    else:
        session.headers["Authorization"] = f"Bearer {api_key}"
    return session


def to_json_value(value: Any) -> Any:
    """Convert a scalar attribute to its JSON form (ISO dates, string decimals)."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def to_json_values(attributes: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: to_json_value(value) for key, value in attributes.items()}


def _query_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return to_json_value(value)


def _same_value(found: Any, expected: Any) -> bool:
    """Compare a decoded JSON value with an attribute value."""
    if isinstance(expected, Decimal) and not isinstance(found, bool):
        try:
            return Decimal(str(found)) == expected
        except (InvalidOperation, ValueError):
            return False
    return found == to_json_value(expected)
