"""
feedbridge REST Connector — Use any JSON REST API as a data source.

Supports:
    - Auth: none, api-key, bearer, basic (oauth2 is declared but rejected)
    - Pagination: offset, page and cursor based, capped by maxPages
    - Response mapping: records are read from a dot path such as "data.items"

Example config:
    {
        "baseUrl": "https://mystore.myshopify.com/admin/api/2024-01",
        "auth": {"type": "bearer", "bearerToken": "shpat_..."},
        "endpoints": {"list": "/products.json"},
        "pagination": {"type": "page", "pageParam": "page",
                       "limitParam": "limit", "pageSize": 50},
        "responseMapping": {"dataPath": "products"}
    }
"""

import base64
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .base import BaseConnector, register_connector
from .utils import infer_type
from ..core.config import Settings
from ..core.schema import FieldMapping, Schema, SchemaField, SyncResult
from ..errors import ConnectorConnectionError, UnsupportedAuthError
from ..utils.logger import get_logger

logger = get_logger(__name__)

AUTH_TYPES = ("none", "api-key", "bearer", "basic", "oauth2")
PAGINATION_TYPES = ("offset", "page", "cursor")
DEFAULT_PAGE_SIZE = 100
DEFAULT_API_KEY_HEADER = "X-API-Key"


def _dig(data: Any, path: Optional[str]) -> Any:
    """Follow a dot path through nested dicts; None when any key is missing."""
    if not path:
        return data
    for key in path.split("."):
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def build_auth_headers(auth: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Translate an auth config block into request headers.

    Raises:
        UnsupportedAuthError: For oauth2 and unknown auth types.
    """
    if not auth:
        return {}

    auth_type = (auth.get("type") or "none").lower()
    if auth_type == "none":
        return {}
    if auth_type == "api-key":
        header = auth.get("apiKeyHeader") or DEFAULT_API_KEY_HEADER
        return {header: auth.get("apiKey") or ""}
    if auth_type == "bearer":
        return {"Authorization": f"Bearer {auth.get('bearerToken') or ''}"}
    if auth_type == "basic":
        raw = f"{auth.get('username') or ''}:{auth.get('password') or ''}"
        credentials = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {credentials}"}
    if auth_type == "oauth2":
        raise UnsupportedAuthError("OAuth2 authentication is not yet supported by the REST connector")
    raise UnsupportedAuthError(
        f"Unknown auth type: {auth_type}. Supported: {', '.join(AUTH_TYPES[:-1])}"
    )


class RESTConnector(BaseConnector):
    """Connector for paginated JSON REST APIs.

    connect() fetches the first page, which backs preview() and
    get_schema(). fetch_all() and sync() walk every page.
    """

    def __init__(self, id: str, name: str, transport: Optional[httpx.BaseTransport] = None):
        """
        Args:
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
        """
        super().__init__(id, name)
        self.settings = Settings.from_env()
        self.data: List[Any] = []
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._first_body: Any = None

    # ──── Configuration ────

    @property
    def list_url(self) -> str:
        return f"{self.config['baseUrl']}{self.config['endpoints']['list']}"

    @property
    def pagination(self) -> Dict[str, Any]:
        return self.config.get("pagination") or {}

    @property
    def page_size(self) -> int:
        return int(self.pagination.get("pageSize") or DEFAULT_PAGE_SIZE)

    def _validate(self, config: Dict[str, Any]) -> None:
        self._require(config, "baseUrl", "endpoints")
        endpoints = config["endpoints"]
        if not isinstance(endpoints, dict) or not endpoints.get("list"):
            raise ConnectorConnectionError(
                f"rest connector '{self.name}' is missing required config: endpoints.list"
            )
        pagination = config.get("pagination") or {}
        if not isinstance(pagination, dict):
            raise ConnectorConnectionError(f"rest connector '{self.name}': pagination must be a mapping")
        ptype = pagination.get("type")
        if ptype and ptype not in PAGINATION_TYPES:
            raise ConnectorConnectionError(
                f"Unknown pagination type: {ptype}. Supported: {', '.join(PAGINATION_TYPES)}"
            )

    def _open_client(self, config: Dict[str, Any]) -> httpx.Client:
        headers = {"Content-Type": "application/json", **(config.get("headers") or {})}
        headers.update(build_auth_headers(config.get("auth")))
        timeout = self._seconds(config, "timeout", self.settings.http_timeout)
        return httpx.Client(headers=headers, timeout=timeout, transport=self._transport)

    # ──── HTTP ────

    def _request(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a URL and return the decoded JSON body."""
        try:
            response = self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise ConnectorConnectionError(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            raise ConnectorConnectionError(
                f"API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ConnectorConnectionError(f"Response from {url} is not valid JSON: {e}") from e
        logger.debug("rest.page_fetched", connector_id=self.id, url=url, params=params)
        return body

    def _extract(self, body: Any) -> List[Any]:
        data = _dig(body, (self.config.get("responseMapping") or {}).get("dataPath"))
        if data is None:
            return []
        return list(data) if isinstance(data, list) else [data]

    def _page_params(self, page_index: int, offset: int, cursor: Any = None) -> Dict[str, Any]:
        """Query parameters for the page at `page_index` (0-based)."""
        p = self.pagination
        ptype = p.get("type")
        if not ptype:
            return {}

        params: Dict[str, Any] = {}
        if p.get("limitParam"):
            params[p["limitParam"]] = self.page_size
        if ptype == "offset":
            params[p.get("offsetParam") or "offset"] = offset
        elif ptype == "page":
            params[p.get("pageParam") or "page"] = int(p.get("startPage", 1)) + page_index
        elif ptype == "cursor" and cursor:
            params[p.get("cursorParam") or "cursor"] = cursor
        return params

    def _fetch_first_page(self) -> List[Any]:
        body = self._request(self.list_url, self._page_params(0, 0) or None)
        self._first_body = body
        return self._extract(body)

    # ──── Lifecycle ────

    def connect(self, config: Dict[str, Any]) -> None:
        self._validate(config)
        self.disconnect()
        self.config = dict(config)
        self._client = self._open_client(self.config)

        try:
            self.data = self._fetch_first_page()
        except ConnectorConnectionError:
            self._close_client()
            raise

        self.connected = True
        logger.info("connector.connected", connector_id=self.id, url=self.list_url, records=len(self.data))

    def _close_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def disconnect(self) -> None:
        self._close_client()
        self.data = []
        self._first_body = None
        self.config = {}
        self.connected = False

    def test_connection(self) -> bool:
        if not self.config or self._client is None:
            return False
        try:
            self._request(self.list_url, self._page_params(0, 0) or None)
            return True
        except Exception:
            return False

    # ──── Data access ────

    def get_schema(self) -> Schema:
        self.ensure_connected()
        if not self.data or not isinstance(self.data[0], dict):
            return Schema(fields=[])

        sample = self.data[0]
        return Schema(fields=[
            SchemaField(
                name=key,
                type=infer_type(value, parse_dates=False),
                nullable=True,
                sample=value,
            )
            for key, value in sample.items()
        ])

    def preview(self, limit: int = 10) -> List[Any]:
        self.ensure_connected()
        return self.data[:max(limit, 0)]

    def fetch_all(self) -> List[Any]:
        """Fetch every page of the list endpoint.

        Stops on an empty page, when the total from
        responseMapping.totalPath has been reached, when a cursor runs out,
        or after maxPages pages. A page shorter than pageSize ends offset
        and page pagination only when the response carries no total.
        """
        self.ensure_connected()
        records = list(self.data)
        ptype = self.pagination.get("type")
        if not ptype:
            return records

        mapping = self.config.get("responseMapping") or {}
        max_pages = int(self.config.get("maxPages") or self.settings.max_pages)
        body = self._first_body
        last_count = len(self.data)
        pages = 1

        while True:
            if last_count == 0:
                break
            total = _dig(body, mapping.get("totalPath"))
            if isinstance(total, (int, float)) and not isinstance(total, bool):
                # Servers may cap pages below pageSize, so a known total wins
                if len(records) >= total:
                    break
            elif ptype != "cursor" and last_count < self.page_size:
                break
            cursor = None
            if ptype == "cursor":
                cursor = _dig(body, mapping.get("cursorPath") or "next_cursor")
                if not cursor:
                    break
            if pages >= max_pages:
                logger.warning("rest.page_cap_reached", connector_id=self.id, max_pages=max_pages)
                break

            body = self._request(self.list_url, self._page_params(pages, len(records), cursor))
            page_records = self._extract(body)
            records.extend(page_records)
            last_count = len(page_records)
            pages += 1

        logger.info("rest.fetch_all", connector_id=self.id, pages=pages, records=len(records))
        return records

    def fetch_detail(self, record_id: Any) -> Any:
        """GET one record from endpoints.detail ("/products/:id" or "/products/{id}")."""
        self.ensure_connected()
        detail = (self.config.get("endpoints") or {}).get("detail")
        if not detail:
            raise ConnectorConnectionError(f"rest connector '{self.name}' has no detail endpoint configured")
        path = detail.replace(":id", str(record_id)).replace("{id}", str(record_id))
        return self._request(f"{self.config['baseUrl']}{path}")

    def sync(self, mapping: Sequence[FieldMapping]) -> SyncResult:
        self.ensure_connected()
        return self._run_sync(self.fetch_all(), mapping)


# Register this connector
register_connector(
    "rest",
    RESTConnector,
    label="REST API",
    description="JSON REST endpoint with auth and pagination",
)
