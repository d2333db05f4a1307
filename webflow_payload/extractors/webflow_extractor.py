"""Webflow CMS API v2 extractor."""

import time
import logging
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import BaseExtractor
from ..exceptions import RateLimitExceeded, SourceFetchError
from ..models.migration import DEFAULT_WEBFLOW_BASE_URL
from ..models.record import SourceRecord

logger = logging.getLogger(__name__)


class WebflowExtractor(BaseExtractor):
    """
    Extractor for Webflow collection items.

    Supports:
    - Offset pagination over /collections/{id}/items
    - Bounded exponential backoff on HTTP 429
    - Transport-level retries on 5xx
    - Option field id to label lookups from the collection schema
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_WEBFLOW_BASE_URL,
        accept_version: str = "1.0.0",
        page_size: int = 100,
        rate_limit_delay: float = 5.0,
        max_rate_limit_retries: int = 6,
        max_backoff: float = 60.0,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the Webflow extractor.

        Args:
            api_token: Webflow site API token
            base_url: API base URL
            accept_version: Value of the accept-version header
            page_size: Items per page (Webflow caps this at 100)
            rate_limit_delay: First backoff delay after a 429, in seconds
            max_rate_limit_retries: 429 retries per request before giving up
            max_backoff: Upper bound for a single backoff delay
            timeout: Per-request timeout in seconds
            session: Custom requests session
            sleep: Sleep function, replaceable in tests
        """
        super().__init__(page_size=page_size)
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.accept_version = accept_version
        self.rate_limit_delay = rate_limit_delay
        self.max_rate_limit_retries = max_rate_limit_retries
        self.max_backoff = max_backoff
        self.timeout = timeout
        self._session = session or self._create_session()
        self._sleep = sleep
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic for server errors."""
        session = requests.Session()

        # 429 is handled in _get so the backoff stays bounded and observable.
        retries = Retry(
            total=3,
            backoff_factor=1.0,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
            respect_retry_after_header=False,
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "accept-version": self.accept_version,
            "accept": "application/json",
        }

    def _backoff_delay(self, attempt: int, response: requests.Response) -> float:
        """Exponential delay for the given retry, stretched to Retry-After when larger."""
        delay = min(self.rate_limit_delay * (2 ** attempt), self.max_backoff)
        retry_after = (response.headers.get("Retry-After") or "").strip()
        # Only the delta-seconds form is honoured; HTTP-date values are ignored.
        if retry_after.isdigit():
            delay = max(delay, min(float(retry_after), self.max_backoff))
        return delay

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        collection_id: Optional[str] = None,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """
        GET a Webflow endpoint.

        Raises:
            RateLimitExceeded: 429 persisted past max_rate_limit_retries
            SourceFetchError: Any other HTTP or network failure
        """
        url = f"{self.base_url}{path}"
        attempt = 0

        while True:
            try:
                response = self._session.get(
                    url,
                    headers=self._get_headers(),
                    params=params,
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                raise SourceFetchError(
                    f"Webflow request failed for {path}: {e}",
                    collection_id=collection_id,
                ) from e

            if response.status_code == 429:
                if attempt >= self.max_rate_limit_retries:
                    raise RateLimitExceeded(collection_id, offset, attempt + 1)
                delay = self._backoff_delay(attempt, response)
                logger.warning(
                    f"Webflow rate limit hit (collection={collection_id}, offset={offset}), "
                    f"retry {attempt + 1}/{self.max_rate_limit_retries} in {delay:.1f}s"
                )
                self._sleep(delay)
                attempt += 1
                continue

            if not response.ok:
                raise SourceFetchError(
                    f"Webflow returned {response.status_code} for {path}: {response.text[:200]}",
                    collection_id=collection_id,
                    status_code=response.status_code,
                )

            try:
                body = response.json()
            except ValueError as e:
                raise SourceFetchError(
                    f"Webflow returned a non-JSON body for {path}: {response.text[:200]}",
                    collection_id=collection_id,
                    status_code=response.status_code,
                ) from e
            if not isinstance(body, dict):
                raise SourceFetchError(
                    f"Webflow returned a {type(body).__name__} instead of an object for {path}",
                    collection_id=collection_id,
                    status_code=response.status_code,
                )
            return body

    def extract_page(
        self,
        collection_id: str,
        entity: str,
        offset: int = 0,
        limit: int = 100
    ) -> List[SourceRecord]:
        """Fetch one page of collection items."""
        data = self._get(
            f"/collections/{collection_id}/items",
            params={"limit": limit, "offset": offset},
            collection_id=collection_id,
            offset=offset,
        )
        items = data.get("items") or []
        logger.debug(f"Fetched {len(items)} {entity} items at offset {offset}")
        return [SourceRecord.from_webflow_item(item, entity) for item in items]

    def get_collection(self, collection_id: str) -> Dict[str, Any]:
        """Collection schema, cached for the extractor's lifetime."""
        if collection_id not in self._schemas:
            self._schemas[collection_id] = self._get(
                f"/collections/{collection_id}",
                collection_id=collection_id,
            )
        return self._schemas[collection_id]

    def option_labels(self, collection_id: str) -> Dict[str, Dict[str, str]]:
        """
        Option ids to labels for every option field in a collection.

        Returns:
            field slug -> option id -> option name
        """
        schema = self.get_collection(collection_id)
        labels: Dict[str, Dict[str, str]] = {}
        for field_def in schema.get("fields") or []:
            options = (field_def.get("validations") or {}).get("options") or []
            if not options:
                continue
            labels[field_def.get("slug", "")] = {
                str(option.get("id")): str(option.get("name", ""))
                for option in options
                if option.get("id") is not None
            }
        return labels
