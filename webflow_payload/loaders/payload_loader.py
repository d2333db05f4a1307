"""Payload CMS REST API loader."""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import BaseLoader
from ..exceptions import SourceFetchError, TargetWriteError
from ..models.migration import DEFAULT_PAYLOAD_API_URL
from ..models.record import TargetRecord

logger = logging.getLogger(__name__)

MEDIA_COLLECTION = "media"


class PayloadLoader(BaseLoader):
    """
    Loader for the Payload REST API.

    Supports:
    - Paginated listing (404 on a collection is treated as empty)
    - where[field][equals] lookups
    - Create via POST, update via PATCH
    - Multipart uploads into the media collection
    - Dry runs with placeholder ids
    """

    def __init__(
        self,
        api_url: str = DEFAULT_PAYLOAD_API_URL,
        api_token: Optional[str] = None,
        dry_run: bool = False,
        page_size: int = 100,
        depth: int = 1,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        download_session: Optional[requests.Session] = None,
    ):
        """
        Initialize the Payload loader.

        Args:
            api_url: Base URL of the Payload REST API, including /api
            api_token: Token sent as a Bearer credential
            dry_run: If True, simulate writes without making changes
            page_size: Documents per listing page
            depth: Relationship population depth for listings
            timeout: Per-request timeout in seconds
            session: Custom requests session for Payload calls
            download_session: Session for fetching remote files, never authenticated
        """
        super().__init__("payload", dry_run)
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.page_size = page_size
        self.depth = depth
        self.timeout = timeout
        self._session = session or self._create_session()
        self._download_session = download_session or requests.Session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()

        if self.api_token:
            session.headers["Authorization"] = f"Bearer {self.api_token}"

        retries = Retry(
            total=3,
            backoff_factor=1.0,
            status_forcelist=[502, 503, 504],
            allowed_methods=["GET"],
            respect_retry_after_header=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.api_url}{path}"
        try:
            return self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TargetWriteError(f"Payload {method} {path} failed: {e}") from e

    def _error_messages(self, response: requests.Response) -> List[str]:
        """Pull messages out of Payload's {"errors": [{"message": ...}]} body."""
        try:
            body = response.json()
        except ValueError:
            return [response.text[:200]] if response.text else []
        if not isinstance(body, dict):
            return [response.text[:200]] if response.text else []

        messages = []
        for error in body.get("errors") or []:
            message = error.get("message", "")
            details = (error.get("data") or {}).get("errors") or []
            for detail in details:
                message += f" [{detail.get('path') or detail.get('field')}: {detail.get('message')}]"
            messages.append(message)
        if not messages and body.get("message"):
            messages.append(str(body["message"]))
        return messages

    def _check(self, response: requests.Response, method: str, path: str) -> Dict[str, Any]:
        if not response.ok:
            raise TargetWriteError(
                f"Payload {method} {path} returned {response.status_code}",
                status_code=response.status_code,
                errors=self._error_messages(response),
            )
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise TargetWriteError(
                f"Payload {method} {path} returned a non-JSON body",
                status_code=response.status_code,
                errors=[response.text[:200]] if response.text else [],
            ) from e
        if not isinstance(body, dict):
            raise TargetWriteError(
                f"Payload {method} {path} returned a {type(body).__name__} instead of an object",
                status_code=response.status_code,
            )
        return body

    @staticmethod
    def _document(body: Dict[str, Any]) -> Dict[str, Any]:
        return body.get("doc") or body.get("data") or body

    def list_all(self, collection: str) -> List[TargetRecord]:
        """Every document in a collection, following totalPages."""
        records: List[TargetRecord] = []
        page = 1

        while True:
            path = f"/{collection}"
            response = self._request(
                "GET",
                path,
                params={"page": page, "limit": self.page_size, "depth": self.depth},
            )
            if response.status_code == 404:
                logger.warning(f"Payload collection {collection} not found, treating as empty")
                return []

            body = self._check(response, "GET", path)
            records.extend(TargetRecord.from_payload_doc(doc, collection) for doc in body.get("docs") or [])

            total_pages = body.get("totalPages") or 1
            if page >= total_pages:
                break
            page += 1

        logger.debug(f"Listed {len(records)} {collection} documents")
        return records

    def find(self, collection: str, field: str, value: Any, limit: int = 10) -> List[TargetRecord]:
        path = f"/{collection}"
        response = self._request(
            "GET",
            path,
            params={f"where[{field}][equals]": value, "limit": limit, "depth": 0},
        )
        body = self._check(response, "GET", path)
        return [TargetRecord.from_payload_doc(doc, collection) for doc in body.get("docs") or []]

    def create(self, collection: str, data: Dict[str, Any]) -> TargetRecord:
        if self.dry_run:
            record = self._placeholder(collection, data)
            logger.info(f"[dry-run] Would create {collection} {data.get('slug') or data.get('name') or ''} as {record.id}")
            return record

        path = f"/{collection}"
        body = self._check(self._request("POST", path, json=data), "POST", path)
        return TargetRecord.from_payload_doc(self._document(body), collection)

    def update(self, collection: str, target_id: Any, data: Dict[str, Any]) -> TargetRecord:
        if self.dry_run:
            logger.info(f"[dry-run] Would update {collection} {target_id}")
            return self._placeholder(collection, data, target_id=target_id)

        path = f"/{collection}/{target_id}"
        body = self._check(self._request("PATCH", path, json=data), "PATCH", path)
        doc = self._document(body)
        doc.setdefault("id", target_id)
        return TargetRecord.from_payload_doc(doc, collection)

    def find_media(self, filename: str) -> Optional[TargetRecord]:
        matches = self.find(MEDIA_COLLECTION, "filename", filename, limit=1)
        return matches[0] if matches else None

    def upload_media(self, content: bytes, filename: str, alt: str, content_type: str) -> TargetRecord:
        if self.dry_run:
            logger.info(f"[dry-run] Would upload {filename} ({content_type})")
            return self._placeholder(MEDIA_COLLECTION, {"filename": filename, "alt": alt})

        path = f"/{MEDIA_COLLECTION}"
        response = self._request(
            "POST",
            path,
            data={"alt": alt},
            files={"file": (filename, content, content_type)},
        )
        body = self._check(response, "POST", path)
        return TargetRecord.from_payload_doc(self._document(body), MEDIA_COLLECTION)

    def download(self, url: str) -> bytes:
        try:
            response = self._download_session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise SourceFetchError(f"Download failed for {url}: {e}") from e
        if not response.ok:
            raise SourceFetchError(f"Download of {url} returned {response.status_code}", status_code=response.status_code)
        return response.content
