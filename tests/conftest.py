from __future__ import annotations

import copy
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import pytest

from webflow_payload.exceptions import TargetWriteError
from webflow_payload.extractors.base import BaseExtractor
from webflow_payload.loaders.base import BaseLoader
from webflow_payload.models.migration import MigrationConfig
from webflow_payload.models.record import SourceRecord, TargetRecord

COLLECTION_IDS = {
    "contributors": "col-contributors",
    "projects": "col-projects",
    "faqs": "col-faqs",
    "posts": "col-posts",
    "updates": "col-updates",
    "matching-donors": "col-donors",
}


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        text: Optional[str] = None,
        content: Optional[bytes] = None,
    ) -> None:
        self.status_code = status_code
        self._json = json_data
        self.headers = headers or {}
        self.text = text if text is not None else ("" if json_data is None else str(json_data))
        if content is not None:
            self.content = content
        else:
            self.content = b"" if json_data is None else b"{}"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json


class FakeSession:
    """Replays scripted responses in order and records every call."""

    def __init__(self, responses: Iterable[Any] = ()) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("GET", url, **kwargs)


class FakeExtractor(BaseExtractor):
    """Serves Webflow items from memory, keyed by collection id."""

    def __init__(
        self,
        items: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        labels: Optional[Dict[str, Dict[str, Dict[str, str]]]] = None,
        page_size: int = 2,
    ) -> None:
        super().__init__(page_size=page_size)
        self.items = items or {}
        self.labels = labels or {}
        self.page_requests: List[Tuple[str, int]] = []

    def extract_page(self, collection_id: str, entity: str, offset: int = 0, limit: int = 100) -> List[SourceRecord]:
        self.page_requests.append((collection_id, offset))
        page = self.items.get(collection_id, [])[offset:offset + limit]
        return [SourceRecord.from_webflow_item(item, entity) for item in page]

    def option_labels(self, collection_id: str) -> Dict[str, Dict[str, str]]:
        return self.labels.get(collection_id, {})


class InMemoryLoader(BaseLoader):
    """Payload stand-in keeping documents in dicts with integer ids."""

    def __init__(self, dry_run: bool = False) -> None:
        super().__init__("memory", dry_run)
        self.docs: Dict[str, Dict[Any, Dict[str, Any]]] = {}
        self.remote_files: Dict[str, bytes] = {}
        self.failures: Dict[Tuple[str, str], TargetWriteError] = {}
        self.writes: List[Tuple[str, str, Any]] = []
        self.downloads: List[str] = []
        self._next_id = 1

    def seed(self, collection: str, **fields: Any) -> Dict[str, Any]:
        doc = {"id": self._next_id, **fields}
        self._next_id += 1
        self.docs.setdefault(collection, {})[doc["id"]] = doc
        return doc

    def _fail(self, collection: str, operation: str) -> None:
        error = self.failures.get((collection, operation))
        if error is not None:
            raise error

    def list_all(self, collection: str) -> List[TargetRecord]:
        return [
            TargetRecord.from_payload_doc(copy.deepcopy(doc), collection)
            for doc in self.docs.get(collection, {}).values()
        ]

    def find(self, collection: str, field: str, value: Any, limit: int = 10) -> List[TargetRecord]:
        return [r for r in self.list_all(collection) if r.get(field) == value][:limit]

    def create(self, collection: str, data: Dict[str, Any]) -> TargetRecord:
        if self.dry_run:
            return self._placeholder(collection, data)
        self._fail(collection, "create")
        doc = self.seed(collection, **copy.deepcopy(data))
        self.writes.append(("create", collection, doc["id"]))
        return TargetRecord.from_payload_doc(copy.deepcopy(doc), collection)

    def update(self, collection: str, target_id: Any, data: Dict[str, Any]) -> TargetRecord:
        if self.dry_run:
            return self._placeholder(collection, data, target_id=target_id)
        self._fail(collection, "update")
        doc = self.docs[collection][target_id]
        doc.update(copy.deepcopy(data))
        self.writes.append(("update", collection, target_id))
        return TargetRecord.from_payload_doc(copy.deepcopy(doc), collection)

    def find_media(self, filename: str) -> Optional[TargetRecord]:
        matches = self.find("media", "filename", filename, limit=1)
        return matches[0] if matches else None

    def upload_media(self, content: bytes, filename: str, alt: str, content_type: str) -> TargetRecord:
        if self.dry_run:
            return self._placeholder("media", {"filename": filename, "alt": alt})
        doc = self.seed("media", filename=filename, alt=alt, mimeType=content_type, size=len(content))
        self.writes.append(("upload", "media", doc["id"]))
        return TargetRecord.from_payload_doc(copy.deepcopy(doc), "media")

    def download(self, url: str) -> bytes:
        self.downloads.append(url)
        return self.remote_files.get(url, b"\x89PNG")


def webflow_item(
    item_id: str,
    fields: Optional[Dict[str, Any]] = None,
    is_draft: bool = False,
    is_archived: bool = False,
    **extra: Any,
) -> Dict[str, Any]:
    return {
        "id": item_id,
        "isDraft": is_draft,
        "isArchived": is_archived,
        "createdOn": "2024-03-01T10:00:00.000Z",
        "fieldData": dict(fields or {}),
        **extra,
    }


def source_record(
    item_id: str,
    entity: str,
    fields: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> SourceRecord:
    return SourceRecord.from_webflow_item(webflow_item(item_id, fields, **kwargs), entity)


@pytest.fixture
def loader() -> InMemoryLoader:
    return InMemoryLoader()


@pytest.fixture
def config(tmp_path) -> MigrationConfig:
    return MigrationConfig(
        webflow_api_token="wf-token",
        payload_api_url="http://payload.test/api",
        payload_api_token="pl-token",
        collections=dict(COLLECTION_IDS),
        output_dir=str(tmp_path),
    )


class _RateLimitedHandler(BaseHTTPRequestHandler):
    """Answers every request with 429 and Retry-After: 0."""

    def do_GET(self) -> None:
        self.server.hits.append(self.path)
        body = b'{"message": "Too Many Requests"}'
        self.send_response(429)
        self.send_header("Retry-After", "0")
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        pass


@pytest.fixture
def rate_limited_server() -> Iterator[Tuple[str, List[str]]]:
    """Local HTTP server that always rate limits; yields its base URL and the paths it served."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _RateLimitedHandler)
    server.hits = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}", server.hits
    finally:
        server.shutdown()
        server.server_close()
        thread.join()
