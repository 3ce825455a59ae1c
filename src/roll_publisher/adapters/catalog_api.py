"""Typed operations over the catalog's JSON:API surface."""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from roll_publisher.adapters.resilient_http import ResilientHttpClient
from roll_publisher.config import PHOTOGRAPHS_PATH, ROLLS_PATH, UPLOAD_URL_PATH
from roll_publisher.domain.catalog import RecordMetadata, RemoteCollection, UploadTarget
from roll_publisher.domain.errors import InvalidResponseError, UploadFailureError

_logger = logging.getLogger(__name__)

_UPLOAD_OK_STATUSES = frozenset({httpx.codes.OK, httpx.codes.NO_CONTENT})


class CatalogApi(Protocol):
    """Interface for catalog API interactions."""

    async def request_upload_target(
        self, collection_id: str, filename: str, content_type: str = "image/jpeg"
    ) -> UploadTarget:
        """Obtain a pre-signed upload target for a new file."""

    async def upload_bytes(
        self, upload_url: str, file_path: Path, upload_headers: dict[str, str]
    ) -> None:
        """PUT a file's content to object storage."""

    async def create_record(  # noqa: PLR0913
        self,
        record_id: str,
        collection_id: str,
        storage_key: str | None,
        filename: str,
        position: int,
        metadata: RecordMetadata | None = None,
    ) -> str:
        """Create a photograph record and return its id."""

    async def update_record(self, record_id: str, metadata: RecordMetadata) -> None:
        """Update the descriptive fields of a record."""

    async def delete_record(self, record_id: str) -> None:
        """Delete a record."""

    async def list_collections(self) -> list[RemoteCollection]:
        """Return every roll visible to the user."""

    async def create_collection(self, name: str, date: str) -> RemoteCollection:
        """Create a roll and return it."""


@dataclass
class JsonApiCatalogClient(CatalogApi):
    """Catalog client speaking JSON:API through the resilient HTTP layer."""

    api: ResilientHttpClient
    upload_client: httpx.AsyncClient
    base_url: str
    page_size: int = 100
    upload_timeout: float = 120.0

    async def request_upload_target(
        self, collection_id: str, filename: str, content_type: str = "image/jpeg"
    ) -> UploadTarget:
        """Ask the API for a pre-signed upload URL and a reserved record id."""
        payload = {
            "data": {
                "type": "upload-url-requests",
                "attributes": {
                    "rollId": collection_id,
                    "filename": filename,
                    "contentType": content_type,
                },
            }
        }
        response = await self.api.post(f"{self.base_url}{UPLOAD_URL_PATH}", payload)
        data = _resource(response)
        attributes = data.get("attributes") if data else None
        if not isinstance(attributes, dict):
            raise InvalidResponseError("Invalid upload URL response from server")
        upload_url = attributes.get("uploadUrl")
        record_id = attributes.get("photographId") or data.get("id")
        if not upload_url or not record_id:
            raise InvalidResponseError("Invalid upload URL response from server")
        headers = attributes.get("headers") or {}
        if not isinstance(headers, dict):
            raise InvalidResponseError("Invalid upload headers in server response")
        storage_key = attributes.get("s3Key")
        return UploadTarget(
            upload_url=str(upload_url),
            upload_headers={str(key): str(value) for key, value in headers.items()},
            record_id=str(record_id),
            storage_key=str(storage_key) if storage_key is not None else None,
        )

    async def upload_bytes(
        self, upload_url: str, file_path: Path, upload_headers: dict[str, str]
    ) -> None:
        """PUT the file to object storage without API credentials."""
        try:
            content = file_path.read_bytes()
        except OSError as exc:
            raise UploadFailureError(f"Could not open file: {file_path}") from exc
        try:
            response = await self.upload_client.put(
                upload_url,
                content=content,
                headers=upload_headers,
                timeout=self.upload_timeout,
            )
        except httpx.TransportError as exc:
            raise UploadFailureError(
                "Failed to upload photo to storage: no response"
            ) from exc
        if response.status_code not in _UPLOAD_OK_STATUSES:
            raise UploadFailureError(
                f"Failed to upload photo to storage. Status: {response.status_code}",
                status=response.status_code,
            )

    async def create_record(  # noqa: PLR0913
        self,
        record_id: str,
        collection_id: str,
        storage_key: str | None,
        filename: str,
        position: int,
        metadata: RecordMetadata | None = None,
    ) -> str:
        """Create the record under the id reserved by the upload target."""
        attributes: dict[str, object] = {
            "url": storage_key,
            "filename": filename,
            "position": position,
        }
        if metadata is not None:
            attributes.update(metadata.to_attributes())
        payload = {
            "data": {
                "type": "photographs",
                "id": record_id,
                "attributes": attributes,
                "relationships": {
                    "roll": {"data": {"type": "rolls", "id": collection_id}}
                },
            }
        }
        response = await self.api.post(f"{self.base_url}{PHOTOGRAPHS_PATH}", payload)
        data = _resource(response)
        if data and data.get("id"):
            return str(data["id"])
        return record_id

    async def update_record(self, record_id: str, metadata: RecordMetadata) -> None:
        """Patch descriptive fields only."""
        payload = {
            "data": {
                "type": "photographs",
                "id": record_id,
                "attributes": metadata.to_attributes(),
            }
        }
        await self.api.patch(f"{self.base_url}{PHOTOGRAPHS_PATH}/{record_id}", payload)

    async def delete_record(self, record_id: str) -> None:
        """Delete a record."""
        await self.api.delete(f"{self.base_url}{PHOTOGRAPHS_PATH}/{record_id}")

    async def list_collections(self) -> list[RemoteCollection]:
        """Follow ``links.next`` until exhausted."""
        collections: list[RemoteCollection] = []
        url: str | None = f"{self.base_url}{ROLLS_PATH}"
        params: dict[str, str] | None = {
            "fields[rolls]": "name,description,date",
            "page[size]": str(self.page_size),
        }
        seen: set[str] = set()
        while url is not None:
            seen.add(url)
            response = await self.api.get(url, params=params)
            params = None
            if isinstance(response, dict):
                for item in response.get("data") or []:
                    if isinstance(item, dict) and item.get("id"):
                        collections.append(_remote_collection(item))
            next_url = _next_link(response)
            if next_url is not None:
                next_url = str(httpx.URL(url).join(next_url))
                if next_url in seen:
                    _logger.warning("Pagination link repeated (%s); stopping", next_url)
                    next_url = None
            url = next_url
        return collections

    async def create_collection(self, name: str, date: str) -> RemoteCollection:
        """Create a roll under a client-generated id."""
        collection_id = str(uuid.uuid4())
        payload = {
            "data": {
                "type": "rolls",
                "id": collection_id,
                "attributes": {"name": name, "date": date},
                "relationships": {},
            }
        }
        response = await self.api.post(f"{self.base_url}{ROLLS_PATH}", payload)
        data = _resource(response)
        if data and data.get("id"):
            return _remote_collection(data)
        return RemoteCollection(id=collection_id, name=name, date=date)

    async def close(self) -> None:
        """Close the upload HTTP session."""
        await self.upload_client.aclose()


def _resource(response: object | None) -> dict[str, object] | None:
    if not isinstance(response, dict):
        return None
    data = response.get("data")
    return data if isinstance(data, dict) else None


def _next_link(response: object | None) -> str | None:
    if not isinstance(response, dict):
        return None
    links = response.get("links")
    if not isinstance(links, dict):
        return None
    next_url = links.get("next")
    return str(next_url) if next_url else None


def _remote_collection(item: dict[str, object]) -> RemoteCollection:
    attributes = item.get("attributes")
    if not isinstance(attributes, dict):
        attributes = {}
    return RemoteCollection(
        id=str(item["id"]),
        name=attributes.get("name") or item.get("name"),
        date=attributes.get("date"),
        description=attributes.get("description"),
    )
