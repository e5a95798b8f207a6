"""
Remote Document Store
The whole Dataset as one JSON document per authenticated identity.
A missing document means "no backup yet", not an error.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from workout_tracker.core.config import settings
from workout_tracker.core.logger import get_logger
from workout_tracker.exceptions import SyncError
from workout_tracker.schemas.tracker_schemas import Dataset

logger = get_logger("remote_store")

DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"
MULTIPART_BOUNDARY = "-------314159265358979323846"


class RemoteDocumentStore(ABC):

    @abstractmethod
    async def read(self) -> Optional[Dataset]:
        ...

    @abstractmethod
    async def write(self, dataset: Dataset) -> None:
        ...


class InMemoryDocumentStore(RemoteDocumentStore):
    """Keeps the document as serialized JSON, the same way a real store would."""

    def __init__(self, dataset: Dataset = None):
        self.document: Optional[str] = json.dumps(dataset.to_document()) if dataset else None
        self.write_count = 0

    async def read(self) -> Optional[Dataset]:
        if self.document is None:
            return None
        return Dataset.model_validate(json.loads(self.document))

    async def write(self, dataset: Dataset) -> None:
        self.document = json.dumps(dataset.to_document())
        self.write_count += 1


class GoogleDriveDocumentStore(RemoteDocumentStore):
    """Dataset stored in the app-private `appDataFolder` of the user's Google Drive."""

    def __init__(
        self,
        access_token: str,
        filename: str = None,
        client: httpx.AsyncClient = None,
    ):
        self.filename = filename or settings.GOOGLE_DRIVE_FILENAME
        self._client = client or httpx.AsyncClient(timeout=settings.GOOGLE_API_TIMEOUT)
        self._headers = {"Authorization": f"Bearer {access_token}"}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _find_file_id(self) -> Optional[str]:
        response = await self._client.get(
            f"{DRIVE_API_URL}/files",
            params={"spaces": "appDataFolder", "fields": "files(id, name)", "pageSize": 10},
            headers=self._headers,
        )
        response.raise_for_status()
        files = response.json().get("files", [])
        match = next((f for f in files if f.get("name") == self.filename), None)
        return match["id"] if match else None

    async def read(self) -> Optional[Dataset]:
        try:
            file_id = await self._find_file_id()
            if not file_id:
                logger.info("No remote backup document found")
                return None
            response = await self._client.get(
                f"{DRIVE_API_URL}/files/{file_id}",
                params={"alt": "media"},
                headers=self._headers,
            )
            response.raise_for_status()
            return Dataset.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.error(f"Drive read failed: {e}")
            raise SyncError(f"Could not read cloud backup: {e}") from e
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Drive document is not a valid dataset: {e}")
            raise SyncError("Cloud backup is unreadable.") from e

    def _multipart_body(self, dataset: Dataset, is_new: bool) -> str:
        metadata = {"name": self.filename, "mimeType": "application/json"}
        if is_new:
            metadata["parents"] = ["appDataFolder"]
        delimiter = f"\r\n--{MULTIPART_BOUNDARY}\r\n"
        close_delim = f"\r\n--{MULTIPART_BOUNDARY}--"
        return (
            delimiter
            + "Content-Type: application/json\r\n\r\n"
            + json.dumps(metadata)
            + delimiter
            + "Content-Type: application/json\r\n\r\n"
            + json.dumps(dataset.to_document())
            + close_delim
        )

    async def write(self, dataset: Dataset) -> None:
        try:
            file_id = await self._find_file_id()
            body = self._multipart_body(dataset, is_new=file_id is None)
            response = await self._client.request(
                "PATCH" if file_id else "POST",
                f"{DRIVE_UPLOAD_URL}/files" + (f"/{file_id}" if file_id else ""),
                params={"uploadType": "multipart"},
                headers={
                    **self._headers,
                    "Content-Type": f'multipart/related; boundary="{MULTIPART_BOUNDARY}"',
                },
                content=body.encode("utf-8"),
            )
            response.raise_for_status()
            logger.info(f"Dataset saved to Drive ({'updated' if file_id else 'created'} {self.filename})")
        except httpx.HTTPError as e:
            logger.error(f"Drive write failed: {e}")
            raise SyncError(f"Could not save cloud backup: {e}") from e
