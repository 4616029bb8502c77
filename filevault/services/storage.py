"""Blob storage abstraction. Local filesystem for dev, Cloudinary for production.

Stores are addressed by an opaque key chosen at upload time. The key is the
only handle used to open or delete a blob later; the address returned next to
it is what clients see (a public URL, or a local path that the API serves).
"""

import hashlib
import logging
import re
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os
import httpx
from fastapi import UploadFile

from filevault.core.config import Settings, StorageBackendEnum, settings
from filevault.exceptions.file import RangeNotSatisfiableError, StorageError
from filevault.shared.ranges import parse_range_header

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB

_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


class BlobNotFoundError(LookupError):
    """The store has no blob under the requested key."""


@dataclass(frozen=True)
class StoredBlob:
    key: str
    address: str
    size: int


@dataclass
class BlobStream:
    """An open blob body. ``content_range`` is set for partial responses."""

    chunks: AsyncIterator[bytes]
    content_length: int | None = None
    content_range: str | None = None
    close: Callable[[], Awaitable[None]] | None = None

    @property
    def status_code(self) -> int:
        return 206 if self.content_range else 200

    def headers(self) -> dict[str, str]:
        headers = {"Accept-Ranges": "bytes"}
        if self.content_length is not None:
            headers["Content-Length"] = str(self.content_length)
        if self.content_range:
            headers["Content-Range"] = self.content_range
        return headers

    async def aclose(self) -> None:
        if self.close is not None:
            await self.close()
            self.close = None


class BlobStore(ABC):
    """Contract shared by every storage backend."""

    #: Whether the API can serve this store's blobs itself (vs. redirecting)
    serves_locally: bool = False
    #: Whether browsers can upload straight to the store with signed params
    supports_direct_upload: bool = False

    @abstractmethod
    async def store(self, upload: UploadFile, original_name: str, content_type: str) -> StoredBlob:
        """Persist the upload body and return its key and address."""

    @abstractmethod
    async def open(
        self, key: str, address: str | None = None, range_header: str | None = None
    ) -> BlobStream:
        """Open a blob for streaming, honouring a single byte range."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a blob. Returns False when it was already absent."""

    def owns(self, address: str) -> bool:
        """Whether ``address`` points into this store."""
        return False

    def key_from_address(self, address: str) -> str | None:
        return None


class LocalBlobStore(BlobStore):
    """Blobs as files under a single directory, read and written with aiofiles."""

    serves_locally = True

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if path.parent != self.base_path:
            raise BlobNotFoundError(key)
        return path

    @staticmethod
    def _new_key(original_name: str) -> str:
        suffix = Path(original_name).suffix
        if not _SAFE_SUFFIX.match(suffix):
            suffix = ""
        return f"{uuid.uuid4().hex}{suffix.lower()}"

    async def store(self, upload: UploadFile, original_name: str, content_type: str) -> StoredBlob:
        key = self._new_key(original_name)
        path = self._path(key)
        size = 0

        await upload.seek(0)
        try:
            async with aiofiles.open(path, "wb") as out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    await out.write(chunk)
        except OSError as e:
            logger.error("Failed to write blob %s: %s", key, e)
            await self._discard(path)
            raise StorageError("Failed to store file") from e

        logger.debug("Stored blob %s (%d bytes)", key, size)
        return StoredBlob(key=key, address=str(path), size=size)

    async def open(
        self, key: str, address: str | None = None, range_header: str | None = None
    ) -> BlobStream:
        path = self._path(key)
        try:
            stat = await aiofiles.os.stat(path)
        except FileNotFoundError as e:
            raise BlobNotFoundError(key) from e

        size = stat.st_size
        byte_range = parse_range_header(range_header, size)
        start = byte_range.start if byte_range else 0
        length = byte_range.length if byte_range else size

        return BlobStream(
            chunks=self._iter_file(path, start, length),
            content_length=length,
            content_range=byte_range.content_range if byte_range else None,
        )

    @staticmethod
    async def _iter_file(path: Path, start: int, length: int) -> AsyncIterator[bytes]:
        async with aiofiles.open(path, "rb") as f:
            await f.seek(start)
            remaining = length
            while remaining > 0:
                chunk = await f.read(min(CHUNK_SIZE, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk

    async def delete(self, key: str) -> bool:
        try:
            path = self._path(key)
        except BlobNotFoundError:
            return False
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("Failed to delete file from storage") from e
        return True

    @staticmethod
    async def _discard(path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning("Could not remove partial blob %s: %s", path.name, e)


class CloudinaryBlobStore(BlobStore):
    """
    Blobs on Cloudinary, reached over its REST API with httpx.

    Keys have the form ``<resource_type>/<public_id>`` because deletion is
    scoped by resource type. Uploads use ``resource_type=auto``.
    """

    supports_direct_upload = True

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "filevault_uploads",
        api_url: str = "https://api.cloudinary.com/v1_1",
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._delivery_pattern = re.compile(
            rf"^https://res\.cloudinary\.com/{re.escape(cloud_name)}/"
            r"(image|video|raw)/upload/(?:v\d+/)?(.+)$"
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def sign(self, params: dict) -> str:
        """Cloudinary request signature: SHA-1 over sorted params plus the secret."""
        to_sign = "&".join(
            f"{name}={value}" for name, value in sorted(params.items()) if value not in (None, "")
        )
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def signed_upload_params(self, timestamp: int | None = None) -> dict:
        """Parameters a browser needs to upload directly to the store."""
        params = {"timestamp": timestamp or int(time.time()), "folder": self.folder}
        return {
            **params,
            "signature": self.sign(params),
            "api_key": self.api_key,
            "cloud_name": self.cloud_name,
        }

    @staticmethod
    def split_key(key: str) -> tuple[str, str]:
        resource_type, _, public_id = key.partition("/")
        if not public_id:
            return "raw", key
        return resource_type, public_id

    async def store(self, upload: UploadFile, original_name: str, content_type: str) -> StoredBlob:
        params = {"timestamp": int(time.time()), "folder": self.folder}
        data = {**params, "signature": self.sign(params), "api_key": self.api_key}
        url = f"{self.api_url}/{self.cloud_name}/auto/upload"

        await upload.seek(0)
        try:
            async with self._client() as client:
                files = {"file": (original_name, upload.file, content_type)}
                resp = await client.post(url, data=data, files=files)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Cloudinary upload rejected with %s", e.response.status_code)
            raise StorageError(f"File storage rejected the upload ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error("Cloudinary upload failed: %s", e)
            raise StorageError("File storage unavailable") from e

        body = resp.json()
        return StoredBlob(
            key=f"{body['resource_type']}/{body['public_id']}",
            address=body["secure_url"],
            size=int(body.get("bytes") or 0),
        )

    async def open(
        self, key: str, address: str | None = None, range_header: str | None = None
    ) -> BlobStream:
        if not address:
            raise BlobNotFoundError(key)

        client = self._client()
        headers = {"Range": range_header} if range_header else None
        try:
            response = await client.send(client.build_request("GET", address, headers=headers), stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            logger.error("Cloudinary fetch failed for %s: %s", key, e)
            raise StorageError("File storage unavailable") from e

        async def close() -> None:
            await response.aclose()
            await client.aclose()

        if response.status_code >= 400:
            await close()
            if response.status_code == 404:
                raise BlobNotFoundError(key)
            if response.status_code == 416:
                raise RangeNotSatisfiableError(_total_from_content_range(response.headers))
            raise StorageError(f"File storage error ({response.status_code})")

        content_length = response.headers.get("content-length")
        return BlobStream(
            chunks=response.aiter_bytes(),
            content_length=int(content_length) if content_length else None,
            content_range=response.headers.get("content-range") if response.status_code == 206 else None,
            close=close,
        )

    async def delete(self, key: str) -> bool:
        resource_type, public_id = self.split_key(key)
        params = {"public_id": public_id, "timestamp": int(time.time())}
        data = {**params, "signature": self.sign(params), "api_key": self.api_key}
        url = f"{self.api_url}/{self.cloud_name}/{resource_type}/destroy"

        try:
            async with self._client() as client:
                resp = await client.post(url, data=data)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StorageError(f"File storage rejected the delete ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            raise StorageError("File storage unavailable") from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise StorageError("File storage returned an unreadable delete response") from e

        result = payload.get("result") if isinstance(payload, dict) else None
        if result == "not found":
            return False
        if result != "ok":
            raise StorageError(f"Unexpected delete result: {result}")
        return True

    def owns(self, address: str) -> bool:
        return bool(self._delivery_pattern.match(address or ""))

    def key_from_address(self, address: str) -> str | None:
        match = self._delivery_pattern.match(address or "")
        if not match:
            return None
        resource_type, path = match.groups()
        # image and video public ids exclude the delivery format; raw ones keep it
        public_id = path if resource_type == "raw" else path.rsplit(".", 1)[0]
        return f"{resource_type}/{public_id}"


def _total_from_content_range(headers: httpx.Headers) -> int:
    _, _, total = (headers.get("content-range") or "").rpartition("/")
    return int(total) if total.isdigit() else 0


def build_blob_store(config: Settings | None = None) -> BlobStore:
    """Create the store selected by ``storage_backend``."""
    config = config or settings
    if config.storage_backend == StorageBackendEnum.cloudinary:
        if not config.has_cloudinary:
            raise ValueError("Cloudinary storage selected but credentials are not configured")
        return CloudinaryBlobStore(
            cloud_name=config.cloudinary_cloud_name,
            api_key=config.cloudinary_api_key,
            api_secret=config.cloudinary_api_secret,
            folder=config.cloudinary_folder,
            api_url=config.cloudinary_api_url,
            timeout=config.blob_transfer_timeout,
        )
    return LocalBlobStore(config.local_storage_path)
