"""
Evidence blob store.

Files uploaded with a report are written to a local directory that is also
served read-only at ``/uploads``. Stored names are random and time-based so
they cannot be guessed from report content; only the original extension is
kept.
"""

import re
import secrets
import time
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os

from community_watch.core.config import settings
from community_watch.core.logging_config import logger

CHUNK_SIZE = 1024 * 1024
_SUFFIX_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


class LocalBlobStore:
    """Opaque file store keyed by generated filename"""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_filename(original_name: Optional[str]) -> str:
        suffix = Path(original_name or "").suffix
        if not _SUFFIX_PATTERN.match(suffix):
            suffix = ""
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"

    def path(self, filename: str) -> Path:
        """Absolute path of a stored file; rejects anything that is not a bare name"""
        if not filename or Path(filename).name != filename or filename in (".", ".."):
            raise FileNotFoundError(f"Invalid evidence filename: {filename!r}")
        return self.root / filename

    async def save(self, original_name: Optional[str], content: bytes) -> str:
        """Write an in-memory payload and return its stored name"""
        filename = self.generate_filename(original_name)
        async with aiofiles.open(self.path(filename), "wb") as out:
            await out.write(content)
        return filename

    async def save_upload(self, upload) -> str:
        """
        Stream an uploaded file (anything with ``filename`` and async ``read``)
        to disk and return its stored name.
        """
        filename = self.generate_filename(getattr(upload, "filename", None))
        target = self.path(filename)

        written = 0
        async with aiofiles.open(target, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                await out.write(chunk)
                written += len(chunk)

        logger.debug(f"[Storage] Stored evidence {filename} ({written} bytes)")
        return filename

    async def save_uploads(self, uploads) -> List[str]:
        """Store several uploads, preserving their order"""
        stored = []
        for upload in uploads:
            stored.append(await self.save_upload(upload))
        return stored

    async def size(self, filename: str) -> int:
        stat = await aiofiles.os.stat(self.path(filename))
        return stat.st_size

    async def read(self, filename: str) -> bytes:
        async with aiofiles.open(self.path(filename), "rb") as f:
            return await f.read()

    @staticmethod
    def public_url(base_url: str, filename: str) -> str:
        return f"{base_url.rstrip('/')}/uploads/{filename}"


_blob_store: Optional[LocalBlobStore] = None


def get_blob_store() -> LocalBlobStore:
    """FastAPI dependency returning the process-wide blob store"""
    global _blob_store
    if _blob_store is None:
        _blob_store = LocalBlobStore(settings.UPLOAD_DIR)
    return _blob_store
