"""Local filesystem blob store."""
import asyncio
import logging
import mimetypes
import os
from pathlib import Path

from studymint.storage.base import BlobStore

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """
    Blobs под base_path, путь = ключ. Content type восстанавливается по
    расширению ключа, поэтому ключи строятся с расширением исходного файла.
    """

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve_path(self, key: str) -> Path:
        clean = Path(key).as_posix().lstrip("/")
        full_path = (self.base_path / clean).resolve()
        # ключ не должен выводить за base_path
        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            raise ValueError(f"Invalid blob key: {key}")
        return full_path

    async def put(self, key: str, content: bytes, content_type: str) -> str:
        path = self._resolve_path(key)
        await asyncio.to_thread(self._write, path, content)
        logger.info("blob_saved", extra={"blob_key": key})
        return key

    async def get(self, key: str) -> tuple[bytes, str]:
        path = self._resolve_path(key)
        content = await asyncio.to_thread(path.read_bytes)
        content_type, _ = mimetypes.guess_type(path.name)
        return content, content_type or "application/octet-stream"

    @staticmethod
    def _write(path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # запись через временный файл: читатель не увидит половину blob
        tmp = path.with_name(path.name + ".part")
        tmp.write_bytes(content)
        os.replace(tmp, path)
