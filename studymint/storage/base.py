from abc import ABC, abstractmethod


class BlobStore(ABC):
    """Хранилище оригиналов: непрозрачный ключ -> байты. Содержимое по ключу не меняется."""

    @abstractmethod
    async def put(self, key: str, content: bytes, content_type: str) -> str:
        """Save blob; returns the key."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> tuple[bytes, str]:
        """Returns (content, content_type). FileNotFoundError if the key is unknown."""
        raise NotImplementedError
