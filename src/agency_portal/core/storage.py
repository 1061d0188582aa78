"""File storage for submission attachments."""

from __future__ import annotations

import re
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Protocol

from agency_portal.core.errors import ExternalServiceFailure

UNSAFE_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9.-]")


@dataclass(frozen=True)
class StoredFile:
    """Descriptor appended to a submission's attachment list."""

    file_name: str
    file_path: str
    file_url: str
    file_size: int
    mime_type: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class FileStorage(Protocol):
    def upload(
        self,
        folder: str,
        file_name: str,
        content: bytes,
        content_type: str,
    ) -> StoredFile:
        ...


def sanitize_file_name(file_name: str) -> str:
    return UNSAFE_NAME_PATTERN.sub("_", file_name)


class LocalFileStorage:
    """Stores files under ``root/bucket/<folder>`` and serves them from a base URL."""

    def __init__(self, root: str | Path, public_base_url: str, bucket: str = "policy-documents"):
        self._root = Path(root) / bucket
        self._public_base_url = public_base_url.rstrip("/")
        self._bucket = bucket

    def upload(
        self,
        folder: str,
        file_name: str,
        content: bytes,
        content_type: str,
    ) -> StoredFile:
        relative = f"{folder}/{int(time.time() * 1000)}_{sanitize_file_name(file_name)}"
        target = self._root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as error:
            raise ExternalServiceFailure(f"Upload failed for {file_name}: {error}") from error
        return StoredFile(
            file_name=file_name,
            file_path=relative,
            file_url=f"{self._public_base_url}/{self._bucket}/{relative}",
            file_size=len(content),
            mime_type=content_type,
        )
