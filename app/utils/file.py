# ───── Helpers ────────────────────────────────────────────────────────────────
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile


@dataclass
class UploadedArtifact:
    """A file picked in the form, as received."""
    filename: str
    data: bytes
    content_type: Optional[str] = None


async def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedArtifact]:
    """Read a multipart upload into memory. A missing part maps to None."""
    if upload is None:
        return None
    data = await upload.read()
    return UploadedArtifact(
        filename=upload.filename or "",
        data=data,
        content_type=upload.content_type,
    )
