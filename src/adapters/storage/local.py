"""
Local logo storage adapter - Implements LogoStorage protocol.

Writes uploaded logos under a directory on disk and returns the public
URL they are served from.
"""

import logging
import re
import time
from pathlib import Path

from src.domain.exceptions import AccountCreationFailed
from src.domain.models import LogoFile

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/svg+xml": "svg",
}


def _sanitize_organization_name(organization_name: str) -> str:
    """Lowercase slug safe for file names; falls back to 'organization'."""
    sanitized = re.sub(r"[^a-zA-Z0-9\s_-]", "", organization_name)
    slug = re.sub(r"[\s_]+", "-", sanitized.strip()).lower()
    return slug or "organization"


class LocalLogoStorage:
    """
    Implements LogoStorage protocol on the local filesystem.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, directory: str | Path, base_url: str) -> None:
        self._directory = Path(directory)
        self._base_url = base_url.rstrip("/")

    def store_logo(self, organization_name: str, logo: LogoFile) -> str:
        """
        Write the logo and return its URL.

        File names are "<organization-slug>-<epoch millis>.<ext>" so
        repeated uploads never overwrite each other.

        Raises:
            AccountCreationFailed: The file could not be written
        """
        extension = EXTENSIONS.get(logo.content_type, "png")
        filename = f"{_sanitize_organization_name(organization_name)}-{int(time.time() * 1000)}.{extension}"
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            (self._directory / filename).write_bytes(logo.data)
        except OSError as e:
            logger.warning("Logo upload failed for %s: %s", organization_name, e)
            raise AccountCreationFailed("Failed to upload logo") from e

        logger.info("Stored logo %s (%d bytes)", filename, logo.size)
        return f"{self._base_url}/{filename}"
