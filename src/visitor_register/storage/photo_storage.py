"""Local storage for visitor photos.

The database only ever keeps the relative reference returned by ``save``
(``uploads/<file>``); the HTTP layer serves the directory back.
"""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..core.constants import ALLOWED_PHOTO_MIMETYPES
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "uploads"


class PhotoStorage:
    def __init__(self, upload_dir: str | Path, *, field_name: str = "photo"):
        self._dir = Path(upload_dir)
        self._field_name = field_name

    @property
    def directory(self) -> Path:
        return self._dir

    def save(self, upload: Optional[FileStorage]) -> Optional[str]:
        """Store an upload and return its relative path, or None when nothing was sent."""
        if upload is None or not upload.filename:
            return None
        if upload.mimetype not in ALLOWED_PHOTO_MIMETYPES:
            raise ValidationError("Invalid file type, only JPEG, PNG, or GIF is allowed!")

        suffix = Path(secure_filename(upload.filename)).suffix.lower()
        name = f"{self._field_name}-{uuid.uuid4().hex}{suffix}"
        self._dir.mkdir(parents=True, exist_ok=True)
        upload.save(self._dir / name)
        logger.info("Stored uploaded photo %s", name)
        return f"{URL_PREFIX}/{name}"

    def resolve(self, relative_path: str) -> Path:
        return self._dir / Path(relative_path).name

    def delete(self, relative_path: Optional[str]) -> bool:
        """Remove a staged file; failures are logged, never raised."""
        if not relative_path:
            return False
        path = self.resolve(relative_path)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Uploaded file already gone: %s", path)
            return False
        except OSError as e:
            logger.error("Failed to clean up uploaded file %s: %s", path, e)
            return False
        logger.info("Cleaned up uploaded file: %s", path)
        return True
