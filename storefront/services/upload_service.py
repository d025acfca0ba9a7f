"""
Upload service: artwork files attached to quotes and orders.

Files are written to UPLOADS_DIR as ``<uuid>-<sanitized name>`` and served
from ``/storage/<name>``.
"""
import logging
import uuid
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional

from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.audit import log_authorization_failed, log_upload_rejected
from storefront.core.exceptions import (
    NotFoundError,
    PayloadTooLargeError,
    PermissionDeniedError,
    ValidationFailedError,
)
from storefront.core.metrics import metrics
from storefront.models.database import Upload, User, UserRole

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
STORAGE_URL_PREFIX = "/storage/"
ALLOWED_NAME_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.")


def sanitize_filename(value: Optional[str]) -> str:
    """Keep the base name, replacing anything outside [A-Za-z0-9._-]."""
    name = Path((value or "").replace("\\", "/")).name
    cleaned = "".join(ch if ch in ALLOWED_NAME_CHARS else "_" for ch in name).strip("._")
    return cleaned[:200] or "file"


class UploadService:
    """Service for storing and removing uploaded files."""

    def __init__(self, uploads_dir: Optional[Path] = None):
        self._uploads_dir = uploads_dir

    @property
    def uploads_dir(self) -> Path:
        path = Path(self._uploads_dir or settings.UPLOADS_DIR)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _check_links(self, db: Session, user: User, quote_id: Optional[str], order_id: Optional[str]) -> None:
        from storefront.services.order_service import order_service
        from storefront.services.quote_service import quote_service

        if quote_id:
            quote_service.get_owned_quote(db, user, quote_id)
        if order_id:
            order_service.get_owned_order(db, user, order_id)

    def store_upload(
        self,
        db: Session,
        user: User,
        file_name: Optional[str],
        content_type: Optional[str],
        stream: Optional[BinaryIO],
        quote_id: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Persist an uploaded file and its record.

        Args:
            db: Database session
            user: Uploading user
            file_name: Client file name (sanitized before use)
            content_type: MIME type reported by the client
            stream: Readable binary file object
            quote_id: Optional quote to attach to
            order_id: Optional order to attach to

        Raises:
            ValidationFailedError: No file or an empty file
            PayloadTooLargeError: File larger than MAX_UPLOAD_BYTES
        """
        if stream is None or not file_name:
            raise ValidationFailedError("File required", field="file")
        self._check_links(db, user, quote_id, order_id)

        stored_name = f"{uuid.uuid4()}-{sanitize_filename(file_name)}"
        target = self.uploads_dir / stored_name
        size = 0
        try:
            with open(target, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > settings.MAX_UPLOAD_BYTES:
                        raise PayloadTooLargeError(
                            f"File too large. Max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB."
                        )
                    out.write(chunk)
        except PayloadTooLargeError:
            target.unlink(missing_ok=True)
            log_upload_rejected(user.id, file_name, "too_large")
            raise

        if size == 0:
            target.unlink(missing_ok=True)
            log_upload_rejected(user.id, file_name, "empty")
            raise ValidationFailedError("File is empty", field="file")

        upload = Upload(
            owner_user_id=user.id,
            quote_id=quote_id or None,
            order_id=order_id or None,
            file_url=f"{STORAGE_URL_PREFIX}{stored_name}",
            file_type=content_type or "application/octet-stream",
            file_name=file_name[:255],
            file_size_bytes=size,
            dpi_warning=False,
        )
        db.add(upload)
        db.commit()
        db.refresh(upload)

        metrics.increment("uploads_stored")
        logger.info(f"Stored upload {upload.id} ({size} bytes) as {stored_name}")
        return upload.to_dict()

    def get_owned_upload(self, db: Session, user: User, upload_id: str) -> Upload:
        upload = db.query(Upload).filter(Upload.id == upload_id).first()
        if upload is None:
            raise NotFoundError("Upload")
        if user.role == UserRole.CUSTOMER and upload.owner_user_id != user.id:
            log_authorization_failed(user.id, "upload", upload_id)
            raise PermissionDeniedError("Access denied")
        return upload

    def delete_upload(self, db: Session, user: User, upload_id: str) -> None:
        """Remove the stored file, then the record."""
        upload = self.get_owned_upload(db, user, upload_id)
        path = self.uploads_dir / Path(upload.file_url).name
        if path.exists():
            path.unlink()
        db.delete(upload)
        db.commit()
        logger.info(f"Deleted upload {upload_id}")


# Singleton instance
upload_service = UploadService()
