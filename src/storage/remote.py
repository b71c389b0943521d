"""
Remote object storage for inspection media and reports.
Google Drive via service account, with a local directory store for development.
"""

import hashlib
import io
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from src.errors import StorageError
from src.schemas.models import StoredObject
from utils.config import config, UPLOAD_DIR
from utils.logger import setup_logger
from utils.validators import sanitize_filename

logger = setup_logger(__name__, level=config.log_level, component="STORAGE")

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]


class ObjectStorage(ABC):
    """
    Base class for storage backends.

    Subclasses implement _put(); upload() adds retry with exponential backoff.
    """

    name = "storage"

    def __init__(
        self,
        max_retries: Optional[int] = None,
        retry_base_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = logger
        self.max_retries = config.upload_max_retries if max_retries is None else max_retries
        self.retry_base_seconds = (
            config.upload_retry_base_seconds if retry_base_seconds is None else retry_base_seconds
        )
        self._sleep = sleep

    @abstractmethod
    def _put(self, data: bytes, file_name: str, mime_type: str) -> StoredObject:
        """Store one object. Raise on failure."""

    @abstractmethod
    def health_check(self) -> Tuple[bool, str]:
        """Return (ok, details) for the startup health table."""

    def upload(self, data: bytes, file_name: str, mime_type: str) -> StoredObject:
        """
        Upload an object, retrying failed attempts.

        Waits retry_base_seconds * 2**n between attempts (1s, 2s, 4s by default).

        Args:
            data: Object bytes
            file_name: Name to store under
            mime_type: Content type

        Returns:
            StoredObject with remote id and shareable view link

        Raises:
            StorageError: When every attempt fails
        """
        last_error = None
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                self.logger.debug(f"Upload attempt {attempt + 1}/{attempts}: {file_name}")
                stored = self._put(data, file_name, mime_type)
                self.logger.info(f"✓ Uploaded {file_name} ({len(data)} bytes) -> {stored.id}")
                return stored

            except Exception as e:
                last_error = e
                if attempt < self.max_retries:
                    wait_time = self.retry_base_seconds * (2 ** attempt)
                    self.logger.warning(
                        f"Upload of {file_name} failed ({e}), retrying in {wait_time:g}s..."
                    )
                    self._sleep(wait_time)

        self.logger.error(f"All {attempts} upload attempts failed for {file_name}")
        raise StorageError(details=f"{type(last_error).__name__}: {last_error}") from last_error


class GoogleDriveStorage(ObjectStorage):
    """Google Drive backend. Uploaded files are made readable by anyone with the link."""

    name = "Google Drive"

    def __init__(
        self,
        service=None,
        folder_id: Optional[str] = None,
        credentials_file: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._service = service
        self.folder_id = folder_id or config.google_drive_folder_id
        self.credentials_file = credentials_file or config.google_service_account_file

    @property
    def service(self):
        """Lazily build the Drive v3 client from the service account file."""
        if self._service is None:
            if not self.credentials_file or not Path(self.credentials_file).exists():
                raise StorageError("Google Drive credentials file not found",
                                   details=str(self.credentials_file))
            credentials = service_account.Credentials.from_service_account_file(
                self.credentials_file, scopes=DRIVE_SCOPES
            )
            self._service = build("drive", "v3", credentials=credentials, cache_discovery=False)
            self.logger.info("✓ Google Drive service initialized")
        return self._service

    def _put(self, data: bytes, file_name: str, mime_type: str) -> StoredObject:
        file_metadata = {
            "name": file_name,
            "parents": [self.folder_id],
        }
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=True)

        created = self.service.files().create(
            body=file_metadata,
            media_body=media,
            fields="id,name,webViewLink",
            supportsAllDrives=True,
        ).execute()

        file_id = created["id"]
        self.service.permissions().create(
            fileId=file_id,
            body={"role": "reader", "type": "anyone"},
            supportsAllDrives=True,
        ).execute()

        view_link = created.get("webViewLink") or f"https://drive.google.com/file/d/{file_id}/view"
        return StoredObject(id=file_id, view_link=view_link)

    def health_check(self) -> Tuple[bool, str]:
        try:
            about = self.service.about().get(fields="user(emailAddress)").execute()
            return True, f"Service account: {about.get('user', {}).get('emailAddress', 'unknown')}"
        except Exception as e:
            return False, str(e)


class LocalFileStorage(ObjectStorage):
    """Stores objects in a local directory. Links are file:// URIs."""

    name = "Local directory"

    def __init__(self, base_dir: Optional[Path] = None, **kwargs):
        super().__init__(**kwargs)
        self.base_dir = Path(base_dir) if base_dir else UPLOAD_DIR
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _put(self, data: bytes, file_name: str, mime_type: str) -> StoredObject:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_hash = hashlib.md5(data).hexdigest()[:8]
        safe_name = sanitize_filename(file_name)
        stored_name = f"{timestamp}_{file_hash}_{safe_name}"

        path = self.base_dir / stored_name
        path.write_bytes(data)
        return StoredObject(id=stored_name, view_link=path.resolve().as_uri())

    def health_check(self) -> Tuple[bool, str]:
        writable = self.base_dir.exists() and self.base_dir.is_dir()
        return writable, str(self.base_dir.resolve())


def get_storage() -> ObjectStorage:
    """
    Build the configured storage backend.

    Falls back to local storage when Drive is selected but no service account is configured.
    """
    if config.storage_backend == "gdrive":
        if config.google_service_account_file:
            return GoogleDriveStorage()
        logger.warning("STORAGE_BACKEND=gdrive but GOOGLE_SERVICE_ACCOUNT_FILE is not set; using local storage")
    return LocalFileStorage()
