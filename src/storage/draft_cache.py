"""
Draft cache: best-effort local snapshot of an inspection in progress.
One JSON file per order; last write wins.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from src.schemas.models import DraftSnapshot, Inspection
from utils.config import config, DRAFT_DIR
from utils.logger import setup_logger
from utils.validators import sanitize_filename

logger = setup_logger(__name__, level=config.log_level, component="DRAFT")


class DraftCache:
    """Snapshot store scoped to a single inspection session."""

    def __init__(self, order_number: str, base_dir: Optional[Path] = None):
        self.logger = logger
        self.order_number = order_number
        self.base_dir = Path(base_dir) if base_dir else DRAFT_DIR
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.base_dir / f"inspection_{sanitize_filename(order_number)}.json"

    def save(self, inspection: Inspection) -> bool:
        """
        Write the current inspection state.

        Returns:
            True if the snapshot was written
        """
        snapshot = DraftSnapshot(order_number=self.order_number, inspection=inspection)
        try:
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(snapshot.model_dump_json(), encoding="utf-8")
            tmp_path.replace(self.path)
            return True
        except OSError as e:
            self.logger.warning(f"Failed to save draft for {self.order_number}: {e}")
            return False

    def load(self) -> Optional[DraftSnapshot]:
        """Read the snapshot, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            return DraftSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            self.logger.warning(f"Discarding unreadable draft {self.path.name}: {e}")
            self.clear()
            return None

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Failed to clear draft for {self.order_number}: {e}")

    def has_draft(self) -> bool:
        return self.path.exists()

    def draft_age(self) -> Optional[timedelta]:
        """Time since the snapshot was last saved."""
        snapshot = self.load()
        if snapshot is None:
            return None
        return datetime.utcnow() - snapshot.last_saved
