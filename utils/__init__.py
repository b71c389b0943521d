"""
Utility modules for the Delivery Inspection System.
"""

from utils.config import config, UPLOAD_DIR, REPORT_DIR, LOG_DIR, DRAFT_DIR
from utils.logger import setup_logger
from utils.validators import (
    validate_order_number,
    validate_email,
    validate_item_notes,
    validate_signature,
    validate_test_drive_km,
    sanitize_filename,
)

__all__ = [
    "config",
    "UPLOAD_DIR",
    "REPORT_DIR",
    "LOG_DIR",
    "DRAFT_DIR",
    "setup_logger",
    "validate_order_number",
    "validate_email",
    "validate_item_notes",
    "validate_signature",
    "validate_test_drive_km",
    "sanitize_filename",
]
