"""
File handling service for the Delivery Inspection System.
Separates Streamlit upload objects from the capture pipeline.
"""

import mimetypes
from datetime import datetime
from typing import Tuple

from utils.logger import setup_logger
from utils.validators import sanitize_filename

logger = setup_logger(__name__, component="FILE_HANDLER")


def read_uploaded_file(uploaded_file) -> Tuple[bytes, str, str]:
    """
    Read a Streamlit UploadedFile (file picker or camera input).

    The content type comes from the browser; when it is missing it is
    guessed from the file name.

    Returns:
        Tuple of (data, content_type, file_name)
    """
    if uploaded_file.name:
        file_name = sanitize_filename(uploaded_file.name)
    else:
        file_name = f"upload_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    content_type = uploaded_file.type or mimetypes.guess_type(file_name)[0] or ""
    data = uploaded_file.getvalue()

    logger.debug(f"Read {file_name} ({content_type or 'unknown type'}, {len(data)} bytes)")
    return data, content_type, file_name


def format_size(size_bytes: int) -> str:
    """Human readable file size."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"
