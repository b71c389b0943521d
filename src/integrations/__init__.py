"""
External collaborators: order lookup and email dispatch.
"""

from src.integrations.order_lookup import OrderLookupService, placeholder_order
from src.integrations.email import (
    EmailDispatcher,
    emails_delivered,
    render_report_html,
    render_report_text,
    SUPPORTED_LANGUAGES,
)

__all__ = [
    "OrderLookupService",
    "placeholder_order",
    "EmailDispatcher",
    "emails_delivered",
    "render_report_html",
    "render_report_text",
    "SUPPORTED_LANGUAGES",
]
