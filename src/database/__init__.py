"""
Database module for the Delivery Inspection System.
"""

from src.database.models import (
    Base,
    InspectionRecord,
    InspectionMediaRecord,
    InspectionReportRow,
)
from src.database.repository import (
    InspectionRepository,
    init_database,
    health_check_database,
)

__all__ = [
    "Base",
    "InspectionRecord",
    "InspectionMediaRecord",
    "InspectionReportRow",
    "InspectionRepository",
    "init_database",
    "health_check_database",
]
