"""
App package for the Delivery Inspection System.
"""

from app.main import main, startup_health_checks

__all__ = [
    "main",
    "startup_health_checks",
]
