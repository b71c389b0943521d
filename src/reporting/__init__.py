"""
Reporting module for the Delivery Inspection System.
"""

from src.reporting.pdf_generator import InspectionReportRenderer, report_file_name

__all__ = [
    "InspectionReportRenderer",
    "report_file_name",
]
