"""
Orchestration module for the Delivery Inspection System.
"""

from src.orchestration.state import CompletionState
from src.orchestration.graph import create_completion_workflow, ReportCompletionFlow
from src.orchestration.state_machine import InspectionStateMachine, recompute_totals
from src.orchestration.session import InspectionSession, new_inspection

__all__ = [
    "CompletionState",
    "create_completion_workflow",
    "ReportCompletionFlow",
    "InspectionStateMachine",
    "recompute_totals",
    "InspectionSession",
    "new_inspection",
]
