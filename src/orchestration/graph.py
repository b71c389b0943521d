"""
LangGraph workflow construction and execution for report completion.
"""

import time
from typing import Optional

from langgraph.graph import StateGraph, END

from src.database import InspectionRepository
from src.errors import CompletionFailed
from src.integrations.email import EmailDispatcher
from src.orchestration.nodes import CompletionNodes
from src.orchestration.state import CompletionState
from src.reporting.pdf_generator import InspectionReportRenderer
from src.schemas.models import CompletionResult
from src.storage.remote import ObjectStorage, get_storage
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="GRAPH")


def create_completion_workflow(nodes: CompletionNodes) -> StateGraph:
    """
    Create the completion workflow graph.

    Steps run strictly in order; there are no conditional edges.

    Args:
        nodes: Node functions bound to their collaborators

    Returns:
        Configured StateGraph
    """
    workflow = StateGraph(CompletionState)

    workflow.add_node("load", nodes.load_inspection)
    workflow.add_node("render", nodes.render_pdf)
    workflow.add_node("store", nodes.store_pdf)
    workflow.add_node("record", nodes.record_report)
    workflow.add_node("notify", nodes.send_emails)
    workflow.add_node("finalize", nodes.finalize)

    workflow.set_entry_point("load")

    workflow.add_edge("load", "render")
    workflow.add_edge("render", "store")
    workflow.add_edge("store", "record")
    workflow.add_edge("record", "notify")
    workflow.add_edge("notify", "finalize")
    workflow.add_edge("finalize", END)

    return workflow


class ReportCompletionFlow:
    """
    Terminal action once both phases are signed.

    PDF -> storage -> report record -> emails -> final status. Any failure
    surfaces as a single CompletionFailed.
    """

    def __init__(
        self,
        repository: Optional[InspectionRepository] = None,
        renderer: Optional[InspectionReportRenderer] = None,
        storage: Optional[ObjectStorage] = None,
        mailer: Optional[EmailDispatcher] = None,
    ):
        self.logger = logger
        self.nodes = CompletionNodes(
            repository=repository or InspectionRepository(),
            renderer=renderer or InspectionReportRenderer(),
            storage=storage or get_storage(),
            mailer=mailer or EmailDispatcher(),
        )
        self.app = create_completion_workflow(self.nodes).compile()

    def run(self, inspection_id: int, language: str = "en") -> CompletionResult:
        """
        Run the completion workflow.

        Args:
            inspection_id: Inspection to complete
            language: Language of the customer email

        Returns:
            CompletionResult with report id, PDF link and email outcome

        Raises:
            CompletionFailed: Any collaborator failed; later steps were skipped
        """
        initial_state: CompletionState = {
            "inspection_id": inspection_id,
            "language": language,
            "start_time": time.time(),
            "order_number": None,
            "inspection": None,
            "media": [],
            "pdf_bytes": None,
            "pdf_file_name": None,
            "drive_file_id": None,
            "pdf_link": None,
            "report_id": None,
            "email_results": {},
            "email_sent": False,
            "processing_time": None,
            "current_step": "pending",
        }

        try:
            final_state = self.app.invoke(initial_state)
        except Exception as e:
            self.logger.error(f"Completion of inspection #{inspection_id} failed: {e}", exc_info=True)
            raise CompletionFailed(details=f"{type(e).__name__}: {e}") from e

        return CompletionResult(
            success=True,
            report_id=final_state["report_id"],
            pdf_link=final_state["pdf_link"],
            email_sent=final_state["email_sent"],
            email_results=final_state["email_results"],
        )
