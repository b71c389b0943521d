"""
Workflow nodes for the report completion pipeline.
"""

import time

from src.database import InspectionRepository
from src.errors import NotFoundError
from src.evidence.upload import media_record_to_attachment
from src.integrations.email import EmailDispatcher, emails_delivered
from src.orchestration.state import CompletionState, validate_state
from src.reporting.pdf_generator import InspectionReportRenderer, report_file_name
from src.schemas.models import Inspection, InspectionStatus, MediaAttachment
from src.storage.remote import ObjectStorage
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="WORKFLOW")


class CompletionNodes:
    """
    Node functions of the completion graph, bound to their collaborators.

    Every node mutates and returns the state. A node that raises stops the
    graph; steps already done are not undone.
    """

    def __init__(
        self,
        repository: InspectionRepository,
        renderer: InspectionReportRenderer,
        storage: ObjectStorage,
        mailer: EmailDispatcher,
    ):
        self.logger = logger
        self.repository = repository
        self.renderer = renderer
        self.storage = storage
        self.mailer = mailer

    def load_inspection(self, state: CompletionState) -> CompletionState:
        """Fetch the inspection aggregate and its media."""
        self.logger.info("=" * 80)
        self.logger.info(f"COMPLETING INSPECTION #{state['inspection_id']}")
        self.logger.info("=" * 80)
        state["current_step"] = "load_inspection"

        is_valid, error = validate_state(state)
        if not is_valid:
            raise ValueError(error)

        record = self.repository.get_inspection(state["inspection_id"])
        if record is None:
            raise NotFoundError(f"Inspection #{state['inspection_id']} not found")

        inspection = Inspection.from_record(record.to_dict())
        media = [
            media_record_to_attachment(r)
            for r in self.repository.list_media(state["inspection_id"])
        ]

        state["order_number"] = inspection.order_number
        state["inspection"] = inspection.model_dump(mode="json")
        state["media"] = [m.model_dump(mode="json") for m in media]
        self.logger.info(f"Order {inspection.order_number}: {len(media)} media file(s)")
        return state

    def render_pdf(self, state: CompletionState) -> CompletionState:
        """Render the PDF report."""
        self.logger.info("Rendering PDF report...")
        state["current_step"] = "render_pdf"

        inspection = Inspection.model_validate(state["inspection"])
        media = [MediaAttachment.model_validate(m) for m in state["media"]]

        state["pdf_bytes"] = self.renderer.render(inspection, media)
        state["pdf_file_name"] = report_file_name(inspection.order_number)
        self.logger.info(f"PDF rendered: {state['pdf_file_name']} ({len(state['pdf_bytes'])} bytes)")
        return state

    def store_pdf(self, state: CompletionState) -> CompletionState:
        """Upload the PDF and keep its shareable link."""
        self.logger.info("Uploading PDF report...")
        state["current_step"] = "store_pdf"

        stored = self.storage.upload(state["pdf_bytes"], state["pdf_file_name"], "application/pdf")
        state["drive_file_id"] = stored.id
        state["pdf_link"] = stored.view_link
        self.logger.info(f"PDF stored: {stored.view_link}")
        return state

    def record_report(self, state: CompletionState) -> CompletionState:
        """Create the report record pointing at the stored PDF."""
        state["current_step"] = "record_report"

        report = self.repository.create_report({
            "inspection_id": state["inspection_id"],
            "pdf_file_name": state["pdf_file_name"],
            "drive_file_id": state["drive_file_id"],
            "drive_link": state["pdf_link"],
            "email_sent": False,
        })
        state["report_id"] = report.id
        return state

    def send_emails(self, state: CompletionState) -> CompletionState:
        """Send the report link to representative, customer and support."""
        self.logger.info("Sending report emails...")
        state["current_step"] = "send_emails"

        inspection = Inspection.model_validate(state["inspection"])
        results = self.mailer.send_inspection_report(
            inspection, state["pdf_link"], language=state.get("language") or "en"
        )
        state["email_results"] = results
        state["email_sent"] = emails_delivered(results)

        if state["email_sent"]:
            self.repository.update_report(state["report_id"], {"email_sent": True})
        else:
            self.logger.warning(f"Report email not fully delivered for {inspection.order_number}: {results}")
        return state

    def finalize(self, state: CompletionState) -> CompletionState:
        """Mark the inspection terminal and log the outcome."""
        state["current_step"] = "completed"

        self.repository.update_inspection(
            state["inspection_id"], {"status": InspectionStatus.FINAL_COMPLETED.value}
        )
        state["processing_time"] = time.time() - state["start_time"]

        self.logger.info("=" * 80)
        self.logger.info("INSPECTION COMPLETE")
        self.logger.info(f"Order: {state['order_number']}")
        self.logger.info(f"Report #{state['report_id']}: {state['pdf_link']}")
        self.logger.info(f"Email sent: {state['email_sent']}")
        self.logger.info(f"Processing time: {state['processing_time']:.2f}s")
        self.logger.info("=" * 80)
        return state
