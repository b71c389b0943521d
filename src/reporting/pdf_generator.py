"""
PDF report generation for completed delivery inspections.
Lays out vehicle and customer details, item-by-item results, a media-links
appendix and the phase signatures.
"""

import base64
import binascii
import io
from datetime import datetime
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib.colors import HexColor, white
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle,
    Image as RLImage, KeepTogether, Flowable
)
from reportlab.pdfgen import canvas
from PIL import Image, UnidentifiedImageError

from src.schemas.models import (
    Inspection,
    InspectionItem,
    ItemStatus,
    MediaAttachment,
    Phase,
)
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="REPORTS")


# ============================================================================
# COLORS
# ============================================================================

BRAND_PRIMARY = HexColor("#1e40af")   # Deep blue
BRAND_SUCCESS = HexColor("#059669")   # Green
BRAND_WARNING = HexColor("#d97706")   # Orange
BRAND_DANGER = HexColor("#dc2626")    # Red
BRAND_GRAY = HexColor("#6b7280")      # Gray
BRAND_LIGHT = HexColor("#f3f4f6")     # Light gray
BRAND_DARK = HexColor("#1f2937")      # Dark

STATUS_LABELS = {
    ItemStatus.PASSED: ("PASS", BRAND_SUCCESS),
    ItemStatus.FAILED: ("FAIL", BRAND_DANGER),
    ItemStatus.PENDING: ("PENDING", BRAND_GRAY),
}


def report_file_name(order_number: str) -> str:
    """File name of the stored report for an order."""
    return f"Tesla_Inspection_{order_number}.pdf"


def decode_signature_image(signature: Optional[str]) -> Optional[Image.Image]:
    """
    Decode a data-URL signature into an image.

    Returns:
        PIL image, or None for typed signatures and undecodable data
    """
    if not signature or not signature.startswith("data:image/"):
        return None
    try:
        _, encoded = signature.split(",", 1)
        image = Image.open(io.BytesIO(base64.b64decode(encoded)))
        image.load()
        return image
    except (ValueError, binascii.Error, UnidentifiedImageError, OSError) as e:
        logger.warning(f"Signature image could not be decoded: {e}")
        return None


# ============================================================================
# CUSTOM FLOWABLES
# ============================================================================

class ResultStamp(Flowable):
    """A large overall result stamp (PASSED / ISSUES FOUND)."""

    def __init__(self, failed_items: int, width=250, height=60):
        Flowable.__init__(self)
        self.failed_items = failed_items
        self.width = width
        self.height = height

    def draw(self):
        if self.failed_items == 0:
            text = "ALL ITEMS PASSED"
            fill_color = BRAND_SUCCESS
        else:
            text = f"{self.failed_items} ISSUE(S) FOUND"
            fill_color = BRAND_DANGER

        self.canv.setFillColor(fill_color)
        self.canv.setStrokeColor(fill_color)
        self.canv.roundRect(0, 0, self.width, self.height, 10, fill=1, stroke=1)

        self.canv.setFillColor(white)
        self.canv.setFont("Helvetica-Bold", 16)
        text_width = self.canv.stringWidth(text, "Helvetica-Bold", 16)
        self.canv.drawString((self.width - text_width) / 2, (self.height - 16) / 2 + 4, text)

    def wrap(self, availWidth, availHeight):
        return (self.width, self.height)


# ============================================================================
# PDF HEADER/FOOTER
# ============================================================================

class BrandedCanvas(canvas.Canvas):
    """Canvas with branded header, footer, and page numbers."""

    def __init__(self, *args, order_number=None, **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states = []
        self.order_number = order_number or "N/A"

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        num_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_header()
            self._draw_footer(num_pages)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    def _draw_header(self):
        """Draw branded header on every page."""
        self.saveState()

        page_width = A4[0]
        header_height = 50
        header_y = A4[1] - header_height - 20

        self.setFillColor(BRAND_DARK)
        self.rect(0.5 * inch, header_y, page_width - 1 * inch, header_height, fill=1, stroke=0)

        self.setFillColor(white)
        self.setFont("Helvetica-Bold", 14)
        self.drawString(0.6 * inch, header_y + 20, "PRE-DELIVERY INSPECTION")

        self.setFont("Helvetica-Bold", 11)
        self.drawRightString(page_width - 0.6 * inch, header_y + 28, f"ORDER: {self.order_number}")

        self.setFont("Helvetica", 9)
        self.drawRightString(
            page_width - 0.6 * inch, header_y + 12, datetime.now().strftime("%Y-%m-%d %H:%M")
        )

        self.restoreState()

    def _draw_footer(self, page_count):
        """Draw footer with page numbers."""
        self.saveState()

        page_width = A4[0]
        footer_y = 0.4 * inch

        self.setStrokeColor(BRAND_GRAY)
        self.line(0.5 * inch, footer_y + 15, page_width - 0.5 * inch, footer_y + 15)

        self.setFont("Helvetica", 8)
        self.setFillColor(BRAND_GRAY)
        self.drawString(0.5 * inch, footer_y, "Generated by Delivery Inspection System")
        self.drawRightString(
            page_width - 0.5 * inch,
            footer_y,
            f"Page {self._pageNumber} of {page_count}"
        )

        self.restoreState()


# ============================================================================
# PDF REPORT RENDERER
# ============================================================================

class InspectionReportRenderer:
    """Renders an inspection and its media list into a PDF document."""

    def __init__(self):
        self.logger = logger
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom paragraph styles."""

        def safe_add(style):
            """Safely add style if it doesn't exist."""
            if style.name not in self.styles:
                self.styles.add(style)

        safe_add(ParagraphStyle(
            name="CustomTitle",
            parent=self.styles["Title"],
            fontSize=22,
            textColor=BRAND_PRIMARY,
            spaceAfter=16,
            alignment=TA_CENTER,
            fontName="Helvetica-Bold"
        ))

        safe_add(ParagraphStyle(
            name="SectionHeader",
            parent=self.styles["Heading1"],
            fontSize=15,
            textColor=BRAND_PRIMARY,
            spaceBefore=20,
            spaceAfter=10,
            fontName="Helvetica-Bold"
        ))

        safe_add(ParagraphStyle(
            name="SubHeader",
            parent=self.styles["Heading2"],
            fontSize=12,
            textColor=BRAND_DARK,
            spaceBefore=12,
            spaceAfter=6,
            fontName="Helvetica-Bold"
        ))

        safe_add(ParagraphStyle(
            name="CustomBodyText",
            parent=self.styles["Normal"],
            fontSize=10,
            textColor=BRAND_DARK,
            spaceAfter=8,
            leading=14
        ))

        safe_add(ParagraphStyle(
            name="TableText",
            parent=self.styles["Normal"],
            fontSize=9,
            leading=11,
        ))

        safe_add(ParagraphStyle(
            name="LinkText",
            parent=self.styles["Normal"],
            fontSize=8,
            leading=10,
            textColor=BRAND_PRIMARY,
        ))

    def render(self, inspection: Inspection, media: List[MediaAttachment]) -> bytes:
        """
        Render the report.

        Args:
            inspection: Inspection aggregate (sections, phases, signatures)
            media: Media attachments listed in the appendix

        Returns:
            PDF bytes
        """
        self.logger.info(f"Generating PDF report for order {inspection.order_number}...")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=1.25 * inch,
            bottomMargin=0.75 * inch,
            title=f"Pre-Delivery Inspection {inspection.order_number}",
        )

        story = []
        story.extend(self._build_title_section(inspection))
        story.extend(self._build_vehicle_info(inspection))
        story.extend(self._build_summary(inspection))
        for phase in Phase:
            story.extend(self._build_phase_details(inspection, phase))
        story.extend(self._build_media_links(media))
        story.extend(self._build_signatures(inspection))

        def make_canvas(*args, **kwargs):
            return BrandedCanvas(*args, order_number=inspection.order_number, **kwargs)

        doc.build(story, canvasmaker=make_canvas)

        pdf_bytes = buffer.getvalue()
        self.logger.info(f"PDF report generated: {len(pdf_bytes)} bytes")
        return pdf_bytes

    def _build_title_section(self, inspection: Inspection) -> List:
        elements = []
        elements.append(Paragraph("Tesla Pre-Delivery Inspection Report", self.styles["CustomTitle"]))

        stamp_table = Table(
            [[ResultStamp(inspection.failed_items)]],
            colWidths=[6.5 * inch]
        )
        stamp_table.setStyle(TableStyle([
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        elements.append(stamp_table)
        elements.append(Spacer(1, 0.2 * inch))
        return elements

    def _key_value_table(self, rows: List[List]) -> Table:
        table = Table(rows, colWidths=[2.0 * inch, 4.5 * inch])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("BACKGROUND", (0, 0), (0, -1), BRAND_LIGHT),
            ("ALIGN", (0, 0), (0, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("BOX", (0, 0), (-1, -1), 1, BRAND_GRAY),
            ("GRID", (0, 0), (-1, -1), 0.5, BRAND_GRAY),
            ("TOPPADDING", (0, 0), (-1, -1), 5),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ("LEFTPADDING", (0, 0), (-1, -1), 8),
            ("RIGHTPADDING", (0, 0), (-1, -1), 8),
        ]))
        return table

    def _build_vehicle_info(self, inspection: Inspection) -> List:
        """Order, vehicle and customer details."""
        created = inspection.created_at.strftime("%Y-%m-%d") if inspection.created_at else "N/A"
        rows = [
            ["Order Number", inspection.order_number],
            ["VIN", inspection.vin or "N/A"],
            ["Vehicle", inspection.vehicle_model or "N/A"],
            ["Color", inspection.vehicle_color or "N/A"],
            ["Customer", inspection.customer_name or "N/A"],
            ["Inspection Date", created],
        ]
        if inspection.test_drive_km is not None:
            rows.append(["Test Drive Distance", f"{inspection.test_drive_km:.0f} km"])

        return [
            Paragraph("Vehicle Information", self.styles["SectionHeader"]),
            self._key_value_table(rows),
        ]

    def _build_summary(self, inspection: Inspection) -> List:
        """Totals and phase statuses."""
        rows = [
            ["Total Items", str(inspection.total_items)],
            ["Completed Items", str(inspection.completed_items)],
            ["Failed Items", str(inspection.failed_items)],
        ]
        for phase in Phase:
            status = inspection.phase_status(phase)
            completed_at = inspection.phase_completed_at(phase)
            suffix = f" ({completed_at.strftime('%Y-%m-%d %H:%M')})" if completed_at else ""
            rows.append([phase.label, f"{status.value.title()}{suffix}"])

        table = self._key_value_table(rows)
        if inspection.failed_items > 0:
            table.setStyle(TableStyle([
                ("TEXTCOLOR", (1, 2), (1, 2), BRAND_DANGER),
                ("FONTNAME", (1, 2), (1, 2), "Helvetica-Bold"),
            ]))

        return [Paragraph("Inspection Summary", self.styles["SectionHeader"]), table]

    def _item_row(self, item: InspectionItem, media_count: int) -> List:
        label, _ = STATUS_LABELS[item.status]
        details = f"<b>{escape(item.name)}</b>"
        if item.description:
            details += f"<br/>{escape(item.description)}"
        if item.notes:
            details += f"<br/><i>Notes: {escape(item.notes)}</i>"
        return [label, Paragraph(details, self.styles["TableText"]), str(media_count or "")]

    def _build_phase_details(self, inspection: Inspection, phase: Phase) -> List:
        """Item-by-item results for one phase, grouped by section."""
        sections = [s for s in inspection.sections if s.discovery_stage == phase]
        if not sections:
            return []

        elements = [Paragraph(f"{phase.label} Results", self.styles["SectionHeader"])]

        for section in sections:
            rows = [["Result", "Item", "Media"]]
            row_colors = []
            for row_index, item in enumerate(section.items, start=1):
                rows.append(self._item_row(item, len(item.media)))
                row_colors.append(("TEXTCOLOR", (0, row_index), (0, row_index), STATUS_LABELS[item.status][1]))

            table = Table(rows, colWidths=[0.9 * inch, 5.0 * inch, 0.6 * inch], repeatRows=1)
            table.setStyle(TableStyle([
                ("BACKGROUND", (0, 0), (-1, 0), BRAND_GRAY),
                ("TEXTCOLOR", (0, 0), (-1, 0), white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, 1), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (0, 0), (0, -1), "CENTER"),
                ("ALIGN", (2, 0), (2, -1), "CENTER"),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [white, HexColor("#f8fafc")]),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ] + row_colors))

            elements.append(Paragraph(escape(section.name), self.styles["SubHeader"]))
            elements.append(table)

        return elements

    def _build_media_links(self, media: List[MediaAttachment]) -> List:
        """Appendix listing every stored media file with its link."""
        elements = [Paragraph(f"Media Links ({len(media)})", self.styles["SectionHeader"])]

        if not media:
            elements.append(Paragraph("No media was attached to this inspection.", self.styles["CustomBodyText"]))
            return elements

        rows = [["Item", "Type", "File", "Link"]]
        for m in media:
            link = m.drive_link or f"({m.upload_status.value})"
            rows.append([
                m.item_id,
                m.media_type.value,
                Paragraph(escape(m.file_name), self.styles["TableText"]),
                Paragraph(escape(link), self.styles["LinkText"]),
            ])

        table = Table(rows, colWidths=[0.9 * inch, 0.6 * inch, 1.8 * inch, 3.2 * inch], repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), BRAND_GRAY),
            ("TEXTCOLOR", (0, 0), (-1, 0), white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
        ]))
        elements.append(table)
        return elements

    def _build_signatures(self, inspection: Inspection) -> List:
        """Signature marker per phase, with the drawn signature when available."""
        elements = [Paragraph("Digital Signatures", self.styles["SectionHeader"])]

        for phase in Phase:
            signature = inspection.phase_signature(phase)
            block = [Paragraph(phase.label, self.styles["SubHeader"])]

            if not signature:
                block.append(Paragraph("Not signed", self.styles["CustomBodyText"]))
                elements.append(KeepTogether(block))
                continue

            block.append(Paragraph(
                f"Signature captured digitally (phase {inspection.phase_status(phase).value})",
                self.styles["CustomBodyText"],
            ))

            image = decode_signature_image(signature)
            if image is not None:
                width, height = image.size
                draw_width = min(2.5 * inch, width)
                draw_height = draw_width * height / width
                png = io.BytesIO()
                image.save(png, format="PNG")
                png.seek(0)
                block.append(RLImage(png, width=draw_width, height=draw_height))
            elif not signature.startswith("data:"):
                # Typed name
                block.append(Paragraph(f"Signed as: <b>{escape(signature)}</b>", self.styles["CustomBodyText"]))

            elements.append(KeepTogether(block))

        return elements
