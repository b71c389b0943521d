"""
Tests for the PDF report renderer.
"""

import base64
import io

from PIL import Image

from src.reporting import InspectionReportRenderer, report_file_name
from src.reporting.pdf_generator import decode_signature_image
from src.schemas.models import ItemStatus, MediaAttachment, MediaType, PhaseStatus


def png_data_url() -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (120, 40), "white").save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class TestReportFileName:
    def test_name(self):
        assert report_file_name("RN100200300") == "Tesla_Inspection_RN100200300.pdf"


class TestSignatureDecoding:
    def test_png_data_url(self):
        image = decode_signature_image(png_data_url())
        assert image is not None
        assert image.size == (120, 40)

    def test_typed_name_is_not_an_image(self):
        assert decode_signature_image("Jane Doe") is None
        assert decode_signature_image(None) is None

    def test_corrupt_payload(self):
        assert decode_signature_image("data:image/png;base64,not-really-png") is None


class TestInspectionReportRenderer:
    """Rendering produces a valid PDF document."""

    def test_renders_pending_inspection(self, inspection):
        pdf = InspectionReportRenderer().render(inspection, [])
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_renders_signed_inspection_with_media(self, inspection):
        item = inspection.sections[0].items[0]
        item.status = ItemStatus.FAILED
        item.notes = "Scratch <near> handle & trim"
        for other in inspection.sections[1].items:
            other.status = ItemStatus.PASSED
        inspection.failed_items = 1
        inspection.on_delivery_status = PhaseStatus.COMPLETED
        inspection.on_delivery_signature = png_data_url()
        inspection.test_drive_status = PhaseStatus.COMPLETED
        inspection.test_drive_signature = "Jane Doe"
        inspection.test_drive_km = 12.0

        media = [
            MediaAttachment(
                item_id=item.id,
                media_type=MediaType.PHOTO,
                file_name="scratch.jpg",
                drive_link="https://storage.test/scratch",
            ),
            MediaAttachment(
                item_id=item.id,
                media_type=MediaType.VIDEO,
                file_name="walkaround.mp4",
                drive_link="https://storage.test/video",
            ),
        ]

        pdf = InspectionReportRenderer().render(inspection, media)
        assert pdf.startswith(b"%PDF")
        assert pdf.rstrip().endswith(b"%%EOF")
