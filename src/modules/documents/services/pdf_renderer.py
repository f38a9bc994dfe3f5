import base64
import binascii
import io
from datetime import datetime
from typing import Dict, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from exceptions import InvalidRequestError, UpstreamFailure

MARGIN = 50
LINE_HEIGHT = 16


def decode_signature_image(data) -> bytes:
    """Accepts raw image bytes or a ``data:image/png;base64,...`` URL."""
    if isinstance(data, bytes):
        return data
    if not isinstance(data, str) or not data:
        raise InvalidRequestError("Signature image is missing")
    encoded = data.split(",", 1)[1] if data.startswith("data:") else data
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidRequestError("Signature image is not valid base64")


class PdfRenderer:
    """Lays the submitted form fields and the signature image out on one page."""

    def render(
        self,
        title: str,
        case_number: Optional[str],
        form_data: Dict,
        signature_image: bytes,
        signed_by: Optional[str] = None,
        signed_at: Optional[datetime] = None,
    ) -> bytes:
        signed_at = signed_at or datetime.utcnow()
        try:
            signature = ImageReader(io.BytesIO(signature_image))
        except Exception:
            raise InvalidRequestError("Signature image could not be read")

        buffer = io.BytesIO()
        try:
            pdf = canvas.Canvas(buffer, pagesize=A4)
            width, height = A4
            y = height - MARGIN

            pdf.setFont("Helvetica-Bold", 18)
            pdf.drawString(MARGIN, y, f"Signed Document - {title}")
            y -= 2 * LINE_HEIGHT

            pdf.setFont("Helvetica", 11)
            if case_number:
                pdf.drawString(MARGIN, y, f"Case Number: {case_number}")
                y -= LINE_HEIGHT
            if signed_by:
                pdf.drawString(MARGIN, y, f"Signed by: {signed_by}")
                y -= LINE_HEIGHT
            pdf.drawString(MARGIN, y, f"Date: {signed_at.isoformat(timespec='seconds')}Z")
            y -= 2 * LINE_HEIGHT

            for key, value in sorted(form_data.items()):
                if y < MARGIN + 120:
                    pdf.showPage()
                    pdf.setFont("Helvetica", 11)
                    y = height - MARGIN
                pdf.drawString(MARGIN, y, f"{key}: {value}"[:110])
                y -= LINE_HEIGHT

            if y < MARGIN + 100:
                pdf.showPage()
                y = height - MARGIN
            pdf.drawImage(signature, MARGIN, y - 90, width=200, height=80, mask="auto")
            pdf.save()
        except Exception as e:
            raise UpstreamFailure(f"PDF rendering failed: {e}") from e

        return buffer.getvalue()
