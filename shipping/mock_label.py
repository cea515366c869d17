"""
Placeholder shipping label used in simulation mode.

The document is a single A6 page carrying a free-text annotation with the
tracking number and the recipient postcode. It is clearly marked as a mock so
it can never be mistaken for real postage.
"""
import io

from PyPDF2 import PdfWriter
from PyPDF2.generic import AnnotationBuilder

# A6 in PDF points (105 x 148 mm).
A6_WIDTH = 297.64
A6_HEIGHT = 419.53

MOCK_BANNER = "MOCK LABEL - NOT FOR POSTAGE"


def render_placeholder_label(tracking_number, postcode):
    """Returns the bytes of a one-page placeholder label PDF."""
    writer = PdfWriter()
    writer.add_blank_page(width=A6_WIDTH, height=A6_HEIGHT)

    text = "\n".join([
        MOCK_BANNER,
        f"Tracking: {tracking_number}",
        f"Postcode: {postcode or '-'}",
    ])
    annotation = AnnotationBuilder.free_text(
        text,
        rect=(20, A6_HEIGHT - 140, A6_WIDTH - 20, A6_HEIGHT - 20),
        font="Helvetica",
        bold=True,
        font_size="14pt",
        font_color="000000",
        border_color="000000",
        background_color="ffffff",
    )
    writer.add_annotation(page_number=0, annotation=annotation)
    writer.add_metadata({
        '/Title': MOCK_BANNER,
        '/Subject': tracking_number,
    })

    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
