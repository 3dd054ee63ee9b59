"""Fill template PDFs with document data.

Two strategies share the ``FormFiller`` interface:

* ``NativeFieldFiller`` sets AcroForm widgets when the template has any.
* ``CoordinateOverlayFiller`` draws text at fixed positions on the first
  page when the template is a flat PDF.

``select_filler`` picks one by inspecting the loaded document, and
``fill_pdf`` runs the whole load -> fill -> save cycle.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, List, Mapping, Optional

import fitz  # PyMuPDF

from brokerdoc.core.exceptions import PdfProcessingError
from brokerdoc.services.pdf.field_mapper import (
    ONTARIO_PURCHASE_FIELD_MAP,
    format_value,
    is_truthy,
    map_fields,
)
from brokerdoc.services.pdf.overlay_layouts import OverlayLayout, get_layout
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

OVERLAY_FONT = "helv"
OVERLAY_COLOR = (0, 0, 0)

_CHECK_TYPES = {fitz.PDF_WIDGET_TYPE_CHECKBOX, fitz.PDF_WIDGET_TYPE_RADIOBUTTON}
_CHOICE_TYPES = {fitz.PDF_WIDGET_TYPE_COMBOBOX, fitz.PDF_WIDGET_TYPE_LISTBOX}


class FormFiller(ABC):
    """Strategy that writes document data into an open PDF."""

    name: str = "base"

    @abstractmethod
    def fill(self, doc: fitz.Document, data: Mapping[str, Any]) -> List[str]:
        """Write data into ``doc`` in place.

        Returns:
            Names of the fields that were written
        """


class NativeFieldFiller(FormFiller):
    """Fill AcroForm widgets through the semantic-to-form field map."""

    name = "native"

    def __init__(self, field_map: Optional[Mapping[str, str]] = None):
        self.field_map = field_map or ONTARIO_PURCHASE_FIELD_MAP

    def fill(self, doc: fitz.Document, data: Mapping[str, Any]) -> List[str]:
        values = map_fields(data, self.field_map)

        widgets = defaultdict(list)
        for page in doc:
            for widget in page.widgets():
                widgets[widget.field_name].append(widget)

        filled = []
        for target, value in values.items():
            if target not in widgets:
                LOGGER.warning(f"PDF field '{target}' not found, skipping...")
                continue
            written = False
            for widget in widgets[target]:
                try:
                    self._set_widget(widget, value)
                    written = True
                except Exception as e:
                    LOGGER.warning(
                        f"Could not set PDF field '{target}': {e}",
                        extra={"field_type": widget.field_type_string},
                    )
            if written:
                filled.append(target)

        LOGGER.info(f"Filled {len(filled)} of {len(values)} mapped form fields")
        return filled

    @staticmethod
    def _set_widget(widget: fitz.Widget, value) -> None:
        if widget.field_type in _CHECK_TYPES:
            widget.field_value = widget.on_state() if is_truthy(value) else "Off"
        elif widget.field_type in _CHOICE_TYPES:
            widget.field_value = str(value)
        elif widget.field_type == fitz.PDF_WIDGET_TYPE_TEXT:
            widget.field_value = "Yes" if value is True else "No" if value is False else value
        else:
            LOGGER.debug(f"Unsupported widget type {widget.field_type_string} for '{widget.field_name}'")
            return
        widget.update()


class CoordinateOverlayFiller(FormFiller):
    """Draw a fixed subset of fields onto page index 0 of a flat PDF."""

    name = "overlay"

    def __init__(self, layout: Optional[OverlayLayout] = None):
        self.layout = layout or get_layout()

    def fill(self, doc: fitz.Document, data: Mapping[str, Any]) -> List[str]:
        if doc.page_count == 0:
            raise PdfProcessingError("Template PDF has no pages")

        page = doc[0]
        page_height = page.rect.height
        drawn = []

        for overlay_field in self.layout.fields:
            value = data.get(overlay_field.field_name)
            if value is None or value == "":
                continue
            text = format_value(overlay_field.field_name, value)
            if isinstance(text, bool):
                text = "Yes" if text else "No"

            x, pdf_y = overlay_field.pdf_position(page_height)
            # PyMuPDF measures y from the top edge
            point = fitz.Point(x, page_height - pdf_y)
            try:
                page.insert_text(
                    point,
                    text,
                    fontsize=overlay_field.font_size,
                    fontname=OVERLAY_FONT,
                    color=OVERLAY_COLOR,
                )
                drawn.append(overlay_field.field_name)
            except Exception as e:
                LOGGER.warning(f"Could not draw '{overlay_field.field_name}' on overlay: {e}")

        LOGGER.info(f"Drew {len(drawn)} overlay fields on page 1")
        return drawn


def count_widgets(doc: fitz.Document) -> int:
    return sum(len(list(page.widgets())) for page in doc)


def select_filler(
    doc: fitz.Document,
    template_type: Optional[str] = None,
    field_map: Optional[Mapping[str, str]] = None,
) -> FormFiller:
    """Pick native filling when the PDF has any form widget, else the overlay."""
    if count_widgets(doc) > 0:
        return NativeFieldFiller(field_map)
    return CoordinateOverlayFiller(get_layout(template_type))


def load_pdf(pdf_bytes: bytes) -> fitz.Document:
    """Open PDF bytes.

    Raises:
        PdfProcessingError: If the bytes are not a readable PDF
    """
    if not pdf_bytes:
        raise PdfProcessingError("Template PDF is empty")
    try:
        return fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        LOGGER.error(f"Failed to load template PDF: {e}")
        raise PdfProcessingError(f"Failed to load template PDF: {e}", original_error=e) from e


def fill_pdf(
    pdf_bytes: bytes,
    data: Mapping[str, Any],
    template_type: Optional[str] = None,
    field_map: Optional[Mapping[str, str]] = None,
) -> bytes:
    """Fill a template PDF and return the new PDF bytes.

    Args:
        pdf_bytes: Raw template PDF
        data: Semantic field name -> value
        template_type: Selects the overlay layout for flat PDFs
        field_map: Semantic-to-form field map for fillable PDFs

    Returns:
        Bytes of the filled PDF

    Raises:
        PdfProcessingError: If the template cannot be loaded or saved
    """
    doc = load_pdf(pdf_bytes)
    try:
        filler = select_filler(doc, template_type, field_map)
        LOGGER.info(f"Filling template PDF with {filler.name} filler", extra={"pages": doc.page_count})
        filler.fill(doc, data)
        try:
            return doc.tobytes(garbage=3, deflate=True)
        except Exception as e:
            raise PdfProcessingError(f"Failed to save filled PDF: {e}", original_error=e) from e
    finally:
        doc.close()
