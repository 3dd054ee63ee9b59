import fitz  # PyMuPDF
import pytest

from brokerdoc.core.exceptions import PdfProcessingError
from brokerdoc.services.pdf.form_filler import (
    CoordinateOverlayFiller,
    NativeFieldFiller,
    count_widgets,
    fill_pdf,
    load_pdf,
    select_filler,
)
from brokerdoc.services.pdf.overlay_layouts import ONTARIO_PURCHASE_LAYOUT, OverlayField, get_layout

DOCUMENT_DATA = {
    "buyer_full_name": "Jane Buyer",
    "seller_full_name": "John Seller",
    "property_address": "123 Main St, Toronto, ON",
    "purchase_price": 800000,
    "favourite_colour": "blue",
}


def _widget_values(pdf_bytes: bytes) -> dict:
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        return {w.field_name: w.field_value for page in doc for w in page.widgets()}
    finally:
        doc.close()


def _widget(pdf_bytes: bytes, name: str):
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        # Keep the page bound while the widget is used: Widget.parent is a weakref
        for page in doc:
            for widget in page.widgets():
                if widget.field_name == name:
                    return widget.field_value, widget.on_state()
        raise StopIteration(name)
    finally:
        doc.close()


def test_select_filler_uses_native_when_widgets_exist(form_pdf_bytes):
    doc = load_pdf(form_pdf_bytes)
    assert count_widgets(doc) == 6
    assert isinstance(select_filler(doc), NativeFieldFiller)
    doc.close()


def test_select_filler_uses_overlay_for_flat_pdf(flat_pdf_bytes):
    doc = load_pdf(flat_pdf_bytes)
    assert count_widgets(doc) == 0
    assert isinstance(select_filler(doc), CoordinateOverlayFiller)
    doc.close()


def test_native_fill_sets_mapped_widgets(form_pdf_bytes):
    filled = fill_pdf(form_pdf_bytes, DOCUMENT_DATA)
    values = _widget_values(filled)

    assert values["BuyerName"] == "Jane Buyer"
    assert values["SellerName"] == "John Seller"
    assert values["PropertyAddress"] == "123 Main St, Toronto, ON"
    assert values["PurchasePrice"] == "$800,000"


@pytest.mark.parametrize("value", [True, "yes", "Yes", 1])
def test_native_fill_checks_checkbox_for_truthy_values(form_pdf_bytes, value):
    filled = fill_pdf(form_pdf_bytes, {"financing_condition": value})
    field_value, on_state = _widget(filled, "FinancingCondition")
    assert field_value == on_state


@pytest.mark.parametrize("value", [False, "false", "no", "0", "off", "OFF"])
def test_native_fill_unchecks_checkbox_for_falsy_values(form_pdf_bytes, value):
    checked = fill_pdf(form_pdf_bytes, {"financing_condition": True})
    filled = fill_pdf(checked, {"financing_condition": value})
    field_value, _ = _widget(filled, "FinancingCondition")
    assert field_value == "Off"


def test_native_fill_selects_dropdown_value(form_pdf_bytes):
    filled = fill_pdf(form_pdf_bytes, {"irrevocable_time": "23:59"})
    field_value, _ = _widget(filled, "IrrevocableTime")
    assert field_value == "23:59"


def test_native_fill_skips_fields_missing_from_pdf(form_pdf_bytes):
    doc = load_pdf(form_pdf_bytes)
    filled = NativeFieldFiller().fill(doc, {"buyer_full_name": "Jane", "deposit_amount": 40000})
    doc.close()
    assert filled == ["BuyerName"]


def test_overlay_writes_only_to_first_page(flat_pdf_bytes):
    filled = fill_pdf(flat_pdf_bytes, DOCUMENT_DATA)
    doc = fitz.open(stream=filled, filetype="pdf")
    try:
        first_page = doc[0].get_text()
        second_page = doc[1].get_text()
    finally:
        doc.close()

    assert "Jane Buyer" in first_page
    assert "$800,000" in first_page
    assert second_page.strip() == ""


def test_overlay_draws_only_layout_fields(flat_pdf_bytes):
    doc = load_pdf(flat_pdf_bytes)
    drawn = CoordinateOverlayFiller().fill(doc, DOCUMENT_DATA)
    doc.close()
    assert set(drawn) == {"buyer_full_name", "seller_full_name", "property_address", "purchase_price"}
    assert "favourite_colour" not in drawn


def test_overlay_position_measured_from_top():
    field = OverlayField("buyer_full_name", x=150, offset_from_top=120)
    assert field.pdf_position(792) == (150, 672)


def test_default_layout_is_ontario_purchase():
    assert get_layout(None) is ONTARIO_PURCHASE_LAYOUT
    assert get_layout("unknown_type") is ONTARIO_PURCHASE_LAYOUT


@pytest.mark.parametrize("content", [b"", b"not a pdf at all"])
def test_load_pdf_rejects_bad_input(content):
    with pytest.raises(PdfProcessingError):
        load_pdf(content)
