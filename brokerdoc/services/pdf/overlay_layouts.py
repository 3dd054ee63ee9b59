"""Fixed-coordinate text layouts for flat (non-fillable) template PDFs.

A layout lists which semantic fields are drawn on the first page and where.
Positions are given as an x coordinate and a distance from the top edge of
the page, both in PDF points.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from brokerdoc.services.templates.registry import PURCHASE_AGREEMENT
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class OverlayField:
    """Where one semantic field is drawn."""

    field_name: str
    x: float
    offset_from_top: float
    font_size: float = 10

    def pdf_position(self, page_height: float) -> Tuple[float, float]:
        """Baseline position in PDF user space (origin bottom-left)."""
        return self.x, page_height - self.offset_from_top


@dataclass
class OverlayLayout:
    template_type: str
    fields: List[OverlayField] = field(default_factory=list)


ONTARIO_PURCHASE_LAYOUT = OverlayLayout(
    template_type=PURCHASE_AGREEMENT,
    fields=[
        OverlayField("buyer_full_name", x=150, offset_from_top=120, font_size=10),
        OverlayField("seller_full_name", x=150, offset_from_top=150, font_size=10),
        OverlayField("property_address", x=150, offset_from_top=200, font_size=10),
        OverlayField("purchase_price", x=150, offset_from_top=250, font_size=12),
        OverlayField("deposit_amount", x=150, offset_from_top=280, font_size=10),
        OverlayField("balance_due_date", x=150, offset_from_top=310, font_size=10),
    ],
)

_LAYOUTS: Dict[str, OverlayLayout] = {}


def register_layout(layout: OverlayLayout) -> None:
    """Register (or replace) the overlay layout for a template type."""
    if layout.template_type in _LAYOUTS:
        LOGGER.info(f"Replacing overlay layout for {layout.template_type}")
    _LAYOUTS[layout.template_type] = layout


def get_layout(template_type: Optional[str] = None) -> OverlayLayout:
    """Layout for a template type; the Ontario purchase layout when none is registered."""
    if template_type and template_type in _LAYOUTS:
        return _LAYOUTS[template_type]
    return ONTARIO_PURCHASE_LAYOUT


register_layout(ONTARIO_PURCHASE_LAYOUT)
