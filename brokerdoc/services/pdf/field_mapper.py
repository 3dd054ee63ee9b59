"""Translate semantic document data into PDF form field values."""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Union

from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

FieldValue = Union[str, bool]

ONTARIO_PURCHASE_FIELD_MAP: Dict[str, str] = {
    # Property
    "property_address": "PropertyAddress",
    "legal_description": "LegalDescription",
    # Financial
    "purchase_price": "PurchasePrice",
    "deposit_amount": "DepositAmount",
    "deposit_due_date": "DepositDueDate",
    "balance_due_date": "ClosingDate",
    # Buyer
    "buyer_full_name": "BuyerName",
    "buyer_address": "BuyerAddress",
    "buyer_phone": "BuyerPhone",
    "buyer_email": "BuyerEmail",
    # Seller
    "seller_full_name": "SellerName",
    "seller_address": "SellerAddress",
    "seller_phone": "SellerPhone",
    "seller_email": "SellerEmail",
    # Agents
    "buyer_agent_name": "BuyerAgentName",
    "buyer_agent_brokerage": "BuyerBrokerage",
    "seller_agent_name": "SellerAgentName",
    "seller_agent_brokerage": "SellerBrokerage",
    # Conditions
    "financing_condition": "FinancingCondition",
    "financing_deadline": "FinancingDeadline",
    "inspection_condition": "InspectionCondition",
    "inspection_deadline": "InspectionDeadline",
    "status_certificate_condition": "StatusCertificateCondition",
    # Additional terms
    "inclusions": "Inclusions",
    "exclusions": "Exclusions",
    "additional_terms": "AdditionalTerms",
    "irrevocable_date": "IrrevocableDate",
    "irrevocable_time": "IrrevocableTime",
}

FALSY_STRINGS = {"false", "no", "0", "off", ""}

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%m/%d/%Y",
)


def to_number(value: Any) -> Decimal:
    """Parse a number, tolerating a leading $ and thousands separators.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, bool):
        raise ValueError("booleans are not amounts")
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    text = str(value).strip().replace(",", "").replace("$", "")
    try:
        number = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"not a number: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return number


def format_currency(value: Any) -> str:
    """Format an amount as Canadian dollars with no decimals: 800000 -> "$800,000".

    Non-numeric values are returned unchanged as text.
    """
    try:
        amount = to_number(value)
    except ValueError:
        return str(value)
    rounded = int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,}"


def parse_date(value: Any) -> date:
    """Parse a date or ISO datetime string.

    Raises:
        ValueError: If no supported format matches
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognised date: {value!r}")


def format_date(value: Any) -> str:
    """Format a date as YYYY-MM-DD; unparsable values pass through unchanged."""
    try:
        return parse_date(value).isoformat()
    except ValueError:
        return str(value)


def is_truthy(value: Any) -> bool:
    """Checkbox state for a value; "false", "no", "0" and "off" are unchecked."""
    if isinstance(value, str):
        return value.strip().lower() not in FALSY_STRINGS
    return bool(value)


def format_value(field_name: str, value: Any) -> FieldValue:
    """Format one semantic value according to its field name."""
    if isinstance(value, bool):
        return value
    if "price" in field_name or "amount" in field_name:
        return format_currency(value)
    if "date" in field_name:
        return format_date(value)
    return str(value)


def map_fields(
    data: Mapping[str, Any],
    field_map: Mapping[str, str] = ONTARIO_PURCHASE_FIELD_MAP,
) -> Dict[str, FieldValue]:
    """Translate semantic data into target form field values.

    Args:
        data: Semantic field name -> raw value
        field_map: Semantic field name -> target form field name

    Returns:
        Target form field name -> formatted string, or bool for boolean inputs.
        Empty values and keys missing from ``field_map`` are dropped.
    """
    mapped: Dict[str, FieldValue] = {}
    for key, value in data.items():
        target = field_map.get(key)
        if not target:
            LOGGER.debug(f"No form field mapped for '{key}', skipping")
            continue
        if value is None or value == "":
            continue
        mapped[target] = format_value(key, value)
    return mapped
