"""Built-in document templates and template helpers.

Holds the field definitions of the Ontario Agreement of Purchase and Sale,
the rule that maps a free-text template name to a template type, data
validation against a template's declared fields, and the startup seeding of
built-in templates.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from brokerdoc.database.models import DocumentTemplate
from brokerdoc.schemas.templates import FieldError, FieldValidation, TemplateField, ValidationResult
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

PURCHASE_AGREEMENT = "purchase_agreement"
LISTING_AGREEMENT = "listing_agreement"
LEASE_AGREEMENT = "lease_agreement"

DEFAULT_REGION = "ontario"


def _field(name: str, label: str, field_type: str, description: str, placeholder: str, **validation) -> TemplateField:
    return TemplateField(
        id=name,
        name=name,
        label=label,
        type=field_type,
        description=description,
        placeholder=placeholder,
        validation=FieldValidation(**validation),
    )


ONTARIO_PURCHASE_AGREEMENT_FIELDS: List[TemplateField] = [
    # Property
    _field("property_address", "Property Address", "address",
           "Full legal address of the property being purchased",
           "123 Main Street, Toronto, ON M5V 3A8", required=True, min_length=10),
    _field("legal_description", "Legal Description", "text",
           "Legal description and PIN number", "PIN 12345-6789 (LT)"),
    # Financial
    _field("purchase_price", "Purchase Price", "currency",
           "Total purchase price for the property", "800000", required=True, min_value=1000),
    _field("deposit_amount", "Deposit Amount", "currency",
           "Initial deposit amount", "40000", required=True, min_value=1000),
    _field("deposit_due_date", "Deposit Due Date", "date",
           "When the deposit must be paid", "YYYY-MM-DD", required=True),
    _field("balance_due_date", "Balance Due on Closing", "date",
           "Closing date when balance is due", "YYYY-MM-DD", required=True),
    # Buyer
    _field("buyer_full_name", "Buyer Full Name", "text",
           "Full legal name of the buyer(s)", "John Smith and Jane Smith", required=True, min_length=2),
    _field("buyer_address", "Buyer Address", "address",
           "Current address of the buyer", "456 Current St, Toronto, ON M1A 2B3", required=True),
    _field("buyer_phone", "Buyer Phone", "phone",
           "Primary phone number for buyer", "(416) 555-0123", required=True),
    _field("buyer_email", "Buyer Email", "email",
           "Email address for buyer", "buyer@example.com", required=True),
    # Seller
    _field("seller_full_name", "Seller Full Name", "text",
           "Full legal name of the seller(s)", "Robert Johnson and Mary Johnson", required=True, min_length=2),
    _field("seller_address", "Seller Address", "address",
           "Current address of the seller", "Same as property address or different", required=True),
    _field("seller_phone", "Seller Phone", "phone",
           "Primary phone number for seller", "(416) 555-0456", required=True),
    _field("seller_email", "Seller Email", "email",
           "Email address for seller", "seller@example.com", required=True),
    # Agents
    _field("buyer_agent_name", "Buyer's Agent Name", "text", "Name of the buying agent", "Agent Name"),
    _field("buyer_agent_brokerage", "Buyer's Agent Brokerage", "text",
           "Brokerage representing the buyer", "ABC Realty Inc."),
    _field("seller_agent_name", "Seller's Agent Name", "text", "Name of the listing agent", "Agent Name"),
    _field("seller_agent_brokerage", "Seller's Agent Brokerage", "text",
           "Brokerage representing the seller", "XYZ Realty Ltd."),
    # Conditions
    _field("financing_condition", "Financing Condition", "boolean",
           "Subject to buyer obtaining financing", "true"),
    _field("financing_deadline", "Financing Condition Deadline", "date",
           "Deadline for financing condition", "YYYY-MM-DD"),
    _field("inspection_condition", "Home Inspection Condition", "boolean",
           "Subject to satisfactory home inspection", "true"),
    _field("inspection_deadline", "Inspection Condition Deadline", "date",
           "Deadline for inspection condition", "YYYY-MM-DD"),
    _field("status_certificate_condition", "Status Certificate Condition (Condo)", "boolean",
           "Subject to review of status certificate", "false"),
    # Additional terms
    _field("inclusions", "Inclusions", "text", "Items included with the sale",
           "All existing light fixtures, window coverings, built-in appliances...", max_length=500),
    _field("exclusions", "Exclusions", "text", "Items excluded from the sale",
           "Dining room chandelier, basement freezer...", max_length=200),
    _field("additional_terms", "Additional Terms", "text", "Any additional terms and conditions",
           "Any special conditions or agreements...", max_length=1000),
    # Irrevocability
    _field("irrevocable_date", "Irrevocable Date", "date",
           "Date and time offer remains open", "YYYY-MM-DD", required=True),
    _field("irrevocable_time", "Irrevocable Time", "text", "Time offer expires", "23:59",
           required=True, pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"),
]


def build_ontario_purchase_agreement(pdf_form_url: str) -> Dict[str, Any]:
    """Row data for the built-in Ontario Agreement of Purchase and Sale."""
    return {
        "name": "Ontario Agreement of Purchase and Sale",
        "type": PURCHASE_AGREEMENT,
        "region": DEFAULT_REGION,
        "version": "2024.1",
        "description": "Standard OREA Agreement of Purchase and Sale for residential properties in Ontario",
        "pdf_form_url": pdf_form_url,
        "required_fields": [
            f.model_dump(exclude_none=True) for f in ONTARIO_PURCHASE_AGREEMENT_FIELDS if f.validation.required
        ],
        "optional_fields": [
            f.model_dump(exclude_none=True) for f in ONTARIO_PURCHASE_AGREEMENT_FIELDS if not f.validation.required
        ],
        "is_active": True,
    }


def resolve_template_type(template_name: Optional[str]) -> str:
    """Map a free-text template name to a template type.

    "listing" wins over "lease"; anything else is a purchase agreement.
    """
    name = (template_name or "").lower()
    if "listing" in name:
        return LISTING_AGREEMENT
    if "lease" in name:
        return LEASE_AGREEMENT
    return PURCHASE_AGREEMENT


TemplateLike = Union[DocumentTemplate, Mapping[str, Any]]


def _template_fields(template: TemplateLike, attr: str) -> List[TemplateField]:
    raw = template.get(attr) if isinstance(template, Mapping) else getattr(template, attr)
    return [f if isinstance(f, TemplateField) else TemplateField.model_validate(f) for f in raw or []]


def required_field_names(template: TemplateLike) -> List[str]:
    return [f.name for f in _template_fields(template, "required_fields")]


def all_template_fields(template: TemplateLike) -> List[TemplateField]:
    return _template_fields(template, "required_fields") + _template_fields(template, "optional_fields")


def get_field_by_name(template: TemplateLike, field_name: str) -> Optional[TemplateField]:
    return next((f for f in all_template_fields(template) if f.name == field_name), None)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def validate_document_data(template: TemplateLike, data: Mapping[str, Any]) -> ValidationResult:
    """Check document data against a template's declared fields.

    Args:
        template: Template row or dict with required_fields/optional_fields
        data: Semantic field name -> value

    Returns:
        ValidationResult with missing required names and per-field rule errors
    """
    missing_required = [
        name for name in required_field_names(template) if _is_missing(data.get(name))
    ]
    validation_errors: List[FieldError] = []

    for field in all_template_fields(template):
        value = data.get(field.name)
        if _is_missing(value):
            continue
        rules = field.validation

        if isinstance(value, str):
            if rules.min_length is not None and len(value) < rules.min_length:
                validation_errors.append(FieldError(
                    field=field.name,
                    message=f"{field.label} must be at least {rules.min_length} characters long",
                ))
            if rules.max_length is not None and len(value) > rules.max_length:
                validation_errors.append(FieldError(
                    field=field.name,
                    message=f"{field.label} must be no more than {rules.max_length} characters long",
                ))
            if rules.pattern and not re.search(rules.pattern, value):
                validation_errors.append(FieldError(field=field.name, message=f"{field.label} format is invalid"))

        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            if rules.min_value is not None and value < rules.min_value:
                validation_errors.append(FieldError(
                    field=field.name, message=f"{field.label} must be at least {rules.min_value:g}"
                ))
            if rules.max_value is not None and value > rules.max_value:
                validation_errors.append(FieldError(
                    field=field.name, message=f"{field.label} must be no more than {rules.max_value:g}"
                ))

    return ValidationResult(
        is_valid=not missing_required and not validation_errors,
        missing_required=missing_required,
        validation_errors=validation_errors,
    )


def confidence_scores(data: Mapping[str, Any], missing_required: Iterable[str]) -> Dict[str, float]:
    """Per-field confidence for an extraction audit row.

    Supplied fields score 1.0 and missing required fields 0.0.
    """
    scores = {name: 1.0 for name, value in data.items() if not _is_missing(value)}
    for name in missing_required:
        scores[name] = 0.0
    return scores


async def seed_default_templates(template_repository, pdf_form_url: str) -> List[DocumentTemplate]:
    """Insert built-in templates that are not yet present (matched by name and region).

    Returns:
        The templates created by this call
    """
    created = []
    for template_data in (build_ontario_purchase_agreement(pdf_form_url),):
        existing = await template_repository.find_by_name(template_data["name"], template_data["region"])
        if existing:
            LOGGER.debug(f"Template already seeded: {template_data['name']}")
            continue
        created.append(await template_repository.create_template(template_data))
        LOGGER.info(
            f"Seeded template {template_data['name']}",
            extra={"type": template_data["type"], "region": template_data["region"]},
        )
    return created
