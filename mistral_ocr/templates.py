"""
Document templates and field presets

All tables are read-only mappings built once at import time.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Mapping, Union

from .types import DocumentTemplateType, FieldSchema, FieldSpec


def _freeze(fields: Dict[str, Dict[str, Any]]) -> Mapping[str, FieldSpec]:
    return MappingProxyType({name: FieldSpec.from_dict(name, spec) for name, spec in fields.items()})


_STRING_LIST = {"type": "string"}

DOCUMENT_TEMPLATES: Mapping[str, Mapping[str, FieldSpec]] = MappingProxyType({
    DocumentTemplateType.CUSTOM.value: _freeze({}),
    DocumentTemplateType.INVOICE.value: _freeze({
        "total_amount": {"type": "number", "description": "Total amount including all taxes and fees"},
        "net_amount": {"type": "number", "description": "Net amount before taxes"},
        "tax_amount": {"type": "number", "description": "Tax amount"},
        "customer_number": {"type": "string", "description": "Customer or client identification number"},
        "invoice_number": {"type": "string", "description": "Invoice number or reference"},
        "invoice_date": {"type": "string", "description": "Invoice date"},
        "due_date": {"type": "string", "description": "Payment due date"},
        "vendor_name": {"type": "string", "description": "Name of the company or vendor issuing the invoice"},
        "customer_name": {"type": "string", "description": "Name of the customer or client"},
        "payment_method": {"type": "string", "description": "Accepted payment methods"},
    }),
    DocumentTemplateType.LETTER.value: _freeze({
        "sender": {"type": "string", "description": "Name and address of the sender"},
        "recipient": {"type": "string", "description": "Name and address of the recipient"},
        "document_date": {"type": "string", "description": "Date when the letter was written"},
        "reference": {"type": "string", "description": "File number, case reference or subject line"},
        "subject": {"type": "string", "description": "Subject or topic of the letter"},
        "letter_type": {"type": "string", "description": "Type of correspondence (official, personal, business, etc.)"},
    }),
    DocumentTemplateType.CONTRACT.value: _freeze({
        "contract_title": {"type": "string", "description": "Title or type of contract"},
        "party_1": {"type": "string", "description": "First contracting party (name and details)"},
        "party_2": {"type": "string", "description": "Second contracting party (name and details)"},
        "contract_date": {"type": "string", "description": "Date when the contract was signed"},
        "start_date": {"type": "string", "description": "Contract start date"},
        "end_date": {"type": "string", "description": "Contract end date"},
        "contract_amount": {"type": "number", "description": "Contract value or amount"},
        "key_terms": {"type": "array", "items": _STRING_LIST, "description": "Key terms and conditions"},
    }),
    DocumentTemplateType.RECEIPT.value: _freeze({
        "store_name": {"type": "string", "description": "Name of the store or business"},
        "total_amount": {"type": "number", "description": "Total amount paid"},
        "purchase_date": {"type": "string", "description": "Date of purchase"},
        "receipt_number": {"type": "string", "description": "Receipt or transaction number"},
        "payment_method": {"type": "string", "description": "How the payment was made (cash, card, etc.)"},
        "items": {"type": "array", "items": _STRING_LIST, "description": "List of purchased items"},
    }),
    DocumentTemplateType.ID_DOCUMENT.value: _freeze({
        "full_name": {"type": "string", "description": "Full name as shown on the document"},
        "birth_date": {"type": "string", "description": "Date of birth"},
        "id_number": {"type": "string", "description": "ID number or passport number"},
        "nationality": {"type": "string", "description": "Nationality or citizenship"},
        "issue_date": {"type": "string", "description": "Date when the document was issued"},
        "expiry_date": {"type": "string", "description": "Document expiry date"},
        "issuing_authority": {"type": "string", "description": "Authority that issued the document"},
    }),
    DocumentTemplateType.RESEARCH_PAPER.value: _freeze({
        "title": {"type": "string", "description": "Title of the research paper"},
        "authors": {"type": "array", "items": _STRING_LIST, "description": "List of authors"},
        "abstract": {"type": "string", "description": "Abstract or summary of the paper"},
        "keywords": {"type": "array", "items": _STRING_LIST, "description": "Keywords or key topics"},
        "publication_date": {"type": "string", "description": "Publication date"},
        "journal": {"type": "string", "description": "Journal or conference name"},
        "doi": {"type": "string", "description": "DOI or other identifier"},
    }),
})

DEFAULT_BBOX_SCHEMA = _freeze({
    "element_type": {"type": "string", "description": "Type of visual element (chart, table, figure, etc.)"},
    "description": {"type": "string", "description": "Description of what the element shows"},
    "key_data": {"type": "array", "items": _STRING_LIST, "description": "Key data points or insights from the element"},
})

DEFAULT_CUSTOM_FIELDS = _freeze({
    "total_amount": {"type": "number", "description": "Total amount including all taxes and fees"},
    "document_date": {"type": "string", "description": "Date when the document was created"},
})

# Default for the advanced document schema editor
DEFAULT_ADVANCED_DOCUMENT_SCHEMA = _freeze({
    "document_type": {"type": "string", "description": "The type/category of the document"},
    "language": {"type": "string", "description": "The primary language of the document"},
})

# Presets offered by the visual field editor; entries naming one of these may
# leave type/description/required empty.
QUICK_FIELDS = _freeze({
    "total_amount": {"type": "number", "description": "Total amount including all taxes and fees", "required": True},
    "net_amount": {"type": "number", "description": "Net amount before taxes"},
    "tax_amount": {"type": "number", "description": "Tax amount"},
    "customer_number": {"type": "string", "description": "Customer or client identification number"},
    "document_number": {"type": "string", "description": "Invoice, receipt, or document number"},
    "document_title": {
        "type": "string",
        "description": 'Title or brief summary of the document content (e.g. "Invoice for IT Services", '
                       '"Contract for Office Rental")',
    },
    "document_date": {
        "type": "string",
        "description": "Date when the document was created in DD.MM.YYYY format, return null if not found",
        "required": True,
    },
    "due_date": {"type": "string", "description": "Payment due date"},
    "sender": {"type": "string", "description": "Name or company name of the sender (without address)"},
    "recipient": {"type": "string", "description": "Name or company name of the recipient (without address)"},
    "sender_address": {"type": "string", "description": "Full address of the sender"},
    "recipient_address": {"type": "string", "description": "Full address of the recipient"},
    "reference": {"type": "string", "description": "File number, case reference or subject line"},
    "company_name": {"type": "string", "description": "Name of the company"},
    "address": {"type": "string", "description": "Street address"},
    "payment_method": {"type": "string", "description": "How the payment was made"},
    "phone_number": {"type": "string", "description": "Contact phone number"},
    "email": {"type": "string", "description": "Email address"},
})


def get_document_template(template: Union[str, DocumentTemplateType]) -> FieldSchema:
    """Return a fresh copy of a template's fields; unknown names give an empty schema."""
    key = template.value if isinstance(template, DocumentTemplateType) else str(template)
    return dict(DOCUMENT_TEMPLATES.get(key, {}))


def list_templates() -> Dict[str, Dict[str, Dict[str, Any]]]:
    return {
        name: {field_name: spec.to_dict() for field_name, spec in fields.items()}
        for name, fields in DOCUMENT_TEMPLATES.items()
    }
