"""JSON schemas for structured extraction."""

from ...domain.models import DocumentKind

_ADDRESS = {
    "type": ["object", "null"],
    "properties": {
        "Line1": {"type": ["string", "null"]},
        "City": {"type": ["string", "null"]},
        "State": {"type": ["string", "null"]},
        "ZipCode": {"type": ["string", "null"]},
        "Country": {"type": ["string", "null"]},
    },
}

_NUMBER = {"type": ["number", "null"]}
_STRING = {"type": ["string", "null"]}

INVOICE_SCHEMA = {
    "type": "object",
    "properties": {
        "InvoiceNumber": _STRING,
        "Date": {"type": ["string", "null"], "description": "YYYY-MM-DD"},
        "DueDate": {"type": ["string", "null"], "description": "YYYY-MM-DD"},
        "Currency": {"type": ["string", "null"], "description": "ISO 4217 code"},
        "PaymentTerms": _STRING,
        "Subtotal": _NUMBER,
        "TotalAmount": _NUMBER,
        "DiscountTotal": _NUMBER,
        "Notes": _STRING,
        "VendorDetails": {
            "type": ["object", "null"],
            "properties": {
                "Name": _STRING,
                "Address": _ADDRESS,
            },
        },
        "CustomerDetails": {
            "type": "object",
            "properties": {
                "CompanyName": _STRING,
                "Email": _STRING,
                "Phone": _STRING,
                "BillingAddress": _ADDRESS,
                "ShippingAddress": _ADDRESS,
            },
        },
        "Items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "Description": _STRING,
                    "Quantity": _NUMBER,
                    "UnitPrice": _NUMBER,
                    "TotalAmount": _NUMBER,
                },
            },
        },
    },
    "required": ["CustomerDetails", "Items"],
}

PURCHASE_SCHEMA = {
    "type": "object",
    "properties": {
        "TransactionDate": {"type": ["string", "null"], "description": "YYYY-MM-DD"},
        "TotalAmount": _NUMBER,
        "Currency": {"type": ["string", "null"], "description": "ISO 4217 code"},
        "PaymentType": {
            "type": ["string", "null"],
            "enum": ["Cash", "Check", "CreditCard", None],
        },
        "VendorDetails": {
            "type": "object",
            "properties": {
                "Name": _STRING,
                "Email": _STRING,
                "PhoneNumber": _STRING,
                "Address": _ADDRESS,
            },
        },
        "PurchaseLines": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "Description": _STRING,
                    "Amount": _NUMBER,
                },
            },
        },
    },
    "required": ["VendorDetails", "PurchaseLines"],
}

SCHEMAS = {
    DocumentKind.INVOICE: INVOICE_SCHEMA,
    DocumentKind.RECEIPT: PURCHASE_SCHEMA,
}
