"""Shared catalog constants for materials, services and ledger entries."""

TRANSACTION_ADDITION = "addition"
TRANSACTION_DEDUCTION = "deduction"
TRANSACTION_ADJUSTMENT = "adjustment"

TRANSACTION_TYPE_CHOICES = (
    TRANSACTION_ADDITION,
    TRANSACTION_DEDUCTION,
    TRANSACTION_ADJUSTMENT,
)

MATERIAL_CATEGORIES = (
    "base_coat",
    "color_polish",
    "top_coat",
    "nail_art",
    "tools",
    "decorations",
    "supplies",
    "other",
)

UNIT_TYPES = (
    "ml",
    "pieces",
    "bottles",
    "grams",
    "sets",
    "tubes",
    "tips",
)

DEFAULT_UNIT_TYPE = "pieces"

SERVICE_TYPES = (
    "Basic Manicure",
    "Gel Manicure",
    "Basic Pedicure",
    "Gel Pedicure",
    "Nail Art",
    "Polish Change",
    "French Manicure",
    "Acrylic Nails",
    "Nail Repair",
    "Other",
)


def normalize_transaction_type(value: str | None) -> str:
    """Return a lowercase transaction type (may still be invalid)."""

    return (value or "").strip().lower()


__all__ = [
    "DEFAULT_UNIT_TYPE",
    "MATERIAL_CATEGORIES",
    "SERVICE_TYPES",
    "TRANSACTION_ADDITION",
    "TRANSACTION_ADJUSTMENT",
    "TRANSACTION_DEDUCTION",
    "TRANSACTION_TYPE_CHOICES",
    "UNIT_TYPES",
    "normalize_transaction_type",
]
