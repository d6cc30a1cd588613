# Importing the module registers tables with Base for create_all()
from .core import (  # noqa: F401
    # Enums
    UserRoleName, QuoteStatus,

    # Identity
    User,

    # Catalog
    Supplier, Product,

    # Quotes & numbering
    QuoteNumberSequence, Quote, QuoteLineItem,

    # Cart
    Cart, CartItem,

    # Audit
    AuditLog,
)

__all__ = [
    "UserRoleName", "QuoteStatus",
    "User",
    "Supplier", "Product",
    "QuoteNumberSequence", "Quote", "QuoteLineItem",
    "Cart", "CartItem",
    "AuditLog",
]
