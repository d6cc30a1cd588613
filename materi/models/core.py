from sqlalchemy import String, ForeignKey, Boolean, Float, Enum, Text, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from enum import Enum as PyEnum
from datetime import datetime
from materi.db import Base
from materi.models.common import IdMixin, TSMMixin, utcnow

# ── Enums ───────────────────────────────────────────────────────────────────
class UserRoleName(PyEnum):
    VENDOR = "Vendor"
    SUPPLIER = "Supplier"

class QuoteStatus(PyEnum):
    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"

# ── Identity ────────────────────────────────────────────────────────────────
class User(Base, IdMixin, TSMMixin):
    __tablename__ = "user"
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(160), unique=True)
    pass_hash: Mapped[str] = mapped_column(String(200))
    user_role: Mapped[UserRoleName] = mapped_column(Enum(UserRoleName, values_callable=lambda e: [m.value for m in e]), default=UserRoleName.SUPPLIER)
    supplier_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("supplier.id"))

# ── Catalog ─────────────────────────────────────────────────────────────────
class Supplier(Base, IdMixin, TSMMixin):
    __tablename__ = "supplier"
    name: Mapped[str] = mapped_column(String(160))
    company_name: Mapped[str | None] = mapped_column(String(200))
    contact_person: Mapped[str | None] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(160))
    phone: Mapped[str | None] = mapped_column(String(40))
    address: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    payment_terms: Mapped[str | None] = mapped_column(String(200))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

class Product(Base, IdMixin, TSMMixin):
    __tablename__ = "product"
    supplier_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("supplier.id"))
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(120))
    internal_code: Mapped[str | None] = mapped_column(String(80))
    unit_of_measure: Mapped[str] = mapped_column(String(30), default="unit")
    base_price: Mapped[float] = mapped_column(Float, default=0.0)
    currency: Mapped[str | None] = mapped_column(String(8))
    image_url: Mapped[str | None] = mapped_column(String(400))
    active: Mapped[bool] = mapped_column(Boolean, default=True)

# ── Quote numbering ─────────────────────────────────────────────────────────
class QuoteNumberSequence(Base):
    """One row per reservation; the store assigns ids, rows are never reused."""
    __tablename__ = "quote_number_sequence"
    # sqlite_autoincrement: without it SQLite may hand out a deleted max id again
    __table_args__ = {"sqlite_autoincrement": True}
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

# ── Quotes ──────────────────────────────────────────────────────────────────
class Quote(Base, IdMixin, TSMMixin):
    __tablename__ = "quote"
    vendor_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"))
    quote_seq_id: Mapped[int] = mapped_column(Integer, ForeignKey("quote_number_sequence.id"), unique=True)
    quote_number: Mapped[str] = mapped_column(String(20), unique=True)
    customer_name: Mapped[str | None] = mapped_column(String(200))
    customer_company: Mapped[str | None] = mapped_column(String(200))
    customer_email: Mapped[str | None] = mapped_column(String(160))
    customer_phone: Mapped[str | None] = mapped_column(String(40))
    status: Mapped[QuoteStatus] = mapped_column(Enum(QuoteStatus, values_callable=lambda e: [m.value for m in e]), default=QuoteStatus.DRAFT)
    global_margin_percent: Mapped[float] = mapped_column(Float, default=20.0)
    notes: Mapped[str | None] = mapped_column(Text)
    # snapshots, refreshed by services.pricing.reprice_quote on every write
    total_cost: Mapped[float] = mapped_column(Float, default=0.0)
    total_sale_price: Mapped[float] = mapped_column(Float, default=0.0)
    total_profit_amount: Mapped[float] = mapped_column(Float, default=0.0)

    line_items: Mapped[list["QuoteLineItem"]] = relationship(
        back_populates="quote", cascade="all, delete-orphan", order_by="QuoteLineItem.created_at",
    )

class QuoteLineItem(Base, IdMixin, TSMMixin):
    __tablename__ = "quote_line_item"
    quote_id: Mapped[str] = mapped_column(String(36), ForeignKey("quote.id", ondelete="CASCADE"))
    product_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("product.id", ondelete="SET NULL"))
    supplier_id: Mapped[str | None] = mapped_column(String(36))
    supplier_name: Mapped[str | None] = mapped_column(String(200))
    product_name: Mapped[str | None] = mapped_column(String(200))
    product_description_snapshot: Mapped[str | None] = mapped_column(Text)
    unit_of_measure: Mapped[str] = mapped_column(String(30), default="unit")
    unit_cost_price: Mapped[float] = mapped_column(Float, default=0.0)
    quantity: Mapped[float] = mapped_column(Float, default=0.0)
    margin_percent: Mapped[float | None] = mapped_column(Float)  # null → quote.global_margin_percent
    line_cost_total: Mapped[float] = mapped_column(Float, default=0.0)
    unit_sale_price: Mapped[float] = mapped_column(Float, default=0.0)
    line_sale_total: Mapped[float] = mapped_column(Float, default=0.0)
    line_profit_amount: Mapped[float] = mapped_column(Float, default=0.0)

    quote: Mapped[Quote] = relationship(back_populates="line_items")

# ── Cart ────────────────────────────────────────────────────────────────────
class Cart(Base, IdMixin, TSMMixin):
    __tablename__ = "cart"
    vendor_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"), unique=True)
    global_margin_percent: Mapped[float] = mapped_column(Float, default=20.0)
    total_cost: Mapped[float] = mapped_column(Float, default=0.0)
    total_sale_price: Mapped[float] = mapped_column(Float, default=0.0)
    total_profit_amount: Mapped[float] = mapped_column(Float, default=0.0)

    items: Mapped[list["CartItem"]] = relationship(
        back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.created_at",
    )

class CartItem(Base, IdMixin, TSMMixin):
    __tablename__ = "cart_item"
    cart_id: Mapped[str] = mapped_column(String(36), ForeignKey("cart.id", ondelete="CASCADE"))
    vendor_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id"))
    product_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("product.id", ondelete="SET NULL"))
    supplier_id: Mapped[str | None] = mapped_column(String(36))
    supplier_name: Mapped[str | None] = mapped_column(String(200))
    product_name: Mapped[str | None] = mapped_column(String(200))
    product_description: Mapped[str | None] = mapped_column(Text)
    product_image_url: Mapped[str | None] = mapped_column(String(400))
    unit_of_measure: Mapped[str] = mapped_column(String(30), default="unit")
    unit_cost_price: Mapped[float] = mapped_column(Float, default=0.0)
    quantity: Mapped[float] = mapped_column(Float, default=0.0)
    margin_percent: Mapped[float | None] = mapped_column(Float)  # null → cart.global_margin_percent
    line_cost_total: Mapped[float] = mapped_column(Float, default=0.0)
    unit_sale_price: Mapped[float] = mapped_column(Float, default=0.0)
    line_sale_total: Mapped[float] = mapped_column(Float, default=0.0)
    line_profit_amount: Mapped[float] = mapped_column(Float, default=0.0)

    cart: Mapped[Cart] = relationship(back_populates="items")

# ── Audit ───────────────────────────────────────────────────────────────────
class AuditLog(Base, IdMixin, TSMMixin):
    __tablename__ = "audit_log"
    actor_user_id: Mapped[str | None] = mapped_column(String(36))
    entity: Mapped[str] = mapped_column(String(60))
    entity_id: Mapped[str] = mapped_column(String(36))
    action: Mapped[str] = mapped_column(String(60))
    before: Mapped[str | None] = mapped_column(Text)
    after: Mapped[str | None] = mapped_column(Text)
