from __future__ import annotations

import logging
from urllib.parse import quote as urlquote

from sqlalchemy.orm import Session

from materi.config import settings
from materi.models.core import Cart, CartItem, Product, Quote, Supplier, User
from materi.services.line_items import fill_from_product, normalize_values, verify_client_totals
from materi.services.pricing import COMPUTED_FIELDS, Totals, aggregate, parse_or_default, price_line, reprice_cart

log = logging.getLogger(__name__)

CART_SNAPSHOT_FIELDS = (
    "product_id", "supplier_id", "supplier_name", "product_name",
    "product_description", "product_image_url", "unit_of_measure",
)


def get_or_create_cart(db: Session, vendor: User, global_margin_percent=None) -> Cart:
    cart = db.query(Cart).filter(Cart.vendor_id == vendor.id).first()
    if cart:
        return cart
    margin = settings.DEFAULT_GLOBAL_MARGIN if global_margin_percent is None else parse_or_default(global_margin_percent)
    cart = Cart(vendor_id=vendor.id, global_margin_percent=margin,
                total_cost=0.0, total_sale_price=0.0, total_profit_amount=0.0)
    db.add(cart)
    db.flush()
    return cart


def _price(item: CartItem, cart: Cart, raw: dict, label: str) -> None:
    pricing = price_line(item.unit_cost_price, item.quantity, item.margin_percent, cart.global_margin_percent)
    verify_client_totals(raw, pricing, label=label)
    for k, v in pricing.computed().items():
        setattr(item, k, v)


def _product_image(db: Session, product_id: str | None) -> str | None:
    product = db.get(Product, product_id) if product_id else None
    return product.image_url if product else None


def add_cart_item(db: Session, cart: Cart, raw: dict) -> CartItem:
    values = fill_from_product(db, normalize_values(raw, CART_SNAPSHOT_FIELDS), description_field="product_description")
    if not values.get("product_image_url"):
        values["product_image_url"] = _product_image(db, values.get("product_id"))
    item = CartItem(cart_id=cart.id, vendor_id=cart.vendor_id, **values)
    _price(item, cart, raw, "cart item")
    cart.items.append(item)
    db.flush()
    reprice_cart(cart)
    return item


def update_cart_item(db: Session, item: CartItem, raw: dict) -> CartItem:
    for k, v in normalize_values(raw, CART_SNAPSHOT_FIELDS).items():
        setattr(item, k, v)
    _price(item, item.cart, raw, f"cart item {item.id}")
    db.flush()
    reprice_cart(item.cart)
    return item


def remove_cart_item(db: Session, item: CartItem) -> None:
    cart = item.cart
    cart.items.remove(item)
    db.flush()
    reprice_cart(cart)


def export_quote_to_cart(db: Session, vendor: User, quote: Quote) -> dict:
    """Copy a quote's line items into the vendor's cart, adding onto existing rows per product."""
    cart = get_or_create_cart(db, vendor)
    by_product = {ci.product_id: ci for ci in cart.items if ci.product_id}
    added = merged = 0
    for li in quote.line_items:
        existing = by_product.get(li.product_id) if li.product_id else None
        if existing:
            existing.quantity = parse_or_default(existing.quantity) + parse_or_default(li.quantity)
            merged += 1
            continue
        item = CartItem(
            cart_id=cart.id, vendor_id=vendor.id,
            product_id=li.product_id, supplier_id=li.supplier_id, supplier_name=li.supplier_name,
            product_name=li.product_name, product_description=li.product_description_snapshot or "",
            unit_of_measure=li.unit_of_measure or "unit",
            unit_cost_price=li.unit_cost_price, quantity=li.quantity, margin_percent=li.margin_percent,
        )
        item.product_image_url = _product_image(db, li.product_id)
        cart.items.append(item)
        if item.product_id:
            by_product[item.product_id] = item
        added += 1
    db.flush()
    reprice_cart(cart)
    log.info("exported quote %s to cart %s: %d added, %d merged", quote.quote_number, cart.id, added, merged)
    return {"cart_id": cart.id, "added": added, "merged": merged}


def whatsapp_link(phone: str | None, items: list[CartItem]) -> str | None:
    if not phone:
        return None
    digits = "".join(ch for ch in phone if ch.isdigit())
    if not digits:
        return None
    lines = ["Hello, I would like to order the following products:", ""]
    for it in items:
        qty = parse_or_default(it.quantity)
        qty_txt = str(int(qty)) if qty.is_integer() else str(qty)
        lines.append(f"- {qty_txt} {it.unit_of_measure} x {it.product_name}")
    return f"https://wa.me/{digits}?text={urlquote(chr(10).join(lines) + chr(10))}"


def orders_by_supplier(db: Session, cart: Cart) -> list[dict]:
    """Group cart items per supplier, one purchase order each."""
    groups: dict[str, dict] = {}
    for it in cart.items:
        sid = it.supplier_id
        if not sid:
            continue
        g = groups.get(sid)
        if g is None:
            supplier = db.get(Supplier, sid)
            g = groups[sid] = {
                "supplier_id": sid,
                "supplier_name": it.supplier_name or (supplier.name if supplier else None) or "Supplier",
                "supplier_phone": supplier.phone if supplier else None,
                "items": [],
            }
        g["items"].append(it)

    out = []
    for g in groups.values():
        items = g.pop("items")
        totals = aggregate(items)
        out.append({
            **g,
            "items": [serialize_cart_item(i) for i in items],
            "totals": totals.as_dict(),
            "whatsapp_url": whatsapp_link(g["supplier_phone"], items),
        })
    return out


def serialize_cart(cart: Cart) -> dict:
    totals = Totals(cart.total_cost or 0.0, cart.total_sale_price or 0.0, cart.total_profit_amount or 0.0)
    return {
        "id": cart.id,
        "vendor_id": cart.vendor_id,
        "global_margin_percent": cart.global_margin_percent,
        **totals.as_dict(),
    }


def serialize_cart_item(it: CartItem) -> dict:
    return {
        "id": it.id,
        "cart_id": it.cart_id,
        "vendor_id": it.vendor_id,
        **{k: getattr(it, k) for k in CART_SNAPSHOT_FIELDS},
        "unit_cost_price": it.unit_cost_price,
        "quantity": it.quantity,
        "margin_percent": it.margin_percent,
        **{k: getattr(it, k) for k in COMPUTED_FIELDS},
    }
