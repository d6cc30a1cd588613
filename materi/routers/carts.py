from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from materi.db import get_db
from materi.deps import require_vendor
from materi.models.core import Cart, User
from materi.schemas.carts import CartIn
from materi.services.carts import (
    get_or_create_cart, orders_by_supplier, serialize_cart, serialize_cart_item,
)
from materi.services.pricing import parse_or_default, reprice_cart

router = APIRouter(prefix="/carts", tags=["carts"])


def own_cart(db: Session, cart_id: str, user: User) -> Cart:
    c = db.get(Cart, cart_id)
    if not c or c.vendor_id != user.id:
        raise HTTPException(404, detail="cart not found")
    return c


@router.get("")
def list_carts(id: str | None = None, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    q = db.query(Cart).filter(Cart.vendor_id == user.id)
    if id:
        q = q.filter(Cart.id == id)
    return [serialize_cart(c) for c in q.all()]


@router.post("")
def create_cart(body: CartIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    """One cart per vendor: returns the existing cart if there is one."""
    cart = get_or_create_cart(db, user, body.global_margin_percent)
    db.commit()
    return serialize_cart(cart)


@router.patch("/{cart_id}")
def update_cart(cart_id: str, body: CartIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    cart = own_cart(db, cart_id, user)
    data = body.model_dump(exclude_unset=True)
    if "global_margin_percent" in data:
        cart.global_margin_percent = parse_or_default(data["global_margin_percent"])
        reprice_cart(cart)
    db.commit()
    return serialize_cart(cart)


@router.get("/{cart_id}/summary")
def cart_summary(cart_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    cart = own_cart(db, cart_id, user)
    return {**serialize_cart(cart), "items": [serialize_cart_item(i) for i in cart.items]}


@router.get("/{cart_id}/orders-by-supplier")
def cart_orders(cart_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    return orders_by_supplier(db, own_cart(db, cart_id, user))
