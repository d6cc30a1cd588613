from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from materi.db import get_db
from materi.deps import require_vendor
from materi.errors import MateriError, as_http
from materi.models.core import CartItem, User
from materi.routers.carts import own_cart
from materi.schemas.carts import CartItemIn
from materi.services.carts import (
    add_cart_item, get_or_create_cart, remove_cart_item, serialize_cart_item, update_cart_item,
)

router = APIRouter(prefix="/cart-items", tags=["carts"])


def _own_item(db: Session, item_id: str, user: User) -> CartItem:
    it = db.get(CartItem, item_id)
    if not it or it.vendor_id != user.id:
        raise HTTPException(404, detail="cart item not found")
    return it


@router.get("")
def list_items(
    cart_id: str | None = None,
    product_id: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_vendor),
):
    q = db.query(CartItem).filter(CartItem.vendor_id == user.id)
    if cart_id:
        q = q.filter(CartItem.cart_id == cart_id)
    if product_id:
        q = q.filter(CartItem.product_id == product_id)
    return [serialize_cart_item(i) for i in q.order_by(CartItem.created_at.asc()).all()]


@router.get("/{item_id}")
def get_item(item_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    return serialize_cart_item(_own_item(db, item_id, user))


@router.post("", status_code=201)
def create_item(body: CartItemIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    cart = own_cart(db, body.cart_id, user) if body.cart_id else get_or_create_cart(db, user)
    try:
        it = add_cart_item(db, cart, body.model_dump(exclude_unset=True))
        db.commit()
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    return serialize_cart_item(it)


@router.patch("/{item_id}")
def update_item(item_id: str, body: CartItemIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    it = _own_item(db, item_id, user)
    try:
        update_cart_item(db, it, body.model_dump(exclude_unset=True, exclude={"cart_id"}))
        db.commit()
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    return serialize_cart_item(it)


@router.delete("/{item_id}")
def delete_item(item_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    it = _own_item(db, item_id, user)
    remove_cart_item(db, it)
    db.commit()
    return {"ok": True, "id": item_id}
