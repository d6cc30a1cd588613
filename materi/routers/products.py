from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from typing import Optional

from materi.db import get_db
from materi.deps import require_auth
from materi.models.core import Product, Supplier
from materi.schemas.catalog import ProductIn, ProductPatch
from materi.services.pricing import parse_or_default

router = APIRouter(prefix="/products", tags=["products"])


def serialize_product(p: Product) -> dict:
    return {
        "id": p.id,
        "supplier_id": p.supplier_id,
        "name": p.name,
        "description": p.description,
        "category": p.category,
        "internal_code": p.internal_code,
        "unit_of_measure": p.unit_of_measure,
        "base_price": p.base_price,
        "currency": p.currency,
        "image_url": p.image_url,
        "active": bool(p.active),
    }


@router.get("")
def list_products(
    active: Optional[str] = None,
    supplier_id: Optional[str] = None,
    category: Optional[str] = None,
    id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    q = db.query(Product)
    if active is not None:
        q = q.filter(Product.active == (active.lower() in ("true", "1")))
    if supplier_id:
        q = q.filter(Product.supplier_id == supplier_id)
    if category:
        q = q.filter(Product.category == category)
    if id:
        q = q.filter(Product.id == id)
    return [serialize_product(p) for p in q.order_by(Product.created_at.desc()).all()]


@router.get("/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(404, detail="product not found")
    return serialize_product(p)


@router.post("", status_code=201)
def create_product(body: ProductIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    if body.supplier_id and not db.get(Supplier, body.supplier_id):
        raise HTTPException(400, detail="supplier not found")
    data = body.model_dump()
    data["base_price"] = parse_or_default(data["base_price"])
    p = Product(**data)
    db.add(p)
    db.commit()
    db.refresh(p)
    return serialize_product(p)


@router.patch("/{product_id}")
def update_product(product_id: str, body: ProductPatch, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(404, detail="product not found")
    data = body.model_dump(exclude_unset=True)
    if "base_price" in data:
        data["base_price"] = parse_or_default(data["base_price"])
    # existing quote/cart lines keep their cost snapshot
    for k, v in data.items():
        setattr(p, k, v)
    db.commit()
    db.refresh(p)
    return serialize_product(p)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(404, detail="product not found")
    db.delete(p)
    db.commit()
    return Response(status_code=204)
