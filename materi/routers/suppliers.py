from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from materi.db import get_db
from materi.deps import require_auth
from materi.models.core import Supplier
from materi.schemas.catalog import SupplierIn, SupplierPatch

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


def _truthy(v: str) -> bool:
    return v.lower() in ("true", "1")

def serialize_supplier(s: Supplier) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "company_name": s.company_name,
        "contact_person": s.contact_person,
        "email": s.email,
        "phone": s.phone,
        "address": s.address,
        "notes": s.notes,
        "payment_terms": s.payment_terms,
        "active": bool(s.active),
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


@router.get("")
def list_suppliers(active: str | None = None, id: str | None = None, db: Session = Depends(get_db)):
    q = db.query(Supplier)
    if active is not None:
        q = q.filter(Supplier.active == _truthy(active))
    if id:
        q = q.filter(Supplier.id == id)
    return [serialize_supplier(s) for s in q.order_by(Supplier.created_at.desc()).all()]


@router.post("", status_code=201)
def create_supplier(body: SupplierIn, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    s = Supplier(**body.model_dump())
    db.add(s)
    db.commit()
    db.refresh(s)
    return serialize_supplier(s)


@router.patch("/{supplier_id}")
def update_supplier(supplier_id: str, body: SupplierPatch, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    s = db.get(Supplier, supplier_id)
    if not s:
        raise HTTPException(404, detail="supplier not found")
    for k, v in body.model_dump(exclude_unset=True).items():
        setattr(s, k, v)
    db.commit()
    db.refresh(s)
    return serialize_supplier(s)


@router.delete("/{supplier_id}", status_code=204)
def delete_supplier(supplier_id: str, db: Session = Depends(get_db), sub: str = Depends(require_auth)):
    s = db.get(Supplier, supplier_id)
    if not s:
        raise HTTPException(404, detail="supplier not found")
    db.delete(s)
    db.commit()
    return Response(status_code=204)
