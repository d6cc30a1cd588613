from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from materi.db import get_db
from materi.deps import require_vendor
from materi.errors import MateriError, as_http
from materi.models.core import Quote, QuoteLineItem, User
from materi.schemas.quotes import LineItemIn
from materi.services.line_items import new_quote_line, serialize_line, update_quote_line
from materi.services.pricing import reprice_quote

router = APIRouter(prefix="/quote-line-items", tags=["quotes"])


def _own_line(db: Session, line_id: str, user: User) -> QuoteLineItem:
    li = db.get(QuoteLineItem, line_id)
    if not li or li.quote.vendor_id != user.id:
        raise HTTPException(404, detail="line item not found")
    return li


@router.get("")
def list_lines(quote_id: str | None = None, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    q = db.query(QuoteLineItem).join(Quote, Quote.id == QuoteLineItem.quote_id).filter(Quote.vendor_id == user.id)
    if quote_id:
        q = q.filter(QuoteLineItem.quote_id == quote_id)
    return [serialize_line(li) for li in q.order_by(QuoteLineItem.created_at.asc()).all()]


@router.get("/{line_id}")
def get_line(line_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    return serialize_line(_own_line(db, line_id, user))


@router.post("", status_code=201)
def create_line(body: LineItemIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    quote = db.get(Quote, body.quote_id) if body.quote_id else None
    if not quote or quote.vendor_id != user.id:
        raise HTTPException(404, detail="quote not found")
    try:
        li = new_quote_line(db, quote, body.model_dump(exclude_unset=True))
        db.flush()
        reprice_quote(quote)
        db.commit()
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    db.refresh(li)
    return serialize_line(li)


@router.patch("/{line_id}")
def update_line(line_id: str, body: LineItemIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    li = _own_line(db, line_id, user)
    raw = body.model_dump(exclude_unset=True)
    if raw.get("quote_id") not in (None, li.quote_id):
        raise HTTPException(400, detail="quote_id mismatch")
    try:
        update_quote_line(li.quote, li, raw)
        reprice_quote(li.quote)
        db.commit()
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    db.refresh(li)
    return serialize_line(li)


@router.delete("/{line_id}")
def delete_line(line_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    li = _own_line(db, line_id, user)
    quote = li.quote
    quote.line_items.remove(li)
    db.flush()
    reprice_quote(quote)
    db.commit()
    return {"ok": True, "id": line_id}
