from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from materi.db import get_db
from materi.deps import require_vendor
from materi.errors import MateriError, ReservationInUse, as_http
from materi.models.core import Quote, QuoteStatus, User
from materi.schemas.quotes import NextNumberOut, QuoteFields, QuoteIn, QuoteSaveIn
from materi.services.carts import export_quote_to_cart
from materi.services.line_items import serialize_line
from materi.services.numbering import reserve_next
from materi.services.pricing import reprice_quote
from materi.services.quotes import apply_header, create_quote, save_quote, serialize_quote
from materi.util.audit import audit

router = APIRouter(prefix="/quotes", tags=["quotes"])
log = logging.getLogger(__name__)


def _own_quote(db: Session, quote_id: str, user: User) -> Quote:
    q = db.get(Quote, quote_id)
    if not q or q.vendor_id != user.id:
        raise HTTPException(404, detail="quote not found")
    return q

def _with_items(q: Quote) -> dict:
    return {**serialize_quote(q), "line_items": [serialize_line(li) for li in q.line_items]}


# declared before /{quote_id} so "next-number" is not taken for an id
@router.get("/next-number", response_model=NextNumberOut)
def next_number(db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    """
    Reserve a quote number up front so the editor can show it immediately.

    The reservation is committed on its own: if the quote is never saved the
    number stays burnt and no later quote can claim it.
    """
    try:
        res = reserve_next(db)
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    audit(db, user.id, "QuoteNumberSequence", res.sequence_id, "RESERVE", after={"quote_number": res.quote_number})
    db.commit()
    return NextNumberOut(seqId=res.sequence_id, quote_number=res.quote_number)


@router.get("")
def list_quotes(
    id: str | None = None,
    status: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_vendor),
):
    q = db.query(Quote).filter(Quote.vendor_id == user.id)
    if id:
        q = q.filter(Quote.id == id)
    if status:
        try:
            wanted = QuoteStatus(status)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid status")
        q = q.filter(Quote.status == wanted)
    rows = q.order_by(Quote.created_at.desc(), Quote.quote_seq_id.desc()).all()
    return [serialize_quote(r) for r in rows]


@router.post("", status_code=201)
def create(body: QuoteIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    fields = body.model_dump(exclude_unset=True, exclude={"line_items"})
    items = [li.model_dump(exclude_unset=True) for li in body.line_items]
    try:
        quote = create_quote(db, user, fields, items)
        db.commit()
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    except IntegrityError:
        # two requests claimed the same reservation; the unique index caught the loser
        db.rollback()
        raise as_http(ReservationInUse(f"quote_seq_id {fields.get('quote_seq_id')} already used by another quote"))
    db.refresh(quote)
    return _with_items(quote)


@router.get("/{quote_id}")
def get_quote(quote_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    return _with_items(_own_quote(db, quote_id, user))


@router.patch("/{quote_id}")
def update_quote(quote_id: str, body: QuoteFields, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    quote = _own_quote(db, quote_id, user)
    try:
        if apply_header(quote, body.model_dump(exclude_unset=True)):
            repriced = reprice_quote(quote)
            log.info("quote %s margin -> %s, repriced %d line item(s)", quote.quote_number, quote.global_margin_percent, len(repriced))
        db.commit()
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    db.refresh(quote)
    return serialize_quote(quote)


@router.post("/{quote_id}/save")
def save(quote_id: str, body: QuoteSaveIn, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    """
    Header + line-item diff in one transaction.

    Items without an id are inserted, items with ``deleted: true`` are removed,
    items whose fields differ from the stored row are updated, the rest are left
    alone. Ids that no longer exist are reported under ``missing``.
    """
    quote = _own_quote(db, quote_id, user)
    fields = body.model_dump(exclude_unset=True, exclude={"line_items"})
    items = [li.model_dump(exclude_unset=True) for li in body.line_items]
    try:
        result = save_quote(db, quote, fields, items)
        db.commit()
    except MateriError as e:
        db.rollback()
        raise as_http(e)
    db.refresh(quote)
    return {"quote": serialize_quote(quote), "line_items": [serialize_line(li) for li in quote.line_items], "changes": result.as_dict()}


@router.post("/{quote_id}/export-to-cart")
def export_to_cart(quote_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    quote = _own_quote(db, quote_id, user)
    if not quote.line_items:
        raise HTTPException(400, detail="quote has no line items to export")
    out = export_quote_to_cart(db, user, quote)
    db.commit()
    return out


@router.delete("/{quote_id}")
def delete_quote(quote_id: str, db: Session = Depends(get_db), user: User = Depends(require_vendor)):
    quote = _own_quote(db, quote_id, user)
    audit(db, user.id, "Quote", quote.id, "DELETE", before={"quote_number": quote.quote_number, "line_items": len(quote.line_items)})
    # line items go with it (delete-orphan); the sequence row stays
    db.delete(quote)
    db.commit()
    return {"ok": True, "id": quote_id}
