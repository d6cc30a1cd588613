from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from materi.config import settings
from materi.errors import InvalidReservation
from materi.models.core import Quote, QuoteStatus, User
from materi.services.line_items import LineItemDraft, SaveResult, apply_plan, new_quote_line, plan_save
from materi.services.numbering import claim_reservation, reserve_next
from materi.services.pricing import Totals, parse_or_default, reprice_quote
from materi.util.audit import audit

log = logging.getLogger(__name__)

HEADER_FIELDS = ("customer_name", "customer_company", "customer_email", "customer_phone", "notes")


def _clean_phone(phone: str | None) -> str | None:
    if phone is None:
        return None
    # keep digits, +, -, spaces and parentheses
    return "".join(ch for ch in phone if ch.isdigit() or ch in "+- ()")


def apply_header(quote: Quote, fields: dict) -> bool:
    """Copy editable header fields onto ``quote``. Returns True if the global margin changed."""
    if quote.quote_seq_id is not None:
        for key, current in (("quote_seq_id", quote.quote_seq_id), ("quote_number", quote.quote_number)):
            sent = fields.get(key)
            if sent not in (None, "") and sent != current:
                raise InvalidReservation(f"{key} is immutable once assigned")

    for k in HEADER_FIELDS:
        if k in fields:
            setattr(quote, k, fields[k])
    if "customer_phone" in fields:
        quote.customer_phone = _clean_phone(fields["customer_phone"])
    if "customer_email" in fields and fields["customer_email"] is not None:
        quote.customer_email = fields["customer_email"].strip()
    if fields.get("status"):
        quote.status = QuoteStatus(fields["status"])

    margin_changed = False
    if "global_margin_percent" in fields:
        new_margin = parse_or_default(fields["global_margin_percent"])
        margin_changed = new_margin != quote.global_margin_percent
        quote.global_margin_percent = new_margin
    return margin_changed


def create_quote(db: Session, vendor: User, fields: dict, line_items: list[dict]) -> Quote:
    """Stamp a new quote with a claimed (or freshly reserved) number and its first line items.

    Runs inside the caller's transaction: nothing is visible until the caller commits.
    """
    seq_id = fields.get("quote_seq_id")
    if seq_id is not None:
        res = claim_reservation(db, seq_id)
    else:
        res = reserve_next(db)

    quote = Quote(
        vendor_id=vendor.id,
        quote_seq_id=res.sequence_id,
        quote_number=res.quote_number,
        status=QuoteStatus.DRAFT,
        global_margin_percent=settings.DEFAULT_GLOBAL_MARGIN,
        total_cost=0.0, total_sale_price=0.0, total_profit_amount=0.0,
    )
    header = {k: v for k, v in fields.items() if k not in ("quote_seq_id", "quote_number")}
    apply_header(quote, header)
    db.add(quote)

    for raw in line_items:
        if raw.get("deleted"):
            continue
        new_quote_line(db, quote, raw)

    db.flush()
    reprice_quote(quote)
    audit(db, vendor.id, "Quote", quote.id, "CREATE", after={"quote_number": quote.quote_number, "seq": res.sequence_id})
    log.info("quote %s created by %s with %d line item(s)", quote.quote_number, vendor.id, len(quote.line_items))
    return quote


def save_quote(db: Session, quote: Quote, fields: dict, line_items: list[dict]) -> SaveResult:
    """Header update plus minimal line-item diff, in the caller's transaction."""
    apply_header(quote, fields)
    plan = plan_save(quote, [LineItemDraft.from_payload(raw) for raw in line_items])
    if plan.is_empty:
        log.debug("quote %s save: no line-item changes submitted", quote.quote_number)
    result = apply_plan(db, quote, plan)
    if result.inserted or result.updated or result.deleted:
        audit(db, quote.vendor_id, "Quote", quote.id, "SAVE", after=result.as_dict())
    return result


def serialize_quote(q: Quote) -> dict:
    totals = Totals(q.total_cost or 0.0, q.total_sale_price or 0.0, q.total_profit_amount or 0.0)
    return {
        "id": q.id,
        "vendor_id": q.vendor_id,
        "quote_seq_id": q.quote_seq_id,
        "quote_number": q.quote_number,
        "customer_name": q.customer_name,
        "customer_company": q.customer_company,
        "customer_email": q.customer_email,
        "customer_phone": q.customer_phone,
        "status": getattr(q.status, "value", q.status),
        "global_margin_percent": q.global_margin_percent,
        "notes": q.notes,
        "total_cost": q.total_cost,
        "total_sale_price": q.total_sale_price,
        "total_profit_amount": q.total_profit_amount,
        "margin_percent": totals.margin_percent,
        "created_at": q.created_at.isoformat() if q.created_at else None,
        "updated_at": q.updated_at.isoformat() if q.updated_at else None,
    }
