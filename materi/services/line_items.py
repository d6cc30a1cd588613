"""
Line-item persistence for quotes (and the snapshot helpers shared with cart items).

A quote save submits the editor's full list of line items. Each submitted item
is classified against what is stored:

    existing -> unmodified | modified | deleted
    new      -> pending-create

and only the resulting diff is written: pending-create inserts, modified
updates, deleted (existing only) deletes, unmodified is a no-op. Saving the same
payload twice therefore writes nothing the second time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from sqlalchemy.orm import Session

from materi.config import settings
from materi.errors import PricingMismatch
from materi.models.core import Product, Quote, QuoteLineItem, Supplier
from materi.services.pricing import (
    COMPUTED_FIELDS, mismatched_fields, parse_margin, parse_or_default, price_line, reprice_quote,
)

log = logging.getLogger(__name__)

QUOTE_SNAPSHOT_FIELDS = (
    "product_id", "supplier_id", "supplier_name", "product_name",
    "product_description_snapshot", "unit_of_measure",
)
PRICING_INPUTS = ("unit_cost_price", "quantity", "margin_percent")


class LineItemState(str, Enum):
    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    DELETED = "deleted"
    PENDING_CREATE = "pending-create"


def normalize_values(raw: dict, snapshot_fields=QUOTE_SNAPSHOT_FIELDS) -> dict:
    """Keep known columns from a client payload, parsing pricing inputs leniently.

    Keys absent from ``raw`` stay absent, so PATCH semantics survive: an omitted
    ``margin_percent`` leaves the override alone, an explicit null clears it.
    """
    out = {k: raw[k] for k in snapshot_fields if k in raw}
    if "unit_cost_price" in raw:
        out["unit_cost_price"] = parse_or_default(raw["unit_cost_price"])
    if "quantity" in raw:
        out["quantity"] = parse_or_default(raw["quantity"])
    if "margin_percent" in raw:
        out["margin_percent"] = parse_margin(raw["margin_percent"])
    if out.get("unit_of_measure") in (None, ""):
        out.pop("unit_of_measure", None)
    return out


def fill_from_product(db: Session, values: dict, *, description_field: str = "product_description_snapshot") -> dict:
    """Snapshot product/supplier details the client did not send."""
    pid = values.get("product_id")
    if not pid:
        return values
    p = db.get(Product, pid)
    if not p:
        return values
    # an explicit null is filled too
    if not values.get("product_name"):
        values["product_name"] = p.name
    if not values.get(description_field):
        values[description_field] = p.description
    values.setdefault("unit_of_measure", p.unit_of_measure or "unit")
    values.setdefault("unit_cost_price", parse_or_default(p.base_price))
    if not values.get("supplier_id"):
        values["supplier_id"] = p.supplier_id
    if not values.get("supplier_name") and values.get("supplier_id"):
        s = db.get(Supplier, values["supplier_id"])
        values["supplier_name"] = s.name if s else None
    return values


def verify_client_totals(raw: dict, pricing, *, label: str) -> None:
    """Compare client-computed totals with the server's; reject or log depending on PRICING_STRICT."""
    bad = mismatched_fields(raw, pricing, settings.PRICING_TOLERANCE)
    if not bad:
        return
    if settings.PRICING_STRICT:
        raise PricingMismatch(f"{label}: computed fields disagree with pricing formula", bad)
    log.warning("%s: client totals %s disagree with formula; recomputed server-side", label, ", ".join(bad))


@dataclass
class LineItemDraft:
    id: str | None
    values: dict
    deleted: bool = False
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, raw: dict) -> "LineItemDraft":
        return cls(
            id=raw.get("id") or None,
            values=normalize_values(raw),
            deleted=bool(raw.get("deleted")),
            raw=raw,
        )


def classify(draft: LineItemDraft, stored: QuoteLineItem | None) -> LineItemState:
    if draft.id is None:
        return LineItemState.PENDING_CREATE
    if draft.deleted:
        return LineItemState.DELETED
    if stored is None:
        # caller treats an unknown id as not-found
        return LineItemState.UNMODIFIED
    for k, v in draft.values.items():
        if getattr(stored, k) != v:
            return LineItemState.MODIFIED
    return LineItemState.UNMODIFIED


@dataclass
class SavePlan:
    inserts: list[LineItemDraft] = field(default_factory=list)
    updates: list[tuple[QuoteLineItem, LineItemDraft]] = field(default_factory=list)
    deletes: list[QuoteLineItem] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)


@dataclass
class SaveResult:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    missing: int = 0

    def as_dict(self) -> dict:
        return {"inserted": self.inserted, "updated": self.updated, "deleted": self.deleted, "missing": self.missing}


def plan_save(quote: Quote, drafts: list[LineItemDraft]) -> SavePlan:
    stored_by_id = {li.id: li for li in quote.line_items}
    plan = SavePlan()
    for d in drafts:
        if d.id is None and d.deleted:
            # added and removed within the same editing session
            continue
        stored = stored_by_id.get(d.id) if d.id else None
        if d.id is not None and stored is None:
            plan.missing.append(d.id)
            continue
        state = classify(d, stored)
        if state is LineItemState.PENDING_CREATE:
            plan.inserts.append(d)
        elif state is LineItemState.MODIFIED:
            plan.updates.append((stored, d))
        elif state is LineItemState.DELETED:
            plan.deletes.append(stored)
    return plan


def new_quote_line(db: Session, quote: Quote, raw: dict) -> QuoteLineItem:
    values = fill_from_product(db, normalize_values(raw))
    li = QuoteLineItem(**values)
    pricing = price_line(li.unit_cost_price, li.quantity, li.margin_percent, quote.global_margin_percent)
    verify_client_totals(raw, pricing, label="quote line item")
    for k, v in pricing.computed().items():
        setattr(li, k, v)
    quote.line_items.append(li)
    return li


def update_quote_line(quote: Quote, li: QuoteLineItem, raw: dict) -> None:
    values = normalize_values(raw)
    for k, v in values.items():
        setattr(li, k, v)
    pricing = price_line(li.unit_cost_price, li.quantity, li.margin_percent, quote.global_margin_percent)
    verify_client_totals(raw, pricing, label=f"quote line item {li.id}")
    for k, v in pricing.computed().items():
        setattr(li, k, v)


def apply_plan(db: Session, quote: Quote, plan: SavePlan) -> SaveResult:
    """Apply ``plan`` inside the caller's transaction and refresh the quote aggregates."""
    result = SaveResult(missing=len(plan.missing))
    touched: set[str] = set()

    for li in plan.deletes:
        quote.line_items.remove(li)
        result.deleted += 1

    for li, d in plan.updates:
        update_quote_line(quote, li, d.raw)
        touched.add(li.id)
        result.updated += 1

    for d in plan.inserts:
        new_quote_line(db, quote, d.raw)
        result.inserted += 1

    db.flush()
    # items inheriting the global margin change whenever the quote's margin does
    result.updated += sum(1 for li in reprice_quote(quote) if li.id not in touched)

    if plan.missing:
        log.info("quote %s save: %d line item(s) already gone: %s", quote.id, len(plan.missing), plan.missing)
    return result


def serialize_line(li) -> dict:
    out = {
        "id": li.id,
        "quote_id": li.quote_id,
        **{k: getattr(li, k) for k in QUOTE_SNAPSHOT_FIELDS},
        **{k: getattr(li, k) for k in PRICING_INPUTS},
        **{k: getattr(li, k) for k in COMPUTED_FIELDS},
    }
    return out
