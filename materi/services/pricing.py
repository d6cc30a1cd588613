"""
Markup pricing for quote line items and cart items.

One formula is shared by every write path (quote line items, cart items, batch
quote saves) so stored computed fields can never disagree with each other:

    effective_margin   = item.margin_percent, or the parent's global margin when null
    line_cost_total    = unit_cost_price * quantity
    unit_sale_price    = unit_cost_price * (1 + effective_margin / 100)
    line_sale_total    = unit_sale_price * quantity
    line_profit_amount = line_sale_total - line_cost_total

Numeric input is parsed leniently: anything that is not a finite number becomes
0 (cost, quantity) or falls back to the parent margin (item margin). A computed
value that overflows is stored as 0 the same way. Writes are never rejected
for malformed numbers.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Iterable, Protocol

COMPUTED_FIELDS = ("line_cost_total", "unit_sale_price", "line_sale_total", "line_profit_amount")


def parse_or_default(value: Any, default: float = 0.0) -> float:
    """Return ``value`` as a float, or ``default`` when it is missing or not a finite number."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        try:
            out = float(value)
        except (OverflowError, ValueError):
            return default
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            out = float(text)
        except ValueError:
            return default
    else:
        return default
    return out if math.isfinite(out) else default


def _finite(x: float) -> float:
    # overflow to inf (or inf - inf) degrades like any other malformed number
    return x if math.isfinite(x) else 0.0


def parse_margin(value: Any) -> float | None:
    """Per-item margin override: None means "use the parent's global margin"."""
    parsed = parse_or_default(value, default=math.nan)
    return None if math.isnan(parsed) else parsed


def effective_margin(margin_percent: float | None, global_margin_percent: Any) -> float:
    if margin_percent is not None:
        return margin_percent
    return parse_or_default(global_margin_percent)


@dataclass(frozen=True)
class LinePricing:
    effective_margin: float
    line_cost_total: float
    unit_sale_price: float
    line_sale_total: float
    line_profit_amount: float

    def computed(self) -> dict[str, float]:
        d = asdict(self)
        d.pop("effective_margin")
        return d


def price_line(unit_cost_price: Any, quantity: Any, margin_percent: Any, global_margin_percent: Any) -> LinePricing:
    cost = parse_or_default(unit_cost_price)
    qty = parse_or_default(quantity)
    margin = effective_margin(parse_margin(margin_percent), global_margin_percent)

    line_cost = _finite(cost * qty)
    unit_sale = _finite(cost * (1 + margin / 100))
    line_sale = _finite(unit_sale * qty)
    return LinePricing(
        effective_margin=margin,
        line_cost_total=line_cost,
        unit_sale_price=unit_sale,
        line_sale_total=line_sale,
        # negative on a loss; never clamped
        line_profit_amount=_finite(line_sale - line_cost),
    )


class _PricedLine(Protocol):
    line_cost_total: float
    line_sale_total: float


@dataclass(frozen=True)
class Totals:
    total_cost: float = 0.0
    total_sale_price: float = 0.0
    total_profit_amount: float = 0.0

    @property
    def margin_percent(self) -> float | None:
        # display only, never stored
        if self.total_cost > 0:
            pct = self.total_profit_amount / self.total_cost * 100
            return pct if math.isfinite(pct) else None
        return None

    def as_dict(self) -> dict:
        return {
            "total_cost": self.total_cost,
            "total_sale_price": self.total_sale_price,
            "total_profit_amount": self.total_profit_amount,
            "margin_percent": self.margin_percent,
        }


def aggregate(lines: Iterable[_PricedLine]) -> Totals:
    cost = 0.0
    sale = 0.0
    for l in lines:
        cost += parse_or_default(l.line_cost_total)
        sale += parse_or_default(l.line_sale_total)
    cost, sale = _finite(cost), _finite(sale)
    return Totals(total_cost=cost, total_sale_price=sale, total_profit_amount=_finite(sale - cost))


def mismatched_fields(client_values: dict, pricing: LinePricing, tolerance: float) -> list[str]:
    """Computed fields the client sent that disagree with the server-side formula."""
    out = []
    for name, expected in pricing.computed().items():
        if client_values.get(name) is None:
            continue
        sent = parse_or_default(client_values[name], default=math.nan)
        if math.isnan(sent) or abs(sent - expected) > tolerance:
            out.append(name)
    return out


# ---------- ORM helpers ----------

def apply_pricing(item, global_margin_percent: Any) -> bool:
    """Recompute ``item``'s computed columns in place. Returns True if any value changed."""
    pricing = price_line(item.unit_cost_price, item.quantity, item.margin_percent, global_margin_percent)
    changed = False
    for name, value in pricing.computed().items():
        if getattr(item, name) != value:
            setattr(item, name, value)
            changed = True
    return changed


def _store_totals(parent, totals: Totals) -> None:
    parent.total_cost = totals.total_cost
    parent.total_sale_price = totals.total_sale_price
    parent.total_profit_amount = totals.total_profit_amount


def reprice_quote(quote) -> list:
    """Recompute every line item and the quote aggregates; returns the items that changed."""
    changed = [li for li in quote.line_items if apply_pricing(li, quote.global_margin_percent)]
    _store_totals(quote, aggregate(quote.line_items))
    return changed


def reprice_cart(cart) -> list:
    changed = [ci for ci in cart.items if apply_pricing(ci, cart.global_margin_percent)]
    _store_totals(cart, aggregate(cart.items))
    return changed
