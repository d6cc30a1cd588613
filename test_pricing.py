# test_pricing.py
import math
from types import SimpleNamespace

import pytest

from materi.services.pricing import (
    aggregate, apply_pricing, mismatched_fields, parse_margin, parse_or_default, price_line, reprice_quote,
)


@pytest.mark.parametrize("raw,expected", [
    (None, 0.0), ("", 0.0), ("  ", 0.0), ("abc", 0.0), ("12.5", 12.5), (" 3 ", 3.0),
    (7, 7.0), (True, 0.0), ("nan", 0.0), ("inf", 0.0), (float("inf"), 0.0), ([1], 0.0),
    (10**400, 0.0), ("1e400", 0.0),
])
def test_parse_or_default(raw, expected):
    assert parse_or_default(raw) == expected


def test_parse_margin_keeps_zero_and_drops_garbage():
    assert parse_margin(0) == 0.0
    assert parse_margin("0") == 0.0
    assert parse_margin(None) is None
    assert parse_margin("x") is None
    assert parse_margin(-15) == -15.0


def test_line_formula():
    p = price_line(100, 3, None, 20)
    assert p.effective_margin == 20
    assert p.line_cost_total == pytest.approx(300)
    assert p.unit_sale_price == pytest.approx(120)
    assert p.line_sale_total == pytest.approx(360)
    assert p.line_profit_amount == pytest.approx(60)
    # profit is always sale - cost, exactly
    assert p.line_profit_amount == p.line_sale_total - p.line_cost_total


def test_item_margin_overrides_global_even_when_zero():
    p = price_line(50, 2, 0, 35)
    assert p.effective_margin == 0
    assert p.unit_sale_price == pytest.approx(50)
    assert p.line_profit_amount == pytest.approx(0)


def test_negative_margin_gives_a_loss():
    p = price_line(200, 1, -10, 20)
    assert p.unit_sale_price == pytest.approx(180)
    assert p.line_profit_amount == pytest.approx(-20)


def test_malformed_inputs_price_as_zero():
    p = price_line("abc", "", "oops", "n/a")
    assert p.effective_margin == 0
    assert p.computed() == {
        "line_cost_total": 0.0, "unit_sale_price": 0.0, "line_sale_total": 0.0, "line_profit_amount": 0.0,
    }


def test_zero_quantity_keeps_unit_price():
    p = price_line(10, 0, None, 50)
    assert p.unit_sale_price == pytest.approx(15)
    assert p.line_cost_total == 0
    assert p.line_sale_total == 0


def test_aggregate_and_margin():
    lines = [price_line(100, 1, None, 20), price_line(50, 2, 10, 20), price_line("bad", 4, None, 20)]
    t = aggregate(lines)
    assert t.total_cost == pytest.approx(200)
    assert t.total_sale_price == pytest.approx(230)
    assert t.total_profit_amount == pytest.approx(30)
    assert t.margin_percent == pytest.approx(15)


def test_aggregate_empty_has_no_margin():
    t = aggregate([])
    assert (t.total_cost, t.total_sale_price, t.total_profit_amount) == (0.0, 0.0, 0.0)
    assert t.margin_percent is None
    assert t.as_dict()["margin_percent"] is None


def test_mismatched_fields():
    p = price_line(100, 2, None, 20)
    assert mismatched_fields({}, p, 0.005) == []
    assert mismatched_fields({"line_sale_total": 240.001}, p, 0.005) == []
    assert mismatched_fields({"line_sale_total": 250, "unit_sale_price": "120"}, p, 0.005) == ["line_sale_total"]
    assert mismatched_fields({"line_cost_total": "lots"}, p, 0.005) == ["line_cost_total"]


def _item(**kw):
    base = dict(unit_cost_price=10.0, quantity=1.0, margin_percent=None,
                line_cost_total=0.0, unit_sale_price=0.0, line_sale_total=0.0, line_profit_amount=0.0)
    base.update(kw)
    return SimpleNamespace(**base)


def test_apply_pricing_reports_changes_once():
    it = _item()
    assert apply_pricing(it, 20) is True
    assert it.unit_sale_price == pytest.approx(12)
    assert apply_pricing(it, 20) is False


def test_reprice_quote_follows_global_margin_only_for_inheriting_items():
    inherit = _item(unit_cost_price=100.0)
    fixed = _item(unit_cost_price=100.0, margin_percent=5.0)
    quote = SimpleNamespace(line_items=[inherit, fixed], global_margin_percent=20.0,
                            total_cost=0.0, total_sale_price=0.0, total_profit_amount=0.0)
    reprice_quote(quote)
    assert quote.total_sale_price == pytest.approx(225)

    quote.global_margin_percent = 50.0
    changed = reprice_quote(quote)
    assert changed == [inherit]
    assert inherit.unit_sale_price == pytest.approx(150)
    assert fixed.unit_sale_price == pytest.approx(105)
    assert quote.total_profit_amount == pytest.approx(55)
    assert not math.isnan(quote.total_cost)


def test_scenario_markup():
    p = price_line(100, 3, 25, 0)
    assert (p.line_cost_total, p.unit_sale_price, p.line_sale_total, p.line_profit_amount) == pytest.approx((300, 125, 375, 75))


def test_scenario_loss():
    p = price_line(50, 2, -10, 0)
    assert (p.line_cost_total, p.unit_sale_price, p.line_sale_total, p.line_profit_amount) == pytest.approx((100, 45, 90, -10))


def test_null_margin_prices_like_explicit_global():
    assert price_line(37.5, 4, None, 20).computed() == price_line(37.5, 4, 20, 20).computed()


def test_aggregate_order_does_not_matter():
    lines = [price_line(c, q, m, 20) for c, q, m in ((0.1, 3, None), (19.99, 7, 5), (1e6, 0.5, -3), (3.33, 11, None))]
    a, b = aggregate(lines), aggregate(reversed(lines))
    assert a.total_cost == pytest.approx(b.total_cost)
    assert a.total_sale_price == pytest.approx(b.total_sale_price)


def test_overflowing_results_degrade_to_zero():
    p = price_line(1e308, 10, 50, 0)
    assert all(math.isfinite(v) for v in p.computed().values())
    assert p.line_cost_total == 0
    assert p.unit_sale_price == pytest.approx(1.5e308)
    assert p.line_sale_total == 0
    assert p.line_profit_amount == 0

    t = aggregate([price_line(1e308, 1, 0, 0), price_line(1e308, 1, 0, 0)])
    assert (t.total_cost, t.total_sale_price, t.total_profit_amount) == (0.0, 0.0, 0.0)
    assert t.margin_percent is None


def test_margin_percent_overflow_is_hidden():
    t = aggregate([SimpleNamespace(line_cost_total=1e-300, line_sale_total=1e10)])
    assert t.margin_percent is None
