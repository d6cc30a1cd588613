# test_line_items.py
from types import SimpleNamespace

from materi.services.line_items import LineItemDraft, LineItemState, classify, normalize_values, plan_save


def _stored(id, **kw):
    base = dict(product_id="p1", supplier_id="s1", supplier_name="S", product_name="Cement",
                product_description_snapshot=None, unit_of_measure="bag",
                unit_cost_price=10.0, quantity=2.0, margin_percent=None)
    base.update(kw)
    return SimpleNamespace(id=id, **base)


def test_normalize_values_keeps_only_sent_keys():
    assert normalize_values({"quantity": "3"}) == {"quantity": 3.0}
    assert normalize_values({"margin_percent": None}) == {"margin_percent": None}
    assert normalize_values({"margin_percent": "0"}) == {"margin_percent": 0.0}
    assert normalize_values({"unit_of_measure": "", "line_sale_total": 5, "id": "x"}) == {}


def test_classify_states():
    row = _stored("a")
    assert classify(LineItemDraft.from_payload({"quantity": 1}), None) is LineItemState.PENDING_CREATE
    assert classify(LineItemDraft.from_payload({"id": "a", "deleted": True}), row) is LineItemState.DELETED
    assert classify(LineItemDraft.from_payload({"id": "a", "quantity": "2"}), row) is LineItemState.UNMODIFIED
    assert classify(LineItemDraft.from_payload({"id": "a", "quantity": 4}), row) is LineItemState.MODIFIED
    # null and 0 are different overrides
    assert classify(LineItemDraft.from_payload({"id": "a", "margin_percent": 0}), row) is LineItemState.MODIFIED


def test_plan_save_buckets():
    a, b, c = _stored("a"), _stored("b"), _stored("c")
    quote = SimpleNamespace(line_items=[a, b, c])
    plan = plan_save(quote, [LineItemDraft.from_payload(raw) for raw in (
        {"id": "a", "quantity": 2},
        {"id": "b", "unit_cost_price": 11},
        {"id": "c", "deleted": True},
        {"id": "zz", "deleted": True},
        {"product_name": "New", "quantity": 1},
        {"product_name": "Discarded", "deleted": True},
    )])
    assert [d.values["product_name"] for d in plan.inserts] == ["New"]
    assert [li.id for li, _ in plan.updates] == ["b"]
    assert plan.deletes == [c]
    assert plan.missing == ["zz"]
    assert not plan.is_empty


def test_plan_save_nothing_to_do():
    a = _stored("a")
    plan = plan_save(SimpleNamespace(line_items=[a]), [LineItemDraft.from_payload({"id": "a", **vars(a)})])
    assert plan.is_empty
    assert plan.missing == []
