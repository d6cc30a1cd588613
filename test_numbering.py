# test_numbering.py
import re
from concurrent.futures import ThreadPoolExecutor

import pytest

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import materi.services.quotes as quote_service
from materi.db import SessionLocal
from materi.errors import InvalidReservation, ReservationInUse
from materi.services.numbering import Reservation, claim_reservation, format_quote_number, reserve_next

QUOTE_NO = re.compile(r"^Q-\d{6,}$")


def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type", "").startswith("application/json") else r.text


@pytest.mark.parametrize("seq,expected", [(1, "Q-000001"), (42, "Q-000042"), (999999, "Q-999999"), (1234567, "Q-1234567")])
def test_format_quote_number(seq, expected):
    assert format_quote_number(seq) == expected


def test_reserve_next_is_strictly_increasing(client):
    ids = []
    with SessionLocal() as db:
        for _ in range(5):
            ids.append(reserve_next(db).sequence_id)
        db.commit()
    assert ids == sorted(ids)
    assert len(set(ids)) == 5


def test_claim_unknown_reservation(client):
    with SessionLocal() as db:
        with pytest.raises(InvalidReservation):
            claim_reservation(db, 10_000_000)


def test_next_number_endpoint(client, auth_headers):
    a = jprint("GET /quotes/next-number", client.get("/quotes/next-number", headers=auth_headers))
    b = jprint("GET /quotes/next-number", client.get("/quotes/next-number", headers=auth_headers))
    assert QUOTE_NO.match(a["quote_number"]) and QUOTE_NO.match(b["quote_number"])
    assert b["seqId"] > a["seqId"]
    assert a["quote_number"] == format_quote_number(a["seqId"])


def test_next_number_requires_vendor(client):
    r = client.get("/quotes/next-number")
    assert r.status_code == 401
    r = client.post("/auth/register", json={"name": "sup", "email": "supplier-only@example.com", "password": "x", "user_role": "Supplier"})
    token = jprint("register supplier", r)["access_token"]
    client.cookies.clear()
    r = client.get("/quotes/next-number", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403


def test_concurrent_reservations_are_unique(client, auth_headers):
    def grab(_):
        return client.get("/quotes/next-number", headers=auth_headers)

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(grab, range(16)))
    numbers = [jprint("concurrent next-number", r)["quote_number"] for r in results]
    assert len(set(numbers)) == len(numbers)


def test_claimed_reservation_cannot_be_reused(client, auth_headers):
    res = jprint("reserve", client.get("/quotes/next-number", headers=auth_headers))
    q = jprint("POST /quotes", client.post("/quotes", headers=auth_headers, json={
        "quote_seq_id": res["seqId"], "customer_name": "First",
    }))
    assert q["quote_number"] == res["quote_number"]
    assert q["quote_seq_id"] == res["seqId"]

    r = client.post("/quotes", headers=auth_headers, json={"quote_seq_id": res["seqId"], "customer_name": "Second"})
    assert r.status_code == 409, r.text

    with SessionLocal() as db:
        with pytest.raises(ReservationInUse):
            claim_reservation(db, res["seqId"])
        # the holder itself may re-claim
        assert claim_reservation(db, res["seqId"], quote_id=q["id"]).quote_number == res["quote_number"]


def test_unknown_reservation_is_rejected(client, auth_headers):
    r = client.post("/quotes", headers=auth_headers, json={"quote_seq_id": 987654321})
    assert r.status_code == 400, r.text


def test_quote_without_reservation_gets_a_number(client, auth_headers):
    before = jprint("reserve", client.get("/quotes/next-number", headers=auth_headers))
    q = jprint("POST /quotes", client.post("/quotes", headers=auth_headers, json={"customer_name": "Walk-in"}))
    assert QUOTE_NO.match(q["quote_number"])
    assert q["quote_seq_id"] > before["seqId"]


def test_abandoned_reservation_is_burnt(client, auth_headers):
    abandoned = jprint("reserve", client.get("/quotes/next-number", headers=auth_headers))
    q = jprint("POST /quotes", client.post("/quotes", headers=auth_headers, json={}))
    assert q["quote_seq_id"] > abandoned["seqId"]
    assert q["quote_number"] != abandoned["quote_number"]


def test_quote_number_is_immutable(client, auth_headers):
    q = jprint("POST /quotes", client.post("/quotes", headers=auth_headers, json={}))
    r = client.patch(f"/quotes/{q['id']}", headers=auth_headers, json={"quote_number": "Q-000000"})
    assert r.status_code == 400
    # echoing the stamped values back is fine
    r = client.patch(f"/quotes/{q['id']}", headers=auth_headers, json={
        "quote_number": q["quote_number"], "quote_seq_id": q["quote_seq_id"], "notes": "ok",
    })
    assert jprint("PATCH /quotes echo", r)["notes"] == "ok"


def test_failed_reservation_issues_no_number(client, auth_headers, monkeypatch):
    before = jprint("reserve", client.get("/quotes/next-number", headers=auth_headers))

    def broken_flush(self, *args, **kwargs):
        raise SQLAlchemyError("database unavailable")

    with monkeypatch.context() as m:
        m.setattr(Session, "flush", broken_flush)
        r = client.get("/quotes/next-number", headers=auth_headers)
        assert r.status_code == 503, r.text

    after = jprint("reserve", client.get("/quotes/next-number", headers=auth_headers))
    assert after["seqId"] == before["seqId"] + 1


def test_racing_claims_on_one_reservation_get_409(client, auth_headers, monkeypatch):
    res = jprint("reserve", client.get("/quotes/next-number", headers=auth_headers))
    jprint("POST /quotes", client.post("/quotes", headers=auth_headers, json={"quote_seq_id": res["seqId"]}))

    # let the second claim through the holder check, as a concurrent request would
    monkeypatch.setattr(quote_service, "claim_reservation",
                        lambda db, seq_id, **kw: Reservation(seq_id, format_quote_number(seq_id)))
    r = client.post("/quotes", headers=auth_headers, json={"quote_seq_id": res["seqId"], "customer_name": "Late"})
    assert r.status_code == 409, r.text

    quotes = jprint("GET /quotes", client.get("/quotes", headers=auth_headers))
    assert [q["customer_name"] for q in quotes if q["quote_seq_id"] == res["seqId"]] == [None]
