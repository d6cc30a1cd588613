"""
Quote number reservation.

Every reservation inserts one ``quote_number_sequence`` row and lets the
database assign the id. Uniqueness and ordering under concurrent requests come
from the store's autoincrement; there is no in-process counter or lock.
Reserved-but-unused numbers are simply burnt.
"""
from __future__ import annotations

import logging
from typing import NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from materi.errors import InvalidReservation, ReservationError, ReservationInUse
from materi.models.core import Quote, QuoteNumberSequence

log = logging.getLogger(__name__)

QUOTE_NUMBER_PREFIX = "Q-"
QUOTE_NUMBER_WIDTH = 6


class Reservation(NamedTuple):
    sequence_id: int
    quote_number: str


def format_quote_number(sequence_id: int) -> str:
    # zfill only widens: 1234567 -> "Q-1234567"
    return f"{QUOTE_NUMBER_PREFIX}{str(int(sequence_id)).zfill(QUOTE_NUMBER_WIDTH)}"


def reserve_next(db: Session) -> Reservation:
    """Insert a sequence row and return its id with the formatted number.

    Flushes but does not commit; the caller owns the transaction and rolls it
    back on ``ReservationError``.
    """
    row = QuoteNumberSequence()
    try:
        db.add(row)
        db.flush()
    except SQLAlchemyError as e:
        log.error("quote number reservation failed: %s", e)
        raise ReservationError("could not reserve a quote number") from e
    res = Reservation(row.id, format_quote_number(row.id))
    log.info("reserved quote number %s (seq %s)", res.quote_number, res.sequence_id)
    return res


def claim_reservation(db: Session, sequence_id: int, *, quote_id: str | None = None) -> Reservation:
    """Validate a client-held reservation before a quote is stamped with it."""
    row = db.get(QuoteNumberSequence, sequence_id)
    if row is None:
        raise InvalidReservation(f"unknown quote_seq_id: {sequence_id}")
    holder = db.query(Quote.id).filter(Quote.quote_seq_id == sequence_id).first()
    if holder is not None and holder[0] != quote_id:
        raise ReservationInUse(f"quote_seq_id {sequence_id} already used by another quote")
    return Reservation(row.id, format_quote_number(row.id))
