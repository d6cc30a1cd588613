"""Domain errors raised by services; routers map them onto HTTP status codes."""


class MateriError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ReservationError(MateriError):
    """The sequence row could not be inserted; no quote number was issued."""
    status_code = 503


class InvalidReservation(MateriError):
    status_code = 400


class ReservationInUse(MateriError):
    status_code = 409


class PricingMismatch(MateriError):
    status_code = 422

    def __init__(self, detail: str, fields: list[str]):
        super().__init__(detail)
        self.fields = fields


def as_http(e: MateriError):
    from fastapi import HTTPException

    if isinstance(e, PricingMismatch):
        return HTTPException(e.status_code, detail={"message": e.detail, "fields": e.fields})
    return HTTPException(e.status_code, detail=e.detail)
