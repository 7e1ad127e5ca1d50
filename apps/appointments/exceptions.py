# apps/appointments/exceptions.py
from typing import Optional


class BookingError(Exception):
    """
    Base for booking refusals that the API turns into a structured response.
    `code` is machine-readable, `detail` is for humans, `hint` suggests a retry.
    """

    code = "booking_error"
    http_status = 409
    default_detail = "The booking could not be completed."
    default_hint = ""

    def __init__(self, detail: Optional[str] = None, *, code: Optional[str] = None, hint: Optional[str] = None):
        self.detail = detail or self.default_detail
        if code:
            self.code = code
        self.hint = self.default_hint if hint is None else hint
        super().__init__(self.detail)

    def as_payload(self) -> dict:
        payload = {"code": self.code, "detail": self.detail}
        if self.hint:
            payload["hint"] = self.hint
        return payload


class CapacityExceeded(BookingError):
    code = "capacity_exceeded"
    http_status = 409
    default_detail = "That time is fully booked."
    default_hint = "Pick another time or date."

    def __init__(self, detail: Optional[str] = None, *, full_at: Optional[str] = None, **kwargs):
        self.full_at = full_at
        if detail is None and full_at:
            detail = f"The {full_at} block is fully booked."
        super().__init__(detail, **kwargs)

    def as_payload(self) -> dict:
        payload = super().as_payload()
        payload["full_at"] = self.full_at
        return payload


class PreferredUnavailable(BookingError):
    code = "preferred_unavailable"
    http_status = 409
    default_detail = "Your preferred dentist is already booked at that time."
    default_hint = "Retry with honor_preferred_dentist=false to be seen by any available dentist."


class SlotUnavailable(BookingError):
    code = "slot_unavailable"
    http_status = 422
    default_detail = "That time cannot be booked."


class InvalidTransition(BookingError):
    code = "invalid_status"
    http_status = 409
    default_detail = "The appointment is not in a state that allows this action."
