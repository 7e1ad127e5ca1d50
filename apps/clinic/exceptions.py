# apps/clinic/exceptions.py


class ConfigurationGap(Exception):
    """Calendar data cannot say whether/when the clinic opens on a date (treated as closed)."""


class SafetyLimitReached(Exception):
    """The business-day walker scanned its maximum window without finishing."""

    def __init__(self, message: str, *, scanned_days: int, counted_days: int):
        super().__init__(message)
        self.scanned_days = scanned_days
        self.counted_days = counted_days
