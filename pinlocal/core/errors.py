"""Error types shared by the core and the shell."""


class PinLocalError(Exception):
    """Base class for all PinLocal errors."""


class InvalidCategory(PinLocalError, ValueError):
    """A report category code is not in the closed category set."""

    def __init__(self, code: object) -> None:
        self.code = code
        super().__init__(f"Unknown report category: {code!r}")


class MalformedRecord(PinLocalError, ValueError):
    """A persisted record could not be parsed."""


class StoreUnavailable(PinLocalError):
    """The persistence backend failed to read or write."""

    def __init__(self, key: str, message: str) -> None:
        self.key = key
        super().__init__(f"Persistence failure for '{key}': {message}")
