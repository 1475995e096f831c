"""PinLocal - geofenced alert matching for ephemeral, anonymous reports."""

__version__ = "1.0.0"
