"""TimeFlow - client time tracking with a crash-recoverable timer engine."""

__version__ = "0.4.0"
