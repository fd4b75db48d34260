"""signal-router: route chat trading signals to storage and notifications."""

__version__ = "0.1.0"
