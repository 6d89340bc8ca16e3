"""Plan, apply and audit migrations of photo/video/DVD collections into a dated archive."""

__version__ = "0.1.0"
