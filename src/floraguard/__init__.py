"""FloraGuard: local-first plant care assistant."""

__version__ = "0.1.0"
