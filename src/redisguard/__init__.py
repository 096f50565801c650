"""Redis-backed distributed locks and atomic sequences."""

__all__ = ["__version__"]

__version__ = "0.1.0"
