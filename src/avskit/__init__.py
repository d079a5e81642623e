"""Integrity and archival toolkit for AVS node packages and instance backups."""

__version__ = "0.3.0"

__all__ = ["__version__"]
