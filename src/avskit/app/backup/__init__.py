"""Backup creation, listing and restore."""

from .service import BackupService, BackupSummary  # noqa: F401

__all__ = ["BackupService", "BackupSummary"]
