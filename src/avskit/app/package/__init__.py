"""Package validation."""

from .service import PackageHandler, check_package  # noqa: F401

__all__ = ["PackageHandler", "check_package"]
