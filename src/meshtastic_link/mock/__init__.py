"""Mock implementations for testing and development."""

from .transport import MockAdminTransport

__all__ = ["MockAdminTransport"]
