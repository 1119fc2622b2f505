"""Session lifecycle: creation, validation and pooling of SMB sessions."""

from smbconnector.session.pool import SessionPool
from smbconnector.session.session_manager import Session, SessionManager, ValidationResult

__all__ = ["Session", "SessionManager", "SessionPool", "ValidationResult"]
