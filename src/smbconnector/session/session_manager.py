"""Session Manager - create, validate and tear down SMB sessions.

Philosophy:
- Credentials live in one place (the ConnectionConfig)
- validate() never raises; it reports a structured result
- An invalid session must never be handed back to the pool

Public API (the "studs"):
    Session: One live client handle plus the config it came from
    ValidationResult: Outcome of a liveness probe
    SessionManager: connect / disconnect / validate / on_return
"""

import itertools
import logging
import time
from dataclasses import dataclass, field

from smbconnector.client import RemoteSessionClient, SmbClientFactory
from smbconnector.config import ConnectionConfig
from smbconnector.exceptions import InvalidSessionReturnError, SmbConnectionError
from smbconnector.log_sanitizer import LogSanitizer
from smbconnector.models import ValidationResult

logger = logging.getLogger(__name__)

_session_ids = itertools.count(1)


@dataclass(eq=False)
class Session:
    """Wrapper for one authenticated client.

    Attributes:
        client: Remote session client
        config: Connection config the session was created from
        session_id: Process-unique id (for logs)
        created_at: Creation timestamp
        closed: Set once disconnect() ran
    """

    client: RemoteSessionClient
    config: ConnectionConfig
    session_id: int = field(default_factory=lambda: next(_session_ids))
    created_at: float = field(default_factory=time.time)
    closed: bool = False

    def __repr__(self) -> str:
        return f"Session(id={self.session_id}, host='{self.config.host}', closed={self.closed})"


class SessionManager:
    """Create and validate sessions for one ConnectionConfig.

    Example:
        >>> manager = SessionManager(ConnectionConfig(host="fs01", share_root="data"))
        >>> session = manager.connect()
        >>> manager.validate(session).valid
        True
        >>> manager.disconnect(session)
    """

    def __init__(self, config: ConnectionConfig, client_factory: SmbClientFactory | None = None):
        """Initialize session manager.

        Args:
            config: Connection settings (credentials included)
            client_factory: Factory creating remote clients (default: smbprotocol)
        """
        self.config = config
        self.client_factory = client_factory or SmbClientFactory()

    @property
    def working_directory(self) -> str | None:
        """The share root every relative path is resolved against."""
        return self.config.share_root

    def connect(self, config: ConnectionConfig | None = None) -> Session:
        """Create and authenticate a new session.

        Args:
            config: Settings to connect with (default: the manager's config)

        Returns:
            Authenticated Session

        Raises:
            SmbConnectionError: Client creation or authentication failed
        """
        config = config or self.config
        logger.debug(f"Connecting to SMB server ({config.describe()})")

        try:
            client = self.client_factory.create_instance(
                config.host,
                config.share_root,
                config.log_level,
                port=config.port,
                connection_timeout=config.connection_timeout,
            )
            client.login(config.domain, config.username, config.password)
        except Exception as e:
            raise self._connection_error(config, e) from e

        session = Session(client=client, config=config)
        logger.info(f"Connected to {config.host} (session {session.session_id})")
        return session

    def disconnect(self, session: Session) -> None:
        """Disconnect a session. Errors are logged, never raised."""
        if session.closed:
            return
        session.closed = True
        try:
            session.client.disconnect()
            logger.debug(f"Disconnected session {session.session_id}")
        except Exception as e:
            logger.debug(f"Error while disconnecting session {session.session_id}: {e}")

    def validate(self, session: Session) -> ValidationResult:
        """Probe session liveness.

        Returns:
            ValidationResult (never raises)
        """
        if session.closed:
            return ValidationResult.failure("Session was disconnected")
        try:
            if session.client.is_alive():
                return ValidationResult.success()
            return ValidationResult.failure(f"SMB session to '{session.config.host}' is not alive")
        except Exception as e:
            message = LogSanitizer.create_safe_error_message(e, secrets=(self.config.password,))
            return ValidationResult.failure(f"Liveness probe failed: {message}", cause=e)

    def on_return(self, session: Session) -> None:
        """Pool-return hook: only valid sessions may go back to the pool.

        Raises:
            InvalidSessionReturnError: Session failed validation
        """
        result = self.validate(session)
        if not result.valid:
            logger.debug(
                f"Session {session.session_id} is not valid ({result.message}), "
                "it is destroyed and not returned to the pool"
            )
            raise InvalidSessionReturnError(
                f"Session {session.session_id} that is being returned to the pool is invalid: "
                f"{result.message}"
            )

    def _connection_error(self, config: ConnectionConfig, error: Exception) -> SmbConnectionError:
        cause = LogSanitizer.create_safe_error_message(error, secrets=(config.password,))
        return SmbConnectionError(
            cause,
            host=config.host,
            domain=config.domain,
            username=config.username,
            share_root=config.share_root,
            log_level=config.log_level.value,
        )


__all__ = ["Session", "SessionManager", "ValidationResult"]
