"""Custom exceptions for the SMB connector."""


class SmbConnectorError(Exception):
    """Base exception for SMB connector errors."""

    pass


class SmbConnectionError(SmbConnectorError):
    """Could not establish or keep an authenticated SMB session.

    Carries the connection context (never the password) so callers can
    report which endpoint failed.
    """

    MESSAGE_MASK = (
        "Could not establish SMB connection (host: '{host}', domain: {domain}, "
        "user: {username}, share root: '{share_root}', logLevel: '{log_level}'): {cause}"
    )

    def __init__(
        self,
        cause: str,
        host: str | None = None,
        domain: str | None = None,
        username: str | None = None,
        share_root: str | None = None,
        log_level: str | None = None,
    ):
        self.host = host
        self.domain = domain
        self.username = username
        self.share_root = share_root
        self.log_level = log_level
        self.cause = cause
        super().__init__(
            self.MESSAGE_MASK.format(
                host=host,
                domain=domain,
                username=username,
                share_root=share_root,
                log_level=log_level,
                cause=cause,
            )
        )


class ConfigurationError(SmbConnectorError):
    """Invalid configuration, detected before any I/O."""

    pass


class OperationError(SmbConnectorError):
    """A single file operation failed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class FileAlreadyExistsError(OperationError):
    """Target exists and overwriting was not requested."""

    pass


class IllegalPathError(OperationError):
    """Path is malformed or escapes the share root."""

    pass


class PostActionError(SmbConnectorError):
    """A post-processing action failed after delivery."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class InvalidSessionReturnError(SmbConnectorError):
    """An invalid session was returned to the pool."""

    pass


class PoolExhaustedError(SmbConnectorError):
    """No session became available within the acquire timeout."""

    pass


class LockTimeoutError(SmbConnectorError):
    """Path lock could not be acquired within the timeout period."""
