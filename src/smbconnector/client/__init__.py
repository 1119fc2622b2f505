"""Remote session clients.

Public API:
    RemoteSessionClient: Protocol every client implements
    SmbProtocolClient: Client over the smbprotocol distribution
    SmbClientFactory: Creates clients for the session manager
"""

from .base import RemoteSessionClient
from .smb_client import SmbClientFactory, SmbProtocolClient

__all__ = ["RemoteSessionClient", "SmbClientFactory", "SmbProtocolClient"]
