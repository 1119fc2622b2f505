"""
Shared test fixtures for smbconnector tests.

This module provides common fixtures used across all test types:
- An in-memory SMB server with a client factory producing fake clients
- Connection, session manager and pool fixtures wired to the fake server
- Isolation from the real ~/.smbconnector/config.toml and SMBCONNECTOR_* env
"""

import pytest

from smbconnector.config import ConfigManager, ConnectionConfig, PoolConfig
from smbconnector.filesystem import SmbFileSystemConnection
from smbconnector.session import SessionManager, SessionPool
from tests.mocks.smb_mock import PASSWORD, FakeClientFactory, FakeSmbServer


# ============================================================================
# ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Never read the real config file or environment overrides."""
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", tmp_path / "no-such-config.toml")
    for key in ("HOST", "DOMAIN", "USERNAME", "PASSWORD", "SHARE_ROOT", "LOG_LEVEL"):
        monkeypatch.delenv(f"SMBCONNECTOR_{key}", raising=False)


# ============================================================================
# FAKE SERVER FIXTURES
# ============================================================================


@pytest.fixture
def server():
    """In-memory SMB server exposing the share 'share'."""
    server = FakeSmbServer(host="fileserver", shares=("share",))
    server.users["svc-ingest"] = PASSWORD
    return server


@pytest.fixture
def client_factory(server):
    """Factory producing clients connected to the fake server."""
    return FakeClientFactory(server)


@pytest.fixture
def connection_config():
    """Connection config pointing at the fake server's share."""
    return ConnectionConfig(
        host="fileserver",
        domain="CORP",
        username="svc-ingest",
        password=PASSWORD,
        share_root="share",
    )


@pytest.fixture
def manager(connection_config, client_factory):
    """SessionManager creating fake sessions."""
    return SessionManager(connection_config, client_factory=client_factory)


@pytest.fixture
def pool(manager):
    """Session pool over the fake server, shut down after the test."""
    pool = SessionPool(manager, PoolConfig(max_sessions=4, max_idle=2, acquire_timeout=2.0))
    yield pool
    pool.shutdown(timeout=0.2)


@pytest.fixture
def fs(pool) -> SmbFileSystemConnection:
    """Filesystem connection checked out from the pool for the whole test."""
    with pool.connection() as connection:
        yield connection
