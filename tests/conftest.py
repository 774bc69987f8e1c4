"""
pytest configuration and fixtures.
"""

import socket
import ssl
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nobleserver import ConnectionLoop, ServerConfig
from nobleserver.core import Transport, Listener, SecureListener
from nobleserver.handlers import Handler, StaticFileHandler, CredentialHandler
from nobleserver.store import CredentialStore
from nobleserver.tls import build_tls_context


INDEX_HTML = b"<h1>hi</h1>"


# =============================================================================
# DATA FIXTURES
# =============================================================================

@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Content root holding index.html, about.html and a subdirectory."""
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "about.html").write_bytes(b"<p>about</p>")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x01\x02")
    (root / "css").mkdir()
    (root / "css" / "site.css").write_bytes(b"body {}")
    return root


@pytest.fixture
def credentials() -> dict:
    """In-memory credential lookup."""
    return {"alice": "deadbeef", "carol": "c0ffee"}


@pytest.fixture
def credential_store(tmp_path: Path) -> CredentialStore:
    """SQLite credential store with alice provisioned."""
    store = CredentialStore(tmp_path / "users.db")
    store.add("alice", "deadbeef")
    return store


# =============================================================================
# FAKE TRANSPORT
# =============================================================================

class FakeTransport(Transport):
    """Transport that replays canned input and records everything else."""

    def __init__(self, incoming: bytes = b"", fail_send: bool = False):
        self.incoming = incoming
        self.fail_send = fail_send
        self.sent: List[bytes] = []
        self.receive_sizes: List[int] = []
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def receive(self, max_bytes: int) -> bytes:
        self.receive_sizes.append(max_bytes)
        return self.incoming[:max_bytes]

    def send(self, data: bytes) -> int:
        if self.fail_send:
            return 0
        self.sent.append(data)
        return len(data)

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_transport_factory():
    """Build FakeTransports: fake_transport_factory(b"GET / HTTP/1.1")."""
    return FakeTransport


# =============================================================================
# TLS FIXTURES
# =============================================================================

def _write_self_signed(directory: Path, common_name: str = "localhost"):
    """Write a throwaway EC key + self-signed certificate, return both paths."""
    from cryptography import x509
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import ec
    from cryptography.x509.oid import NameOID

    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=1))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(common_name)]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )

    cert_path = directory / f"{common_name}.crt"
    key_path = directory / f"{common_name}.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    return cert_path, key_path


@pytest.fixture(scope="session")
def tls_files(tmp_path_factory):
    """(certfile, keyfile) for a self-signed localhost certificate."""
    return _write_self_signed(tmp_path_factory.mktemp("tls"))


@pytest.fixture(scope="session")
def other_tls_files(tmp_path_factory):
    """A second, unrelated certificate/key pair."""
    return _write_self_signed(tmp_path_factory.mktemp("tls-other"), "example.test")


@pytest.fixture
def client_tls_context() -> ssl.SSLContext:
    """Client context that accepts the self-signed test certificate."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


# =============================================================================
# LIVE SERVER
# =============================================================================

class TestServer:
    """Test server helper that runs a ConnectionLoop in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, loop: ConnectionLoop):
        self.loop = loop
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.loop.listener.address[1]

    def start(self):
        """Start the loop and wait until it is listening."""
        self._thread = threading.Thread(target=self.loop.run, daemon=True)
        self._thread.start()

        for _ in range(50):  # 5 seconds max
            if self.loop.listener.is_bound:
                return
            time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the loop."""
        self.loop.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, data: bytes, tls: Optional[ssl.SSLContext] = None) -> bytes:
        """Send one request and read the response until the server closes."""
        return exchange(self.port, data, tls)


def exchange(port: int, data: bytes, tls: Optional[ssl.SSLContext] = None) -> bytes:
    """Connect, send data, return everything received before EOF."""
    raw = socket.create_connection(("127.0.0.1", port), timeout=5.0)
    sock = tls.wrap_socket(raw, server_hostname="localhost") if tls else raw
    with sock:
        if data:
            sock.sendall(data)
        elif not tls:
            sock.shutdown(socket.SHUT_WR)  # silent client: EOF straight away

        chunks = []
        while True:
            try:
                chunk = sock.recv(4096)
            except (ssl.SSLEOFError, ConnectionResetError):
                break
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)


def _live_server(listener: Listener, handler: Handler, config: ServerConfig):
    server = TestServer(ConnectionLoop(listener, handler, config))
    server.start()
    return server


@pytest.fixture
def server_config() -> ServerConfig:
    """Loopback config on an OS-assigned port with a safety timeout."""
    return ServerConfig(host="127.0.0.1", port=0, timeout=5.0, log_level="WARNING")


@pytest.fixture
def static_server(server_config, content_root) -> Generator[TestServer, None, None]:
    """Static service over plain TCP."""
    server = _live_server(
        Listener(server_config), StaticFileHandler(content_root), server_config
    )
    yield server
    server.stop()


@pytest.fixture
def secure_static_server(server_config, content_root, tls_files) -> Generator[TestServer, None, None]:
    """Static service over TLS."""
    server_config.mode = "HTTPS"
    context = build_tls_context(str(tls_files[0]), str(tls_files[1]))
    server = _live_server(
        SecureListener(server_config, context), StaticFileHandler(content_root), server_config
    )
    yield server
    server.stop()


@pytest.fixture
def auth_server(server_config, credential_store) -> Generator[TestServer, None, None]:
    """Credential service over plain TCP."""
    server_config.service = "auth"
    server = _live_server(
        Listener(server_config), CredentialHandler(credential_store), server_config
    )
    yield server
    server.stop()


@pytest.fixture
def secure_auth_server(server_config, credential_store, tls_files) -> Generator[TestServer, None, None]:
    """Credential service over TLS."""
    server_config.mode = "HTTPS"
    server_config.service = "auth"
    context = build_tls_context(str(tls_files[0]), str(tls_files[1]))
    server = _live_server(
        SecureListener(server_config, context), CredentialHandler(credential_store), server_config
    )
    yield server
    server.stop()
