"""
Unit tests for configuration and command-line parsing.
"""

import pytest

from nobleserver.config import ServerConfig
from nobleserver.__main__ import main, parse_config
from nobleserver.server import create_handler, create_listener, create_server
from nobleserver.core import Listener, SecureListener
from nobleserver.handlers import StaticFileHandler, CredentialHandler
from nobleserver.store import CredentialStoreError
from nobleserver.tls import TLSContextError


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        """Test the historical defaults."""
        config = ServerConfig()

        assert config.backlog == 10
        assert config.buffer_size == 2048
        assert config.timeout is None
        assert config.content_root == "www"
        assert config.index_file == "index.html"
        assert not config.is_secure

    def test_defaults_are_valid(self):
        ServerConfig().validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 70000},
        {"mode": "FTP"},
        {"mode": "https"},
        {"service": "proxy"},
        {"backlog": 0},
        {"buffer_size": 0},
        {"timeout": 0},
        {"index_file": "a/b.html"},
        {"index_file": ""},
    ])
    def test_validate_rejects(self, overrides):
        """Test fail-fast validation."""
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_from_env(self, monkeypatch):
        """Test environment variables."""
        monkeypatch.setenv("NOBLE_PORT", "9443")
        monkeypatch.setenv("NOBLE_MODE", "https")
        monkeypatch.setenv("NOBLE_SERVICE", "auth")
        monkeypatch.setenv("NOBLE_DATABASE", "/tmp/creds.db")
        monkeypatch.setenv("NOBLE_TIMEOUT", "2.5")

        config = ServerConfig.from_env()

        assert config.port == 9443
        assert config.is_secure
        assert config.service == "auth"
        assert config.database == "/tmp/creds.db"
        assert config.timeout == 2.5

    def test_from_env_without_timeout(self, monkeypatch):
        monkeypatch.delenv("NOBLE_TIMEOUT", raising=False)

        assert ServerConfig.from_env().timeout is None


class TestCommandLine:
    """Tests for the nobleserver command."""

    def test_port_and_mode(self):
        """Test the two required arguments."""
        config = parse_config(["8080", "HTTP"])

        assert config.port == 8080
        assert config.mode == "HTTP"
        assert config.service == "static"

    def test_mode_is_case_insensitive(self):
        assert parse_config(["8443", "https"]).mode == "HTTPS"

    def test_options(self):
        """Test every option lands in the config."""
        config = parse_config([
            "9000", "HTTPS",
            "--service", "auth",
            "--host", "127.0.0.1",
            "--db", "creds.db",
            "--cert", "c.pem",
            "--key", "k.pem",
            "--timeout", "3",
            "--buffer-size", "512",
            "--log-level", "DEBUG",
        ])

        assert config.service == "auth"
        assert config.host == "127.0.0.1"
        assert config.database == "creds.db"
        assert (config.certfile, config.keyfile) == ("c.pem", "k.pem")
        assert config.timeout == 3.0
        assert config.buffer_size == 512
        assert config.log_level == "DEBUG"

    def test_environment_supplies_defaults(self, monkeypatch):
        """Test that NOBLE_* values are used unless overridden."""
        monkeypatch.setenv("NOBLE_CONTENT_ROOT", "/srv/www")

        assert parse_config(["80", "HTTP"]).content_root == "/srv/www"
        assert parse_config(["80", "HTTP", "--root", "site"]).content_root == "site"

    @pytest.mark.parametrize("argv", [
        [],
        ["8080"],
        ["eighty", "HTTP"],
        ["8080", "GOPHER"],
        ["99999", "HTTP"],
        ["8080", "HTTP", "--service", "proxy"],
    ])
    def test_bad_arguments_exit_with_usage(self, argv, capsys):
        """Test that a bad command line is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            parse_config(argv)

        assert exc_info.value.code == 2
        assert "usage:" in capsys.readouterr().err

    def test_missing_tls_files_exit_nonzero(self, tmp_path, capsys):
        """Test that TLS bootstrap failure is reported before binding."""
        status = main([
            "0", "HTTPS",
            "--cert", str(tmp_path / "missing.crt"),
            "--key", str(tmp_path / "missing.key"),
        ])

        assert status == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_credential_database_exit_nonzero(self, tmp_path, capsys):
        """Test that the auth service refuses to start without its database."""
        status = main(["0", "HTTP", "--service", "auth", "--db", str(tmp_path / "typo.db")])

        assert status == 1
        assert "Credential database not found" in capsys.readouterr().err


class TestFactories:
    """Tests for building a server from configuration."""

    def test_static_plain(self, content_root):
        config = ServerConfig(content_root=str(content_root))

        assert type(create_listener(config)) is Listener
        assert isinstance(create_handler(config), StaticFileHandler)

    def test_auth_secure(self, credential_store, tls_files):
        config = ServerConfig(
            mode="HTTPS",
            service="auth",
            database=str(credential_store.path),
            certfile=str(tls_files[0]),
            keyfile=str(tls_files[1]),
        )

        assert isinstance(create_listener(config), SecureListener)
        assert isinstance(create_handler(config), CredentialHandler)

    def test_create_server_validates(self):
        with pytest.raises(ValueError):
            create_server(ServerConfig(mode="SMTP"))

    def test_create_server_tls_failure(self, tmp_path):
        config = ServerConfig(mode="HTTPS", certfile=str(tmp_path / "x"), keyfile=str(tmp_path / "y"))

        with pytest.raises(TLSContextError):
            create_server(config)

    def test_missing_credential_database_is_not_created(self, tmp_path):
        """Test that a mistyped --db is a startup error, not an empty database."""
        database = tmp_path / "typo.db"

        with pytest.raises(CredentialStoreError):
            create_server(ServerConfig(service="auth", database=str(database)))

        assert not database.exists()
