"""
Unit tests for TLS context bootstrap.
"""

import ssl

import pytest

from nobleserver.tls import TLSContextError, build_tls_context


class TestBuildTLSContext:
    """Tests for build_tls_context()."""

    def test_valid_pair(self, tls_files):
        """Test loading a matching certificate and key."""
        context = build_tls_context(str(tls_files[0]), str(tls_files[1]))

        assert isinstance(context, ssl.SSLContext)
        assert context.minimum_version >= ssl.TLSVersion.TLSv1_2

    def test_missing_certificate(self, tmp_path, tls_files):
        with pytest.raises(TLSContextError):
            build_tls_context(str(tmp_path / "nope.crt"), str(tls_files[1]))

    def test_mismatched_key(self, tls_files, other_tls_files):
        """Test that a key from another pair is rejected."""
        with pytest.raises(TLSContextError):
            build_tls_context(str(tls_files[0]), str(other_tls_files[1]))

    def test_garbage_pem(self, tmp_path):
        cert = tmp_path / "bad.crt"
        cert.write_text("not a certificate")

        with pytest.raises(TLSContextError):
            build_tls_context(str(cert), str(cert))
