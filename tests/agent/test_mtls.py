# tests/agent/test_mtls.py
"""
Unit Tests for the mutual TLS transport
"""

import ssl
from pathlib import Path

import pytest
import requests

from node_agent.transport import TransportConfigError, build_ssl_context, new_mtls_session
from node_agent.transport.mtls import MTLSAdapter


class TestBuildSSLContext:
    """Tests for build_ssl_context"""

    def test_from_files(self, tls_files):
        context = build_ssl_context(
            ca_file=tls_files["ca"], cert_file=tls_files["cert"], key_file=tls_files["key"],
        )

        assert isinstance(context, ssl.SSLContext)
        assert context.minimum_version == ssl.TLSVersion.TLSv1_2
        assert context.verify_mode == ssl.CERT_REQUIRED

    def test_inline_pem_takes_precedence(self, tls_files, tmp_path):
        """Test inline material is used even if the file path is unusable"""
        context = build_ssl_context(
            ca_pem=Path(tls_files["ca"]).read_text(),
            ca_file=str(tmp_path / "missing.pem"),
            cert_pem=Path(tls_files["cert"]).read_text(),
            key_pem=Path(tls_files["key"]).read_text(),
        )

        assert isinstance(context, ssl.SSLContext)

    def test_missing_ca(self, tls_files):
        with pytest.raises(TransportConfigError, match="ca"):
            build_ssl_context(cert_file=tls_files["cert"], key_file=tls_files["key"])

    def test_missing_client_key(self, tls_files):
        with pytest.raises(TransportConfigError, match="client key"):
            build_ssl_context(ca_file=tls_files["ca"], cert_file=tls_files["cert"])

    def test_unreadable_file(self, tls_files, tmp_path):
        with pytest.raises(TransportConfigError):
            build_ssl_context(
                ca_file=str(tmp_path / "nope.pem"),
                cert_file=tls_files["cert"], key_file=tls_files["key"],
            )

    def test_garbage_ca(self, tls_files):
        with pytest.raises(TransportConfigError):
            build_ssl_context(
                ca_pem="not a certificate",
                cert_file=tls_files["cert"], key_file=tls_files["key"],
            )

    def test_mismatched_key_pair(self, tls_files):
        """Test a key that does not belong to the certificate fails fast"""
        with pytest.raises(TransportConfigError, match="key pair"):
            build_ssl_context(
                ca_file=tls_files["ca"], cert_file=tls_files["cert"], key_file=tls_files["other_key"],
            )


class TestNewMTLSSession:
    def test_mounts_adapter_with_timeout(self, tls_files):
        session = new_mtls_session(
            ca_file=tls_files["ca"], cert_file=tls_files["cert"], key_file=tls_files["key"],
            timeout=3.5,
        )

        adapter = session.get_adapter("https://cp.example.net/api")
        assert isinstance(session, requests.Session)
        assert isinstance(adapter, MTLSAdapter)
        assert adapter.timeout == 3.5
