# node_agent/transport/mtls.py
"""
Mutual TLS transport for Control Plane calls

Builds a requests.Session that trusts only the configured CA, presents
the node's client certificate, refuses anything older than TLS 1.2 and
applies a fixed timeout to every request. No network call is made while
building it.
"""

import os
import ssl
import logging
import tempfile
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger('relay-agent.transport')

DEFAULT_TIMEOUT = 10.0  # seconds


class TransportConfigError(Exception):
    """Missing or unusable TLS material"""


def _resolve_pem(inline: Optional[str], path: Optional[str], what: str) -> str:
    """Inline PEM wins over a file path; one of them must be non-empty"""
    if inline:
        return inline
    if path:
        try:
            content = Path(path).read_text()
        except OSError as e:
            raise TransportConfigError(f"read {what} file: {e}") from e
        if content.strip():
            return content
    raise TransportConfigError(f"{what} missing")


def build_ssl_context(
    ca_pem: Optional[str] = None,
    ca_file: Optional[str] = None,
    cert_pem: Optional[str] = None,
    cert_file: Optional[str] = None,
    key_pem: Optional[str] = None,
    key_file: Optional[str] = None,
) -> ssl.SSLContext:
    """Create a client SSLContext pinned to the given CA with a client key pair"""
    ca = _resolve_pem(ca_pem, ca_file, "mtls ca certificate")
    cert = _resolve_pem(cert_pem, cert_file, "client certificate")
    key = _resolve_pem(key_pem, key_file, "client key")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    try:
        context.load_verify_locations(cadata=ca)
    except (ssl.SSLError, ValueError) as e:
        raise TransportConfigError(f"failed to load ca cert: {e}") from e

    # load_cert_chain only reads files; stage the pair in a private temp dir
    with tempfile.TemporaryDirectory(prefix="relay-agent-tls-") as tmp:
        cert_path = os.path.join(tmp, "client.pem")
        key_path = os.path.join(tmp, "client.key")
        for path, content in ((cert_path, cert), (key_path, key)):
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "w") as f:
                f.write(content)
        try:
            context.load_cert_chain(cert_path, key_path)
        except ssl.SSLError as e:
            raise TransportConfigError(f"load client key pair: {e}") from e

    return context


class MTLSAdapter(HTTPAdapter):
    """HTTPAdapter bound to an SSLContext and a default timeout"""

    def __init__(self, ssl_context: ssl.SSLContext, timeout: float = DEFAULT_TIMEOUT, **kwargs):
        self.ssl_context = ssl_context
        self.timeout = timeout
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs["ssl_context"] = self.ssl_context
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, *args, **kwargs):
        kwargs["ssl_context"] = self.ssl_context
        return super().proxy_manager_for(*args, **kwargs)

    def send(self, request, **kwargs):
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def new_mtls_session(
    ca_pem: Optional[str] = None,
    ca_file: Optional[str] = None,
    cert_pem: Optional[str] = None,
    cert_file: Optional[str] = None,
    key_pem: Optional[str] = None,
    key_file: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Session:
    """
    Build the HTTPS session used for every Control Plane call

    Raises:
        TransportConfigError: if any TLS material is missing or does not parse
    """
    context = build_ssl_context(ca_pem, ca_file, cert_pem, cert_file, key_pem, key_file)

    session = requests.Session()
    session.mount("https://", MTLSAdapter(context, timeout=timeout))
    logger.info(f"mTLS session ready (timeout {timeout}s)")
    return session
