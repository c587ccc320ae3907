# tests/agent/conftest.py
"""
Pytest fixtures for Agent tests
Shared configuration and fake collaborators
"""

import pytest
from pathlib import Path
from typing import Dict, List, Tuple, Union

from node_agent.wireguard.config_builder import InterfaceConfig, PeerRecord

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# 44-char base64 WireGuard keys
PEER_KEY_A = "A" * 43 + "="
PEER_KEY_B = "B" * 43 + "="
PEER_KEY_C = "C" * 43 + "="


class FakeRunner:
    """
    Records every command and answers from a table

    Keys are argument prefixes, e.g. ("wg", "genkey"). A value that is an
    exception instance is raised instead of returned.
    """

    def __init__(self, responses: Dict[Tuple[str, ...], Union[str, Exception]] = None):
        self.responses = dict(responses or {})
        self.calls: List[Tuple[str, ...]] = []
        self.inputs: List[str] = []

    def __call__(self, name: str, *args: str, input: str = None) -> str:
        cmd = (name, *args)
        self.calls.append(cmd)
        if input is not None:
            self.inputs.append(input)

        # Longest matching prefix wins
        for prefix in sorted(self.responses, key=len, reverse=True):
            if cmd[:len(prefix)] == prefix:
                result = self.responses[prefix]
                if isinstance(result, Exception):
                    raise result
                return result
        return ""

    def commands(self, name: str) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Factory for a FakeRunner with canned responses"""
    return FakeRunner


@pytest.fixture
def interface_config(tmp_path):
    """Interface settings writing into a temp config dir"""
    return InterfaceConfig(
        name="wg0",
        config_dir=str(tmp_path / "wireguard"),
        listen_port=51820,
        address="10.8.0.1/24",
        dns=("1.1.1.1", "9.9.9.9"),
        mtu=1420,
        persistent_keepalive=25,
    )


@pytest.fixture
def sample_peers():
    return [
        PeerRecord(public_key=PEER_KEY_A, allowed_ips=["10.8.0.2/32"]),
        PeerRecord(
            public_key=PEER_KEY_B,
            preshared_key="psk-b",
            allowed_ips=["10.8.0.3/32", "fd00::3/128"],
            endpoint="198.51.100.7:51820",
            persistent_keepalive=15,
        ),
    ]


@pytest.fixture
def tls_files():
    """Paths to a CA, a client cert signed by it and keys (matching and not)"""
    return {
        "ca": str(FIXTURES_DIR / "ca.pem"),
        "cert": str(FIXTURES_DIR / "client.pem"),
        "key": str(FIXTURES_DIR / "client.key"),
        "other_key": str(FIXTURES_DIR / "other.key"),
    }


@pytest.fixture
def agent_env(tmp_path, tls_files):
    """Minimal valid AgentSettings keyword arguments"""
    return {
        "CONTROL_PLANE_URL": "https://cp.example.net",
        "NODE_PROVISION_TOKEN": "provision-secret",
        "MTLS_CA_FILE": tls_files["ca"],
        "MTLS_CLIENT_CERT_FILE": tls_files["cert"],
        "MTLS_CLIENT_KEY_FILE": tls_files["key"],
        "AGENT_STATE_DIR": str(tmp_path / "state"),
        "WG_CONFIG_DIR": str(tmp_path / "wireguard"),
    }
