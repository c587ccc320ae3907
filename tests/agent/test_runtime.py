# tests/agent/test_runtime.py
"""
Tests for agent wiring and the daemon entry point
"""

from unittest.mock import Mock, patch

import pytest

from node_agent import main as agent_main
from node_agent.agent import AgentPhase
from node_agent.command import CommandError
from node_agent.config import AgentSettings
from node_agent.firewall import FirewallError
from node_agent.metrics import MetricsExporter
from node_agent.runtime import new_agent
from node_agent.state import StateStore
from node_agent.wireguard.config_builder import PeerRecord


def probe_missing():
    return CommandError(["iptables", "-C"], 1, "rule missing")


@pytest.fixture
def runner(make_runner):
    return make_runner({
        ("wg", "genkey"): "private-key\n",
        ("wg", "pubkey"): "public-key\n",
        ("iptables", "-C"): probe_missing(),
        ("iptables", "-t", "nat", "-C"): probe_missing(),
    })


class TestNewAgent:
    """Tests for new_agent"""

    def test_builds_agent(self, agent_env, runner, tmp_path):
        settings = AgentSettings(_env_file=None, **agent_env)

        agent, exporter = new_agent(settings, runner)

        conf = tmp_path / "wireguard" / "wg0.conf"
        assert agent.phase == AgentPhase.INITIALIZING
        assert isinstance(exporter, MetricsExporter)
        assert "PrivateKey = private-key" in conf.read_text()
        assert (tmp_path / "wireguard" / "private.key").exists()
        assert not runner.commands("iptables")

    def test_applies_requested_firewall_rules(self, agent_env, runner):
        settings = AgentSettings(_env_file=None, WG_ENABLE_NAT=True, WG_ENABLE_KILLSWITCH=True, **agent_env)

        new_agent(settings, runner)

        appended = [c for c in runner.commands("iptables") if "-A" in c]
        assert len(appended) == 5

    def test_firewall_failure_aborts_startup(self, agent_env, make_runner):
        """Test a requested security control that fails is fatal"""
        runner = make_runner({
            ("wg", "genkey"): "k\n",
            ("wg", "pubkey"): "p\n",
            ("iptables",): CommandError(["iptables"], 3, "iptables not permitted"),
        })
        settings = AgentSettings(_env_file=None, WG_ENABLE_KILLSWITCH=True, **agent_env)

        with pytest.raises(FirewallError):
            new_agent(settings, runner)

    def test_restores_persisted_peers(self, agent_env, runner, tmp_path):
        """Test the last applied peers are rendered before the loop starts"""
        StateStore(agent_env["AGENT_STATE_DIR"]).save_peers(
            [PeerRecord(public_key="restored-peer", allowed_ips=["10.8.0.9/32"])]
        )
        settings = AgentSettings(_env_file=None, **agent_env)

        new_agent(settings, runner)

        text = (tmp_path / "wireguard" / "wg0.conf").read_text()
        assert "PublicKey = restored-peer" in text
        assert not any(c[:2] == ("wg", "syncconf") for c in runner.calls)


class TestMain:
    """Tests for the relay-agent entry point"""

    def test_invalid_configuration(self, tmp_path, monkeypatch):
        for key in ("CONTROL_PLANE_URL", "NODE_PROVISION_TOKEN"):
            monkeypatch.delenv(key, raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("WG_INTERFACE=wg0\n")

        assert agent_main.main(["--env-file", str(env_file)]) == 2

    def test_runs_agent_and_metrics_server(self, agent_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("".join(f"{k}={v}\n" for k, v in agent_env.items()))
        agent = Mock()
        server = Mock()

        with patch.object(agent_main, "new_agent", return_value=(agent, Mock())), \
                patch.object(agent_main, "MetricsServer", return_value=server), \
                patch.object(agent_main.signal, "signal"):
            code = agent_main.main(["--env-file", str(env_file), "--log-level", "debug"])

        assert code == 0
        agent.run.assert_called_once()
        server.start.assert_called_once()
        server.stop.assert_called_once()

    def test_init_failure(self, agent_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("".join(f"{k}={v}\n" for k, v in agent_env.items()))

        with patch.object(agent_main, "new_agent", side_effect=FirewallError(["FORWARD"], RuntimeError("x"), [])):
            assert agent_main.main(["--env-file", str(env_file)]) == 1
