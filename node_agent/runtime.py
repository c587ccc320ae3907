# node_agent/runtime.py
"""
Agent wiring
Builds the control loop and its collaborators from AgentSettings
"""

import logging
from typing import Tuple

from .agent import NodeAgent
from .client import ControlPlaneClient
from .command import CommandRunner, run_command
from .config import AgentSettings
from .firewall.iptables import IPTablesManager
from .metrics.exporter import MetricsExporter
from .retry import DelayFunc, sleep_delay
from .state.store import StateStore
from .transport.mtls import new_mtls_session
from .wireguard.manager import WireGuardManager, ensure_keypair

logger = logging.getLogger('relay-agent.runtime')


def new_agent(
    settings: AgentSettings,
    runner: CommandRunner = run_command,
    delay: DelayFunc = sleep_delay,
) -> Tuple[NodeAgent, MetricsExporter]:
    """
    Create a ready-to-run agent

    Setup failures raise: a requested NAT or kill-switch rule set that did
    not apply must not be treated as success.
    """
    session = new_mtls_session(
        ca_pem=settings.MTLS_CA_PEM,
        ca_file=settings.MTLS_CA_FILE,
        cert_pem=settings.MTLS_CLIENT_CERT,
        cert_file=settings.MTLS_CLIENT_CERT_FILE,
        key_pem=settings.MTLS_CLIENT_KEY,
        key_file=settings.MTLS_CLIENT_KEY_FILE,
        timeout=settings.CONTROL_PLANE_TIMEOUT,
    )
    client = ControlPlaneClient(
        session,
        settings.CONTROL_PLANE_URL,
        token=settings.NODE_PROVISION_TOKEN,
        register_path=settings.CONTROL_PLANE_REGISTER_PATH,
        health_path=settings.CONTROL_PLANE_HEALTH_PATH,
    )

    private_key = ensure_keypair(settings.private_key_file, runner)
    wg_manager = WireGuardManager(settings.to_interface_config(private_key), runner)
    config_path = wg_manager.ensure_base_config()

    firewall = IPTablesManager(settings.WG_INTERFACE, runner)
    if settings.WG_ENABLE_NAT:
        firewall.apply_nat_rules()
    if settings.WG_ENABLE_KILLSWITCH:
        firewall.enable_kill_switch()

    agent = NodeAgent(
        client,
        poll_interval=settings.AGENT_POLL_INTERVAL,
        max_retry=settings.AGENT_MAX_RETRY_INTERVAL,
        delay=delay,
    )

    store = StateStore(settings.AGENT_STATE_DIR)
    agent.with_state(store)
    agent.with_wireguard(wg_manager, config_path, up_fn=wg_manager.up, sync_fn=wg_manager.sync_peers)

    exporter = MetricsExporter()
    agent.with_metrics(exporter)

    peers = store.load_peers()
    if peers:
        agent.restore_peers(peers)

    logger.info(f"Agent ready for interface {settings.WG_INTERFACE} (state dir {store.dir})")
    return agent, exporter
