# node_agent/config.py
"""
Agent Configuration
Uses pydantic-settings for environment variable management
"""

from pathlib import Path
from typing import Optional, Tuple

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .wireguard.config_builder import InterfaceConfig


class AgentSettings(BaseSettings):
    """
    Node agent settings loaded from environment variables
    An incomplete configuration fails at load time; the agent never starts
    half-configured.
    """

    # === Control Plane ===
    CONTROL_PLANE_URL: str = ""
    CONTROL_PLANE_REGISTER_PATH: str = "/api/v1/nodes/register"
    CONTROL_PLANE_HEALTH_PATH: str = "/api/v1/nodes/health"
    CONTROL_PLANE_TIMEOUT: float = 10.0  # seconds

    NODE_PROVISION_TOKEN: str = ""

    # === mTLS (inline PEM takes precedence over the file) ===
    MTLS_CA_PEM: Optional[str] = None
    MTLS_CA_FILE: Optional[str] = None
    MTLS_CLIENT_CERT: Optional[str] = None
    MTLS_CLIENT_CERT_FILE: Optional[str] = None
    MTLS_CLIENT_KEY: Optional[str] = None
    MTLS_CLIENT_KEY_FILE: Optional[str] = None

    # === Agent loop ===
    AGENT_POLL_INTERVAL: float = 30.0  # seconds
    AGENT_METRICS_ADDR: str = ":9102"
    AGENT_STATE_DIR: str = "/var/lib/vpn-agent"
    AGENT_MAX_RETRY_INTERVAL: float = 120.0  # seconds

    # === WireGuard ===
    WG_INTERFACE: str = "wg0"
    WG_PORT: int = 51820
    WG_ADDRESS: str = ""
    WG_DNS: str = ""  # comma separated
    WG_MTU: int = 0
    WG_KEEPALIVE: int = 25
    WG_CONFIG_DIR: str = "/etc/wireguard"
    WG_PRIVATE_KEY_FILE: Optional[str] = None
    WG_ENABLE_NAT: bool = False
    WG_ENABLE_KILLSWITCH: bool = False

    # === Logging ===
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def check_required(self) -> "AgentSettings":
        if not self.CONTROL_PLANE_URL:
            raise ValueError("control plane url is required")
        if not self.CONTROL_PLANE_URL.lower().startswith("https://"):
            raise ValueError("control plane url must use https")
        if not self.NODE_PROVISION_TOKEN:
            raise ValueError("provision token is required")
        if not (self.MTLS_CA_PEM or self.MTLS_CA_FILE):
            raise ValueError("mtls ca cert or file required")
        if not (self.MTLS_CLIENT_CERT or self.MTLS_CLIENT_CERT_FILE):
            raise ValueError("mtls client cert required")
        if not (self.MTLS_CLIENT_KEY or self.MTLS_CLIENT_KEY_FILE):
            raise ValueError("mtls client key required")
        if self.AGENT_POLL_INTERVAL <= 0:
            raise ValueError("poll interval must be greater than zero")
        if not self.AGENT_METRICS_ADDR:
            raise ValueError("agent metrics address required")
        if not self.AGENT_STATE_DIR:
            raise ValueError("agent state directory required")
        if self.AGENT_MAX_RETRY_INTERVAL <= 0:
            raise ValueError("agent max retry interval must be greater than zero")
        if not self.WG_INTERFACE:
            raise ValueError("wireguard interface name required")
        if not self.WG_CONFIG_DIR:
            raise ValueError("wireguard config directory required")
        if not 0 < self.WG_PORT <= 65535:
            raise ValueError("wireguard listen port invalid")
        return self

    @property
    def dns_servers(self) -> Tuple[str, ...]:
        return tuple(s.strip() for s in self.WG_DNS.split(",") if s.strip())

    @property
    def private_key_file(self) -> str:
        return self.WG_PRIVATE_KEY_FILE or str(Path(self.WG_CONFIG_DIR) / "private.key")

    def to_interface_config(self, private_key: Optional[str] = None) -> InterfaceConfig:
        return InterfaceConfig(
            name=self.WG_INTERFACE,
            config_dir=self.WG_CONFIG_DIR,
            listen_port=self.WG_PORT,
            address=self.WG_ADDRESS,
            dns=self.dns_servers,
            mtu=self.WG_MTU,
            persistent_keepalive=self.WG_KEEPALIVE,
            private_key=private_key,
        )

