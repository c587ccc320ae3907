# node_agent/client.py
"""
Control Plane API Client
Handles agent calls to the Control Plane over the mTLS session
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

logger = logging.getLogger('relay-agent.client')

USER_AGENT = "vpn-node-agent/1.0"


class APIError(Exception):
    """API error with status code"""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"API Error {status_code}: {message}")


def join_url(base: str, path: str) -> str:
    """Join the Control Plane base URL with an endpoint path"""
    if not path:
        return base
    return urljoin(base.rstrip("/") + "/", path.lstrip("/"))


class ControlPlaneClient:
    """
    HTTP client for the node endpoints of the Control Plane

    Every request carries the provisioning token as a bearer token.
    """

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        token: str = "",
        register_path: str = "/api/v1/nodes/register",
        health_path: str = "/api/v1/nodes/health",
    ):
        if session is None:
            raise ValueError("http session required")
        self.session = session
        self.base_url = base_url
        self.token = token
        self.register_url = join_url(base_url, register_path)
        self.health_url = join_url(base_url, health_path)

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _post(self, url: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug(f"POST {url}")
        response = self.session.post(url, json=data, headers=self._headers())

        if response.status_code >= 400:
            raise APIError(response.status_code, response.text)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def register(self) -> Dict[str, Any]:
        """Announce this node; identity comes from the client certificate"""
        return self._post(self.register_url)

    def report_health(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Send a health report, returns the decoded response body"""
        return self._post(self.health_url, body)
