"""HTTP client for the panel backend's telemetry endpoints.

Every endpoint is a JSON POST answering ``{code, msg, data}``; ``code == 0``
means success. Transport problems raise ``TransportError``, application
failures raise ``ApiError`` carrying the server message verbatim.
"""

import logging
from typing import Any

import requests

from panelmon.models import (
    DetailPayload,
    LatencyStat,
    NodeSummary,
    SysSnapshot,
    parse_latency_map,
    parse_roster,
    parse_snapshot_map,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class PanelError(Exception):
    """Base class for failures talking to the panel backend."""


class TransportError(PanelError):
    """Network unreachable, timed out, HTTP error status or unreadable body."""

    def __init__(self, detail: str = ""):
        super().__init__("Network error")
        self.detail = detail


class ApiError(PanelError):
    """The backend answered with a non-zero code."""

    def __init__(self, code: int, msg: str | None = None):
        super().__init__(msg or "Request failed")
        self.code = code


class PanelClient:
    """Typed wrappers over the panel's RPC-style telemetry API.

    Args:
        base_url: Panel root, e.g. ``http://127.0.0.1:6365``
        token: Session token sent as ``Authorization``; shared endpoints never send it
        timeout: Per-request timeout in seconds
        session: Optional pre-built ``requests.Session`` (injected in tests)
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def post(self, path: str, body: dict | None = None, auth: bool = True) -> Any:
        """POST ``body`` to ``path`` and return the envelope's ``data``."""
        url = f"{self.base_url}{API_PREFIX}/{path.lstrip('/')}"
        headers = {"Content-Type": "application/json"}
        if auth and self.token:
            headers["Authorization"] = self.token

        logger.debug("POST %s body=%s", url, body)
        try:
            response = self.session.post(url, json=body or {}, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            envelope = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning("Request failed: path=%s, error=%s", path, e)
            raise TransportError(str(e)) from e
        except ValueError as e:  # Body is not JSON
            logger.warning("Undecodable response: path=%s, error=%s", path, e)
            raise TransportError(str(e)) from e

        if not isinstance(envelope, dict):
            raise TransportError("response envelope is not an object")

        code = envelope.get("code")
        if code != 0:
            logger.info("API error: path=%s, code=%s, msg=%s", path, code, envelope.get("msg"))
            raise ApiError(code if isinstance(code, int) else -1, envelope.get("msg"))

        return envelope.get("data")

    # Authenticated endpoints

    def node_network_stats(self, node_id: int, range_key: str) -> DetailPayload:
        data = self.post("node/network-stats", {"nodeId": node_id, "range": range_key})
        return DetailPayload.from_dict(data)

    def node_network_stats_batch(self, range_key: str) -> dict[int, LatencyStat]:
        data = self.post("node/network-stats-batch", {"range": range_key})
        return parse_latency_map(data)

    def node_list(self) -> list[NodeSummary]:
        return parse_roster(self.post("node/list"))

    def node_sysinfo(self, node_id: int, range_key: str = "1h", limit: int | None = 1) -> list[SysSnapshot]:
        body = {"nodeId": node_id, "range": range_key}
        if limit is not None:
            body["limit"] = limit
        data = self.post("node/sysinfo", body)
        if not isinstance(data, list):
            return []
        return [SysSnapshot.from_dict(s) for s in data if isinstance(s, dict)]

    def latest_sysinfo(self, node_id: int) -> SysSnapshot | None:
        """Most recent snapshot for a node; the series is ordered oldest first."""
        snapshots = self.node_sysinfo(node_id, "1h", 1)
        return snapshots[-1] if snapshots else None

    # Shared (read-only, unauthenticated) endpoints

    def share_network_list(
        self, range_key: str
    ) -> tuple[list[NodeSummary], dict[int, LatencyStat], dict[int, SysSnapshot]]:
        data = self.post("share/network-list", {"range": range_key}, auth=False)
        data = data if isinstance(data, dict) else {}
        return (
            parse_roster(data.get("nodes")),
            parse_latency_map(data.get("stats")),
            parse_snapshot_map(data.get("sys")),
        )

    def share_network_stats(self, node_id: int, range_key: str) -> DetailPayload:
        data = self.post("share/network-stats", {"nodeId": node_id, "range": range_key}, auth=False)
        return DetailPayload.from_dict(data)
