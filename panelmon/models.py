"""Data models for panel telemetry payloads.

Every record has a ``from_dict`` constructor that accepts the backend's JSON
shape and defaults missing or malformed fields instead of raising, so a
partially broken payload still renders.
"""

from dataclasses import dataclass, field
from typing import Any

RANGE_OPTIONS = {
    "1h": "Hourly",
    "12h": "Every 12 hours",
    "1d": "Daily",
    "7d": "Weekly",
    "30d": "Monthly",
}
DEFAULT_RANGE = "1h"


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


@dataclass(frozen=True)
class ProbeSample:
    """One latency probe against one target at one instant."""

    target_id: int | None
    time_ms: int | None  # None when the backend omitted it
    ok: bool
    rtt_ms: float | None  # Only meaningful when ok

    @classmethod
    def from_dict(cls, raw: dict) -> "ProbeSample":
        """Parse a ``{targetId, timeMs, ok, rttMs}`` record."""
        raw = _as_dict(raw)
        target_id = raw.get("targetId")
        return cls(
            target_id=_as_int(target_id) if target_id is not None else None,
            time_ms=_as_int(raw.get("timeMs")),
            # Backend sends ok as 0/1
            ok=bool(raw.get("ok")),
            rtt_ms=_as_float(raw.get("rttMs")),
        )


@dataclass(frozen=True)
class ProbeTarget:
    """A probe destination as named in the detail payload."""

    id: int
    name: str
    ip: str = ""

    @classmethod
    def from_dict(cls, target_id: Any, raw: dict) -> "ProbeTarget":
        """Parse one entry of the ``targets`` map; the id comes from its key."""
        raw = _as_dict(raw)
        return cls(
            id=_as_int(target_id) or 0,
            name=str(raw.get("name") or ""),
            ip=str(raw.get("ip") or ""),
        )


@dataclass(frozen=True)
class DisconnectEvent:
    """An interval during which a node was unreachable.

    ``up_at_ms`` is None while the outage is still open.
    """

    id: int
    down_at_ms: int
    up_at_ms: int | None = None
    duration_s: int | None = None

    @property
    def ongoing(self) -> bool:
        """True while the outage has no recovery time."""
        return self.up_at_ms is None

    @property
    def resolved_duration_s(self) -> int | None:
        """Duration in seconds, or None when it cannot be known.

        Open intervals are never measured against the current time.
        """
        if self.duration_s:
            return self.duration_s
        if self.up_at_ms is not None:
            return round((self.up_at_ms - self.down_at_ms) / 1000)
        return None

    @classmethod
    def from_dict(cls, raw: dict) -> "DisconnectEvent":
        raw = _as_dict(raw)
        return cls(
            id=_as_int(raw.get("id")) or 0,
            down_at_ms=_as_int(raw.get("downAtMs")) or 0,
            up_at_ms=_as_int(raw.get("upAtMs")),
            duration_s=_as_int(raw.get("durationS")),
        )


@dataclass(frozen=True)
class NodeSummary:
    """Roster entry for one node, including its billing terms."""

    id: int
    name: str
    status: int = 0
    cycle_days: int | None = None
    start_date_ms: int | None = None
    price_cents: int | None = None

    @property
    def online(self) -> bool:
        """Status 1 is online; anything else is offline."""
        return self.status == 1

    @classmethod
    def from_dict(cls, raw: dict) -> "NodeSummary":
        raw = _as_dict(raw)
        return cls(
            id=_as_int(raw.get("id")) or 0,
            name=str(raw.get("name") or ""),
            status=_as_int(raw.get("status")) or 0,
            cycle_days=_as_int(raw.get("cycleDays")),
            start_date_ms=_as_int(raw.get("startDateMs")),
            price_cents=_as_int(raw.get("priceCents")),
        )


@dataclass(frozen=True)
class LatencyStat:
    """Server-side latency aggregate for one node over the selected range."""

    avg: float | None = None
    latest: float | None = None
    latest_target_name: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> "LatencyStat":
        raw = _as_dict(raw)
        latest_target = _as_dict(raw.get("latestTarget"))
        return cls(
            avg=_as_float(raw.get("avg")),
            latest=_as_float(raw.get("latest")),
            latest_target_name=str(latest_target.get("name") or ""),
        )


@dataclass(frozen=True)
class SysSnapshot:
    """Latest host metrics reported by a node."""

    cpu: float = 0.0
    mem: float = 0.0
    uptime: int = 0  # seconds
    bytes_tx: int = 0
    bytes_rx: int = 0

    @classmethod
    def from_dict(cls, raw: dict) -> "SysSnapshot":
        raw = _as_dict(raw)
        return cls(
            cpu=_as_float(raw.get("cpu")) or 0.0,
            mem=_as_float(raw.get("mem")) or 0.0,
            uptime=_as_int(raw.get("uptime")) or 0,
            bytes_tx=_as_int(raw.get("bytes_tx")) or 0,
            bytes_rx=_as_int(raw.get("bytes_rx")) or 0,
        )


@dataclass(frozen=True)
class DetailPayload:
    """Probe history, targets, outages and SLA for one node over one range."""

    results: list[ProbeSample] = field(default_factory=list)
    targets: dict[str, ProbeTarget] = field(default_factory=dict)
    disconnects: list[DisconnectEvent] = field(default_factory=list)
    sla: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict) -> "DetailPayload":
        """Parse a detail response; SLA is clamped to 0..1."""
        raw = _as_dict(raw)
        targets = {
            str(key): ProbeTarget.from_dict(key, value)
            for key, value in _as_dict(raw.get("targets")).items()
        }
        sla = _as_float(raw.get("sla")) or 0.0
        return cls(
            results=[ProbeSample.from_dict(r) for r in _as_list(raw.get("results"))],
            targets=targets,
            disconnects=[DisconnectEvent.from_dict(d) for d in _as_list(raw.get("disconnects"))],
            sla=min(1.0, max(0.0, sla)),
        )


@dataclass(frozen=True)
class NodeView:
    """One merged row of the overview grid."""

    node: NodeSummary
    latency: LatencyStat | None = None
    snapshot: SysSnapshot | None = None

    @property
    def id(self) -> int:
        return self.node.id


@dataclass(frozen=True)
class OverviewResult:
    """Merged overview state.

    ``nodes`` is None when the roster itself could not be loaded; ``errors``
    carries user-facing messages for every top-level call that failed.
    """

    nodes: list[NodeView] | None
    errors: list[str] = field(default_factory=list)


def parse_latency_map(raw: Any) -> dict[int, LatencyStat]:
    """Parse a ``{nodeId: LatencyStat}`` mapping, dropping unusable keys."""
    stats = {}
    for key, value in _as_dict(raw).items():
        node_id = _as_int(key)
        if node_id is not None:
            stats[node_id] = LatencyStat.from_dict(value)
    return stats


def parse_snapshot_map(raw: Any) -> dict[int, SysSnapshot]:
    """Parse a ``{nodeId: snapshot}`` mapping, dropping unusable entries."""
    snapshots = {}
    for key, value in _as_dict(raw).items():
        node_id = _as_int(key)
        if node_id is not None and isinstance(value, dict):
            snapshots[node_id] = SysSnapshot.from_dict(value)
    return snapshots


def parse_roster(raw: Any) -> list[NodeSummary]:
    """Parse the node list, skipping entries that are not records."""
    return [NodeSummary.from_dict(n) for n in _as_list(raw) if isinstance(n, dict)]


@dataclass(frozen=True)
class NodeDetail:
    """Detail view state for one node; ``name`` is empty when unknown."""

    node_id: int
    payload: DetailPayload
    name: str = ""
