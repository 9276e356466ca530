"""Overview aggregation: roster, batch latency and per-node snapshots."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from panelmon.api import PanelClient, PanelError
from panelmon.models import (
    LatencyStat,
    NodeDetail,
    NodeSummary,
    NodeView,
    OverviewResult,
    SysSnapshot,
)

logger = logging.getLogger(__name__)


def merge_overview(
    roster: list[NodeSummary],
    stats: dict[int, LatencyStat],
    snapshots: dict[int, SysSnapshot | None],
) -> list[NodeView]:
    """Join stats and snapshots onto the roster by node id, in roster order."""
    return [
        NodeView(node=node, latency=stats.get(node.id), snapshot=snapshots.get(node.id))
        for node in roster
    ]


class DashboardAggregator:
    """Builds the overview grid state from independent backend calls.

    Roster and batch latency are fetched concurrently; once the roster is
    known, the latest snapshot of every node is fetched in parallel. A failed
    snapshot only blanks that node's row. The result is returned in one piece
    so the caller never renders a half-merged grid.
    """

    def __init__(self, client: PanelClient, max_workers: int = 8):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.client = client
        self.max_workers = max_workers

    def aggregate(self, range_key: str) -> OverviewResult:
        errors = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            roster_future = executor.submit(self.client.node_list)
            stats_future = executor.submit(self.client.node_network_stats_batch, range_key)

            try:
                roster = roster_future.result()
            except PanelError as e:
                logger.warning("Roster fetch failed: %s", e)
                errors.append(str(e))
                roster = None

            snapshots = self._fetch_snapshots(executor, [n.id for n in roster]) if roster else {}

            try:
                stats = stats_future.result()
            except PanelError as e:
                logger.warning("Batch latency fetch failed: range=%s, error=%s", range_key, e)
                errors.append(str(e))
                stats = {}

        if roster is None:
            return OverviewResult(nodes=None, errors=errors)

        nodes = merge_overview(roster, stats, snapshots)
        logger.info(
            "Overview aggregated: range=%s, nodes=%d, snapshots=%d",
            range_key,
            len(nodes),
            sum(1 for s in snapshots.values() if s is not None),
        )
        return OverviewResult(nodes=nodes, errors=errors)

    def fetch_snapshots(self, node_ids: list[int]) -> dict[int, SysSnapshot | None]:
        """Fetch the latest snapshot for each node, isolating per-node failures."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return self._fetch_snapshots(executor, node_ids)

    def _fetch_snapshots(self, executor, node_ids):
        futures = {executor.submit(self.client.latest_sysinfo, node_id): node_id for node_id in node_ids}
        snapshots = {}
        # Completion order is arbitrary; results are keyed by node id only
        for future in as_completed(futures):
            node_id = futures[future]
            try:
                snapshots[node_id] = future.result()
            except Exception as e:
                logger.warning("Snapshot fetch failed: node_id=%s, error=%s", node_id, e)
                snapshots[node_id] = None
        return snapshots

    def aggregate_shared(self, range_key: str) -> OverviewResult:
        """Overview through the read-only share endpoint, same result shape."""
        try:
            roster, stats, snapshots = self.client.share_network_list(range_key)
        except PanelError as e:
            logger.warning("Shared overview fetch failed: range=%s, error=%s", range_key, e)
            return OverviewResult(nodes=None, errors=[str(e)])
        return OverviewResult(nodes=merge_overview(roster, stats, snapshots))

    def detail(self, node_id: int, range_key: str, shared: bool = False) -> NodeDetail:
        """Probe history for one node plus its display name.

        The name comes from the roster on authenticated loads only; a roster
        failure leaves it empty rather than failing the whole detail load.
        """
        if shared:
            return NodeDetail(node_id, self.client.share_network_stats(node_id, range_key))

        payload = self.client.node_network_stats(node_id, range_key)
        name = ""
        try:
            for node in self.client.node_list():
                if node.id == node_id:
                    name = node.name
                    break
        except PanelError as e:
            logger.debug("Node name lookup failed: node_id=%d, error=%s", node_id, e)
        return NodeDetail(node_id, payload, name)
