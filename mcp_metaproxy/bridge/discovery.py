"""The ``discover`` operation: free-text queries to ranked tool descriptors."""

import logging
from typing import List, Sequence

from mcp_metaproxy.bridge.search import CatalogIndex
from mcp_metaproxy.constants import DEFAULT_DISCOVER_LIMIT
from mcp_metaproxy.runtime.models import DiscoveryResult

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Runs discovery queries against a :class:`CatalogIndex`."""

    def __init__(self, index: CatalogIndex, limit: int = DEFAULT_DISCOVER_LIMIT) -> None:
        if limit < 1:
            raise ValueError("Discovery limit must be a positive integer")
        self._index = index
        self._limit = limit

    @property
    def limit(self) -> int:
        return self._limit

    def discover(self, queries: Sequence[str]) -> List[DiscoveryResult]:
        """Rank catalog tools against *queries*, space-joined in order.

        Returns at most :attr:`limit` results; an empty catalog or an empty
        query list yields an empty list.
        """
        if len(self._index) == 0:
            logger.warning("No tools indexed yet; discover returns no results.")
            return []
        if isinstance(queries, str):
            queries = [queries]

        combined_query = " ".join(q for q in queries if q)
        if not combined_query.strip():
            logger.debug("Empty discovery query; returning no results.")
            return []

        ranked = self._index.search(combined_query, self._limit)
        results = [
            DiscoveryResult(tool_id=tool.tool_id, method=tool.method, input_schema=tool.input_schema)
            for tool in ranked
        ]
        logger.info(
            "Discover %r matched %d tool(s): %s",
            combined_query,
            len(results),
            ", ".join(f"{r.tool_id}::{r.method}" for r in results),
        )
        return results
