"""Memory query — wraps a scoped search into a context pack for agents."""

from __future__ import annotations

from typing import Any

from hcmstore.core.ids import utc_now_iso
from hcmstore.hindex.router import HindexRouter


class MemoryQuery:
    """Assemble a ``context_pack`` from a hindex search.

    Parameters
    ----------
    router:
        The router used to classify and read.
    """

    def __init__(self, router: HindexRouter) -> None:
        self._router = router

    def query(self, query: str, caller_id: str, mission_id: str) -> dict[str, Any]:
        result = self._router.search(query, caller_id)
        retrieved_at = utc_now_iso()
        return {
            "context_pack": {
                "source": "HCM",
                "class": result.classification,
                "mission_id": mission_id,
                "entries": [
                    {
                        "source_path": hit.source,
                        "content": hit.content,
                        "retrieved_at": retrieved_at,
                    }
                    for hit in result.results
                ],
                "metadata": {
                    "extraction_mode": result.routing_mode,
                    "timestamp": retrieved_at,
                    "query": query,
                },
            }
        }
