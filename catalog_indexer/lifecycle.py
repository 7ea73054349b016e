"""Index administration and the blue/green alias swap.

A new index is built under its own name, checked, then promoted: the
alias named after the index prefix is moved onto it with one atomic
``_aliases`` call. The previous index stays addressable by name until it
is deleted.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from catalog_indexer.errors import IndexNotFoundError, SearchEngineError
from catalog_indexer.opensearch import OpenSearchClient
from catalog_indexer.schemas import AliasInfo, ClusterInfo, IndexInfo

logger = logging.getLogger(__name__)


def generate_index_name(prefix: str) -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}"


def _coerce_count(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class IndexLifecycleManager:
    def __init__(self, client: OpenSearchClient) -> None:
        self.client = client

    def ping(self) -> ClusterInfo:
        data = self.client.info()
        version = data.get("version") or {}
        return ClusterInfo(
            name=data.get("name", ""),
            cluster_name=data.get("cluster_name", ""),
            version=version.get("number", ""),
            lucene_version=version.get("lucene_version", ""),
        )

    def list_indices(self) -> List[IndexInfo]:
        indices = [
            IndexInfo(
                index=row.get("index", ""),
                health=row.get("health"),
                status=row.get("status"),
                uuid=row.get("uuid"),
                docs_count=_coerce_count(row.get("docs.count")),
                store_size=row.get("store.size"),
            )
            for row in self.client.cat_indices()
        ]
        return sorted(indices, key=lambda info: info.index)

    def list_aliases(self) -> List[AliasInfo]:
        aliases = [AliasInfo(alias=row.get("alias", ""), index=row.get("index", "")) for row in self.client.cat_aliases()]
        return sorted(aliases, key=lambda info: (info.alias, info.index))

    def delete(self, index_name: str) -> None:
        self._require_index(index_name)
        self.client.delete_index(index_name)
        logger.info("Deleted index %s", index_name)

    def promote(self, index_name: str, alias: str) -> List[str]:
        """Point ``alias`` at ``index_name`` only. Returns the indices it left."""
        self._require_index(index_name)
        previous = self.client.resolve_alias_indices(alias)
        actions: List[Dict[str, Any]] = [
            {"remove": {"index": idx, "alias": alias}} for idx in sorted(set(previous)) if idx != index_name
        ]
        actions.append({"add": {"index": index_name, "alias": alias}})
        self.client.update_aliases(actions)
        demoted = [action["remove"]["index"] for action in actions if "remove" in action]
        logger.info("Promoted %s to alias %s (removed from %s)", index_name, alias, demoted or "none")
        return demoted

    def reindex(self, source: str, destination: str, timeout_sec: Optional[float] = None) -> int:
        self._require_index(source)
        mappings = self.client.get_mapping(source)
        if (mappings.get("_source") or {}).get("enabled") is False:
            raise SearchEngineError(f"Index {source} does not store _source; it cannot be reindexed")

        result = self.client.reindex(source, destination, timeout_sec=timeout_sec)
        failures = result.get("failures") or []
        if failures:
            raise SearchEngineError(
                f"Reindex {source} -> {destination} reported {len(failures)} failures",
                detail=failures,
            )
        copied = _coerce_count(result.get("created")) + _coerce_count(result.get("updated"))
        logger.info("Reindexed %d documents from %s to %s", copied, source, destination)
        return copied

    def _require_index(self, index_name: str) -> None:
        if not index_name or not self.client.index_exists(index_name):
            raise IndexNotFoundError(index_name)
