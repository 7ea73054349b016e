import json
import time
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional, Tuple

from catalog_indexer.config import Settings
from catalog_indexer.errors import SearchEngineError

TRANSIENT_STATUSES = {429, 503, 504}


class OpenSearchClient:
    def __init__(self, settings: Settings) -> None:
        self.base_url = settings.os_url.rstrip("/")
        self.timeout_sec = settings.timeout_sec
        self.health_check_interval_sec = settings.health_check_interval_sec
        self.health_sleep_yellow_sec = settings.health_sleep_yellow_sec
        self.health_sleep_red_sec = settings.health_sleep_red_sec
        self._last_health_check = 0.0
        self._last_health_status = "green"

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        timeout_sec: Optional[float] = None,
    ) -> Tuple[int, str]:
        data = None
        headers: Dict[str, str] = {}
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        return self.request_raw(method, path, data, headers, timeout_sec=timeout_sec)

    def request_raw(
        self,
        method: str,
        path: str,
        payload: Optional[bytes],
        headers: Dict[str, str],
        timeout_sec: Optional[float] = None,
    ) -> Tuple[int, str]:
        url = f"{self.base_url}{path}"
        request = urllib.request.Request(url, data=payload, headers=headers, method=method)
        try:
            with urllib.request.urlopen(request, timeout=timeout_sec or self.timeout_sec) as response:
                return response.status, response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            return exc.code, exc.read().decode("utf-8")
        except urllib.error.URLError as exc:
            raise SearchEngineError(f"OpenSearch request failed: {exc}", retryable=True) from exc

    def _json(self, method: str, path: str, action: str, body: Optional[Any] = None, **kwargs: Any) -> Any:
        status, response = self.request(method, path, body, **kwargs)
        if status >= 300:
            raise SearchEngineError(
                f"{action} failed ({status}): {response}",
                status=status,
                retryable=status in TRANSIENT_STATUSES,
            )
        return json.loads(response) if response else {}

    def info(self) -> Dict[str, Any]:
        return self._json("GET", "/", "Ping")

    def cluster_health(self) -> str:
        now = time.time()
        if now - self._last_health_check < self.health_check_interval_sec:
            return self._last_health_status
        status, body = self.request("GET", "/_cluster/health")
        if status >= 300:
            self._last_health_status = "red"
        else:
            data = json.loads(body)
            self._last_health_status = data.get("status", "red")
        self._last_health_check = now
        return self._last_health_status

    def maybe_throttle(self) -> None:
        status = self.cluster_health()
        if status == "red":
            time.sleep(self.health_sleep_red_sec)
        elif status == "yellow":
            time.sleep(self.health_sleep_yellow_sec)

    def cat_indices(self, pattern: str = "") -> List[Dict[str, Any]]:
        path = f"/_cat/indices/{pattern}?format=json" if pattern else "/_cat/indices?format=json"
        status, body = self.request("GET", path)
        if status == 404:
            return []
        if status >= 300:
            raise SearchEngineError(f"Failed to list indices ({status}): {body}", status=status)
        return json.loads(body)

    def cat_aliases(self) -> List[Dict[str, Any]]:
        return self._json("GET", "/_cat/aliases?format=json", "Alias listing")

    def index_exists(self, index_name: str) -> bool:
        status, _ = self.request("HEAD", f"/{index_name}")
        return 200 <= status < 300

    def delete_index(self, index_name: str) -> None:
        self._json("DELETE", f"/{index_name}", f"Delete index {index_name}")

    def create_index(self, index_name: str, mapping: Dict[str, Any]) -> None:
        self._json("PUT", f"/{index_name}", f"Create index {index_name}", mapping)

    def update_settings(self, index_name: str, settings: Dict[str, Any]) -> None:
        self._json("PUT", f"/{index_name}/_settings", f"Update settings {index_name}", settings)

    def refresh(self, index_name: str) -> None:
        self._json("POST", f"/{index_name}/_refresh", "Refresh")

    def count(self, index_name: str) -> int:
        return self._json("GET", f"/{index_name}/_count", "Count").get("count", 0)

    def get_mapping(self, index_name: str) -> Dict[str, Any]:
        data = self._json("GET", f"/{index_name}/_mapping", "Mapping lookup")
        return data.get(index_name, {}).get("mappings", {})

    def bulk(self, index_name: str, payload: bytes) -> Tuple[int, str]:
        return self.request_raw(
            "POST",
            f"/{index_name}/_bulk",
            payload,
            {"Content-Type": "application/x-ndjson"},
        )

    def update_aliases(self, actions: List[Dict[str, Any]]) -> None:
        self._json("POST", "/_aliases", "Alias update", {"actions": actions})

    def resolve_alias_indices(self, alias_name: str) -> List[str]:
        status, body = self.request("GET", f"/_alias/{alias_name}")
        if status == 404:
            return []
        if status >= 300:
            raise SearchEngineError(f"Alias lookup failed ({status}): {body}", status=status)
        data = json.loads(body)
        return list(data.keys())

    def reindex(self, source: str, destination: str, timeout_sec: Optional[float] = None) -> Dict[str, Any]:
        body = {"source": {"index": source}, "dest": {"index": destination}}
        return self._json(
            "POST",
            "/_reindex?wait_for_completion=true&refresh=true",
            "Reindex",
            body,
            timeout_sec=timeout_sec,
        )
