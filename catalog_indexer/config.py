import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_DIR = Path(__file__).resolve().parents[1]


def _coerce_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _coerce_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _resolve_path(value: str) -> Path:
    path = Path(value)
    return path if path.is_absolute() else ROOT_DIR / path


@dataclass
class Settings:
    os_url: str
    index_prefix: str

    rules_path: Path
    languages_path: Path
    countries_path: Path
    mapping_path: Path

    source_name: str
    source_link_base: str

    queue_size: int
    bulk_size: int
    retry_max: int
    retry_backoff_sec: float
    bulk_delay_sec: float
    timeout_sec: int
    max_failures: int
    max_consecutive_decode_errors: int

    health_check_interval_sec: int
    health_sleep_yellow_sec: int
    health_sleep_red_sec: int

    refresh_interval_bulk: str
    refresh_interval_post: str

    log_level: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            os_url=os.environ.get("OS_URL", "http://localhost:9200"),
            index_prefix=os.environ.get("INDEX_PREFIX", "aleph"),
            rules_path=_resolve_path(os.environ.get("MARC_RULES_PATH", "config/marc_rules.json")),
            languages_path=_resolve_path(os.environ.get("LANGUAGE_CODES_PATH", "config/languages.xml")),
            countries_path=_resolve_path(os.environ.get("COUNTRY_CODES_PATH", "config/countries.xml")),
            mapping_path=_resolve_path(os.environ.get("INDEX_MAPPING_PATH", "config/record_mapping.json")),
            source_name=os.environ.get("RECORD_SOURCE_NAME", "MIT Aleph"),
            source_link_base=os.environ.get("RECORD_SOURCE_LINK_BASE", "https://library.mit.edu/item/"),
            queue_size=_coerce_int(os.environ.get("INGEST_QUEUE_SIZE"), 1000),
            bulk_size=_coerce_int(os.environ.get("OS_BULK_SIZE"), 500),
            retry_max=_coerce_int(os.environ.get("OS_RETRY_MAX"), 3),
            retry_backoff_sec=_coerce_float(os.environ.get("OS_RETRY_BACKOFF_SEC"), 1.0),
            bulk_delay_sec=_coerce_float(os.environ.get("OS_BULK_DELAY_SEC"), 0.0),
            timeout_sec=_coerce_int(os.environ.get("OS_TIMEOUT_SEC"), 30),
            max_failures=_coerce_int(os.environ.get("INGEST_MAX_FAILURES"), 1000),
            max_consecutive_decode_errors=_coerce_int(os.environ.get("INGEST_MAX_DECODE_ERRORS"), 0),
            health_check_interval_sec=_coerce_int(os.environ.get("OS_HEALTH_CHECK_INTERVAL_SEC"), 10),
            health_sleep_yellow_sec=_coerce_int(os.environ.get("OS_HEALTH_SLEEP_YELLOW_SEC"), 1),
            health_sleep_red_sec=_coerce_int(os.environ.get("OS_HEALTH_SLEEP_RED_SEC"), 5),
            refresh_interval_bulk=os.environ.get("OS_REFRESH_INTERVAL_BULK", "-1"),
            refresh_interval_post=os.environ.get("OS_REFRESH_INTERVAL_POST", "1s"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )

    def override(self, params: Optional[Dict[str, Any]]) -> "Settings":
        if not params:
            return self

        changes: Dict[str, Any] = {}
        for key in ("rules_path", "languages_path", "countries_path", "mapping_path"):
            value = params.get(key)
            if isinstance(value, (str, Path)):
                changes[key] = _resolve_path(str(value))
        for key in ("os_url", "index_prefix", "source_name", "source_link_base", "log_level"):
            if params.get(key) is not None:
                changes[key] = str(params[key])
        for key in (
            "queue_size",
            "bulk_size",
            "retry_max",
            "timeout_sec",
            "max_failures",
            "max_consecutive_decode_errors",
        ):
            if params.get(key) is not None:
                changes[key] = int(params[key])
        for key in ("retry_backoff_sec", "bulk_delay_sec"):
            if params.get(key) is not None:
                changes[key] = float(params[key])
        return replace(self, **changes)
