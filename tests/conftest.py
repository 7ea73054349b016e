import io
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest
from pymarc import Field, Record, Subfield

from catalog_indexer.codes import load_code_table
from catalog_indexer.config import ROOT_DIR, Settings
from catalog_indexer.mapper import REQUIRED_LABELS, RecordMapper
from catalog_indexer.rules import Ruleset

BOOK_LEADER = "00000cam a2200000 a 4500"
FIXED_008 = "850101s1985    mau" + " " * 15 + "0" + " " + "eng" + " d"


def build_record(
    control_number: Optional[str] = "990001",
    title: Optional[str] = "A history of science",
    leader: str = BOOK_LEADER,
    fixed: Optional[str] = FIXED_008,
    fields: Optional[List[Field]] = None,
) -> Record:
    record = Record(leader=leader)
    if control_number is not None:
        record.add_field(Field(tag="001", data=control_number))
    if fixed is not None:
        record.add_field(Field(tag="008", data=fixed))
    if title is not None:
        record.add_field(
            Field(tag="245", indicators=["1", "0"], subfields=[Subfield(code="a", value=title)])
        )
    for field in fields or []:
        record.add_field(field)
    return record


def data_field(tag: str, *pairs: Tuple[str, str], ind1: str = " ", ind2: str = " ") -> Field:
    return Field(
        tag=tag,
        indicators=[ind1, ind2],
        subfields=[Subfield(code=code, value=value) for code, value in pairs],
    )


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_field():
    return data_field


class FakeOpenSearch:
    """In-memory stand-in for OpenSearchClient."""

    def __init__(self) -> None:
        self.indices: Dict[str, List[Dict[str, Any]]] = {}
        self.aliases: Dict[str, List[str]] = {}
        self.settings_updates: List[Tuple[str, Dict[str, Any]]] = []
        self.alias_calls: List[List[Dict[str, Any]]] = []
        self.bulk_calls: List[Tuple[str, bytes]] = []
        self.bulk_responses: List[Tuple[int, str]] = []
        self.mappings: Dict[str, Dict[str, Any]] = {}
        self.refreshed: List[str] = []

    def maybe_throttle(self) -> None:
        pass

    def info(self) -> Dict[str, Any]:
        return {
            "name": "node-1",
            "cluster_name": "catalog",
            "version": {"number": "2.11.0", "lucene_version": "9.7.0"},
        }

    def index_exists(self, index_name: str) -> bool:
        return index_name in self.indices

    def create_index(self, index_name: str, mapping: Dict[str, Any]) -> None:
        self.indices[index_name] = []
        self.mappings[index_name] = mapping.get("mappings", {})

    def delete_index(self, index_name: str) -> None:
        self.indices.pop(index_name)

    def update_settings(self, index_name: str, settings: Dict[str, Any]) -> None:
        self.settings_updates.append((index_name, settings))

    def refresh(self, index_name: str) -> None:
        self.refreshed.append(index_name)

    def count(self, index_name: str) -> int:
        return len(self.indices.get(index_name, []))

    def get_mapping(self, index_name: str) -> Dict[str, Any]:
        return self.mappings.get(index_name, {})

    def bulk(self, index_name: str, payload: bytes) -> Tuple[int, str]:
        self.bulk_calls.append((index_name, payload))
        if self.bulk_responses:
            return self.bulk_responses.pop(0)
        lines = payload.decode("utf-8").strip().split("\n")
        items = []
        for action_line, doc_line in zip(lines[0::2], lines[1::2]):
            self.indices.setdefault(index_name, []).append(json.loads(doc_line))
            meta = json.loads(action_line)["index"]
            items.append({"index": {"_id": meta.get("_id"), "status": 201}})
        return 200, json.dumps({"errors": False, "items": items})

    def cat_indices(self, pattern: str = "") -> List[Dict[str, Any]]:
        return [
            {"index": name, "health": "green", "status": "open", "uuid": f"uuid-{name}", "docs.count": str(len(docs)), "store.size": "1kb"}
            for name, docs in self.indices.items()
        ]

    def cat_aliases(self) -> List[Dict[str, Any]]:
        return [{"alias": alias, "index": idx} for alias, targets in self.aliases.items() for idx in targets]

    def resolve_alias_indices(self, alias_name: str) -> List[str]:
        return list(self.aliases.get(alias_name, []))

    def update_aliases(self, actions: List[Dict[str, Any]]) -> None:
        self.alias_calls.append(actions)
        for action in actions:
            if "remove" in action:
                self.aliases[action["remove"]["alias"]].remove(action["remove"]["index"])
        for action in actions:
            if "add" in action:
                self.aliases.setdefault(action["add"]["alias"], []).append(action["add"]["index"])

    def reindex(self, source: str, destination: str, timeout_sec: Optional[float] = None) -> Dict[str, Any]:
        docs = list(self.indices[source])
        self.indices.setdefault(destination, []).extend(docs)
        return {"total": len(docs), "created": len(docs), "updated": 0, "failures": []}


@pytest.fixture
def fake_client():
    return FakeOpenSearch()


@pytest.fixture
def settings(monkeypatch):
    for key in (
        "OS_URL",
        "INDEX_PREFIX",
        "MARC_RULES_PATH",
        "LANGUAGE_CODES_PATH",
        "COUNTRY_CODES_PATH",
        "INDEX_MAPPING_PATH",
        "OS_BULK_SIZE",
        "INGEST_QUEUE_SIZE",
        "INGEST_MAX_DECODE_ERRORS",
    ):
        monkeypatch.delenv(key, raising=False)
    return Settings.from_env().override(
        {"bulk_size": 2, "queue_size": 2, "retry_backoff_sec": 0.0, "retry_max": 2}
    )


@pytest.fixture(scope="session")
def mapper():
    ruleset = Ruleset.load(ROOT_DIR / "config" / "marc_rules.json", required=REQUIRED_LABELS)
    return RecordMapper(
        ruleset,
        load_code_table("language", ROOT_DIR / "config" / "languages.xml"),
        load_code_table("country", ROOT_DIR / "config" / "countries.xml"),
        source_name="MIT Aleph",
        source_link_base="https://library.mit.edu/item/",
    )


def marc_stream(*records) -> io.BytesIO:
    return io.BytesIO(b"".join(record if isinstance(record, bytes) else record.as_marc() for record in records))


@pytest.fixture
def make_stream():
    return marc_stream
