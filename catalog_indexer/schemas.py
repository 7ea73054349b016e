import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

BYTE_RANGE_RE = re.compile(r"^\d+:\d+$")


class FieldSpec(BaseModel):
    tag: str
    subfields: str = ""
    bytes: str = ""
    kind: str = ""

    @field_validator("tag")
    @classmethod
    def _tag_is_three_chars(cls, value: str) -> str:
        if len(value) != 3:
            raise ValueError(f"tag must be three characters, got {value!r}")
        return value

    @field_validator("bytes")
    @classmethod
    def _bytes_is_range(cls, value: str) -> str:
        if value and not BYTE_RANGE_RE.match(value):
            raise ValueError(f"bytes must look like 'start:length', got {value!r}")
        return value

    def byte_range(self) -> Optional[Tuple[int, int]]:
        if not self.bytes:
            return None
        start, length = self.bytes.split(":", 1)
        return int(start), int(length)


class Rule(BaseModel):
    label: str
    array: bool = False
    fields: List[FieldSpec] = Field(default_factory=list)


class Contributor(BaseModel):
    kind: str
    value: List[str]


class RelatedItem(BaseModel):
    kind: str
    value: List[str]


class Link(BaseModel):
    kind: str = "unknown"
    text: str = ""
    url: str = ""
    restrictions: str = ""


class Holding(BaseModel):
    location: str = ""
    collection: str = ""
    call_number: str = ""
    summary: str = ""
    notes: str = ""
    format: str = ""


class BibRecord(BaseModel):
    identifier: str
    source: str = ""
    source_link: str = ""
    title: str
    alternate_titles: List[str] = Field(default_factory=list)
    creators: List[str] = Field(default_factory=list)
    contributors: List[Contributor] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    isbns: List[str] = Field(default_factory=list)
    issns: List[str] = Field(default_factory=list)
    dois: List[str] = Field(default_factory=list)
    oclcs: List[str] = Field(default_factory=list)
    lccn: str = ""
    country_of_publication: str = ""
    languages: List[str] = Field(default_factory=list)
    publication_date: str = ""
    content_type: str = ""
    call_numbers: List[str] = Field(default_factory=list)
    edition: str = ""
    imprint: List[str] = Field(default_factory=list)
    physical_description: str = ""
    publication_frequency: List[str] = Field(default_factory=list)
    numbering: str = ""
    notes: List[str] = Field(default_factory=list)
    contents: List[str] = Field(default_factory=list)
    summary: List[str] = Field(default_factory=list)
    format: List[str] = Field(default_factory=list)
    literary_form: str = ""
    related_place: List[str] = Field(default_factory=list)
    in_bibliography: List[str] = Field(default_factory=list)
    related_items: List[RelatedItem] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)
    holdings: List[Holding] = Field(default_factory=list)

    def to_source(self) -> Dict[str, Any]:
        """Document body for the search engine; empty values are left out."""
        doc: Dict[str, Any] = {}
        for key, value in self.model_dump().items():
            if key in ("identifier", "title") or value:
                doc[key] = value
        return doc


class HealthResponse(BaseModel):
    status: str
    trace_id: str
    request_id: str


class IndexInfo(BaseModel):
    index: str
    health: Optional[str] = None
    status: Optional[str] = None
    uuid: Optional[str] = None
    docs_count: int = 0
    store_size: Optional[str] = None


class AliasInfo(BaseModel):
    alias: str
    index: str


class ClusterInfo(BaseModel):
    name: str = ""
    cluster_name: str = ""
    version: str = ""
    lucene_version: str = ""


class IndexListResponse(BaseModel):
    version: str = "v1"
    trace_id: str
    request_id: str
    indices: List[IndexInfo]


class AliasListResponse(BaseModel):
    version: str = "v1"
    trace_id: str
    request_id: str
    aliases: List[AliasInfo]


class PromoteRequest(BaseModel):
    index: str
    alias: str


class ReindexRequest(BaseModel):
    source: str
    destination: str


class IndexActionResponse(BaseModel):
    version: str = "v1"
    trace_id: str
    request_id: str
    index: str
    alias: Optional[str] = None
    previous: Optional[List[str]] = None
    count: Optional[int] = None
