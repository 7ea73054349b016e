import json
import logging
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, TextIO, Tuple

from catalog_indexer.codes import load_code_table
from catalog_indexer.config import Settings
from catalog_indexer.consumers import get_consumer
from catalog_indexer.errors import ConfigurationError, DecodeAbortError
from catalog_indexer.lifecycle import IndexLifecycleManager, generate_index_name
from catalog_indexer.mapper import REQUIRED_LABELS, RecordMapper
from catalog_indexer.opensearch import OpenSearchClient
from catalog_indexer.rules import Ruleset
from catalog_indexer.streamer import DocumentQueue, StreamStats, Streamer

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    index: Optional[str]
    indexed: int
    stats: StreamStats
    promoted: bool = False
    demoted: List[str] = field(default_factory=list)


def build_mapper(settings: Settings, rules_path: Optional[Path] = None) -> RecordMapper:
    ruleset = Ruleset.load(rules_path or settings.rules_path, required=REQUIRED_LABELS)
    languages = load_code_table("language", settings.languages_path)
    countries = load_code_table("country", settings.countries_path)
    return RecordMapper(
        ruleset,
        languages,
        countries,
        source_name=settings.source_name,
        source_link_base=settings.source_link_base,
    )


def load_index_mapping(path: Path) -> Dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to load index mapping {path}: {exc}") from exc


def run_pipeline(stream: BinaryIO, mapper: RecordMapper, consumer, settings: Settings) -> Tuple[int, StreamStats]:
    """Runs the producer in its own thread and the consumer in this one."""
    documents = DocumentQueue(settings.queue_size)
    streamer = Streamer(stream, mapper, settings.max_consecutive_decode_errors)
    producer_error: List[BaseException] = []

    def produce() -> None:
        try:
            streamer.run(documents)
        except BaseException as exc:  # re-raised in the calling thread
            producer_error.append(exc)

    producer = threading.Thread(target=produce, name="marc-streamer", daemon=True)
    producer.start()
    try:
        consumed = consumer.run(documents)
    finally:
        # Stops the producer if the consumer bailed out early.
        documents.close()
        producer.join()
    if producer_error:
        exc = producer_error[0]
        if isinstance(exc, DecodeAbortError):
            exc.indexed = consumed
        raise exc
    return consumed, streamer.stats


def ingest(
    stream: BinaryIO,
    settings: Settings,
    client: Optional[OpenSearchClient] = None,
    index: Optional[str] = None,
    prefix: Optional[str] = None,
    promote: bool = False,
    consumer: str = "opensearch",
    rules_path: Optional[Path] = None,
    output: Optional[TextIO] = None,
) -> IngestResult:
    mapper = build_mapper(settings, rules_path)
    prefix = prefix or settings.index_prefix

    if consumer != "opensearch":
        if promote:
            logger.warning("Ignoring promote: the %s consumer does not write to an index", consumer)
        sink = get_consumer(consumer, settings, output=output or sys.stdout)
        count, stats = run_pipeline(stream, mapper, sink, settings)
        return IngestResult(index=None, indexed=count, stats=stats)

    if client is None:
        client = OpenSearchClient(settings)
    index_name = index or generate_index_name(prefix)
    if not client.index_exists(index_name):
        client.create_index(index_name, load_index_mapping(settings.mapping_path))
        logger.info("Created index %s", index_name)
    if settings.refresh_interval_bulk:
        client.update_settings(index_name, {"index": {"refresh_interval": settings.refresh_interval_bulk}})

    sink = get_consumer(consumer, settings, client=client, index_name=index_name)
    try:
        count, stats = run_pipeline(stream, mapper, sink, settings)
    finally:
        if settings.refresh_interval_post:
            client.update_settings(index_name, {"index": {"refresh_interval": settings.refresh_interval_post}})
        client.refresh(index_name)
    logger.info(
        "Ingested %d documents into %s (skipped %d, index now holds %d)",
        count,
        index_name,
        stats.skipped,
        client.count(index_name),
    )

    result = IngestResult(index=index_name, indexed=count, stats=stats)
    if promote:
        result.demoted = IndexLifecycleManager(client).promote(index_name, prefix)
        result.promoted = True
    return result
