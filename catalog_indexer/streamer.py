import logging
import queue
import threading
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from pymarc import MARCReader

from catalog_indexer.errors import DecodeAbortError, QueueClosed, RecordMappingError
from catalog_indexer.mapper import RecordMapper, control_number
from catalog_indexer.schemas import BibRecord

logger = logging.getLogger(__name__)

POLL_INTERVAL_SEC = 0.1


class DocumentQueue:
    """Bounded hand-off between the producer and the consumer.

    close() is the only termination signal. After close() the producer can
    no longer put, and the consumer drains what is left and then stops.
    """

    def __init__(self, maxsize: int) -> None:
        self._queue: "queue.Queue[BibRecord]" = queue.Queue(maxsize=max(1, maxsize))
        self._closed = threading.Event()

    def put(self, doc: BibRecord) -> None:
        while True:
            if self._closed.is_set():
                raise QueueClosed("document queue is closed")
            try:
                self._queue.put(doc, timeout=POLL_INTERVAL_SEC)
                return
            except queue.Full:
                continue

    def get(self) -> Optional[BibRecord]:
        """Next document, or None once the queue is closed and drained."""
        while True:
            try:
                return self._queue.get(timeout=POLL_INTERVAL_SEC)
            except queue.Empty:
                # Closing happens after the last put, so closed + empty is final.
                if self._closed.is_set() and self._queue.empty():
                    return None

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __iter__(self) -> Iterator[BibRecord]:
        while True:
            doc = self.get()
            if doc is None:
                return
            yield doc


@dataclass
class StreamStats:
    read: int = 0
    mapped: int = 0
    decode_errors: int = 0
    mapping_errors: int = 0

    @property
    def skipped(self) -> int:
        return self.decode_errors + self.mapping_errors


class Streamer:
    """Producer: decodes the byte stream and queues every mapped record."""

    def __init__(self, stream: BinaryIO, mapper: RecordMapper, max_consecutive_decode_errors: int = 0) -> None:
        self.stream = stream
        self.mapper = mapper
        self.max_consecutive_decode_errors = max_consecutive_decode_errors
        self.stats = StreamStats()

    def run(self, out: DocumentQueue) -> StreamStats:
        try:
            self._produce(out)
        except QueueClosed:
            logger.warning("Document queue closed by consumer; stopped after %d records", self.stats.read)
        finally:
            out.close()
        logger.info(
            "Stream finished read=%d mapped=%d decode_errors=%d mapping_errors=%d",
            self.stats.read,
            self.stats.mapped,
            self.stats.decode_errors,
            self.stats.mapping_errors,
        )
        return self.stats

    def _produce(self, out: DocumentQueue) -> None:
        reader = MARCReader(self.stream, to_unicode=True, force_utf8=True, permissive=True)
        consecutive = 0
        for record in reader:
            self.stats.read += 1
            if record is None:
                self.stats.decode_errors += 1
                consecutive += 1
                logger.warning(
                    "Error parsing MARC record #%d: %s", self.stats.read, reader.current_exception
                )
                if 0 < self.max_consecutive_decode_errors <= consecutive:
                    raise DecodeAbortError(
                        f"Aborting after {consecutive} consecutive MARC decode errors", consecutive
                    )
                continue
            consecutive = 0

            try:
                doc = self.mapper.map(record)
            except RecordMappingError as exc:
                self.stats.mapping_errors += 1
                logger.warning("Skipping record %s: %s", exc.identifier or control_number(record), exc)
                continue

            out.put(doc)
            self.stats.mapped += 1
