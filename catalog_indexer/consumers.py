import json
import logging
import time
from typing import Iterable, List, Optional, TextIO, Tuple

from catalog_indexer.config import Settings
from catalog_indexer.errors import BulkIndexError
from catalog_indexer.opensearch import OpenSearchClient, TRANSIENT_STATUSES
from catalog_indexer.schemas import BibRecord

logger = logging.getLogger(__name__)

ActionPair = Tuple[str, str, str]


def build_action_pair(doc: BibRecord) -> ActionPair:
    meta = {"_id": doc.identifier} if doc.identifier else {}
    action_line = json.dumps({"index": meta}, ensure_ascii=False)
    doc_line = json.dumps(doc.to_source(), ensure_ascii=False)
    return doc.identifier, action_line, doc_line


def build_payload(pairs: List[ActionPair]) -> bytes:
    lines = [line for _, action_line, doc_line in pairs for line in (action_line, doc_line)]
    return ("\n".join(lines) + "\n").encode("utf-8")


class BulkIndexer:
    """Consumer: drains the document queue into the search engine in batches."""

    def __init__(self, client: OpenSearchClient, index_name: str, settings: Settings) -> None:
        self.client = client
        self.index_name = index_name
        self.bulk_size = max(1, settings.bulk_size)
        self.retry_max = settings.retry_max
        self.retry_backoff_sec = settings.retry_backoff_sec
        self.bulk_delay_sec = settings.bulk_delay_sec
        self.max_failures = settings.max_failures
        self.indexed = 0
        self.failed = 0
        self.retries = 0

    def run(self, documents: Iterable[BibRecord]) -> int:
        pending: List[ActionPair] = []
        for doc in documents:
            pending.append(build_action_pair(doc))
            if len(pending) >= self.bulk_size:
                self.flush(pending)
                pending = []
        if pending:
            self.flush(pending)
        logger.info("Bulk indexing finished index=%s indexed=%d failed=%d", self.index_name, self.indexed, self.failed)
        return self.indexed

    def flush(self, pairs: List[ActionPair]) -> None:
        indexed, failed, retried = self.bulk_request(pairs)
        self.indexed += indexed
        self.failed += failed
        self.retries += retried
        logger.info("[bulk] index=%s indexed=%d failed=%d retried=%d", self.index_name, indexed, failed, retried)

        if indexed == 0 and failed > 0:
            raise BulkIndexError(
                f"Every document in a batch of {len(pairs)} was rejected by {self.index_name}",
                indexed=self.indexed,
            )
        if self.failed > self.max_failures:
            raise BulkIndexError(
                f"Exceeded max failures ({self.failed} > {self.max_failures})",
                indexed=self.indexed,
            )

    def bulk_request(self, pairs: List[ActionPair]) -> Tuple[int, int, int]:
        indexed = 0
        failed = 0
        retried = 0
        attempt = 0
        pending = pairs

        while pending and attempt <= self.retry_max:
            if self.bulk_delay_sec > 0:
                time.sleep(self.bulk_delay_sec)
            self.client.maybe_throttle()
            status, body = self.client.bulk(self.index_name, build_payload(pending))
            if status in TRANSIENT_STATUSES:
                sleep_for = self.retry_backoff_sec * (2 ** attempt)
                logger.warning(
                    "[bulk] HTTP %s, retrying in %.1fs (attempt %d/%d)", status, sleep_for, attempt + 1, self.retry_max
                )
                time.sleep(sleep_for)
                attempt += 1
                continue
            if status >= 300:
                raise BulkIndexError(
                    f"Bulk request failed (HTTP {status}): {body}",
                    indexed=self.indexed + indexed,
                    status=status,
                )

            result = json.loads(body)
            items = result.get("items", [])
            retry_pairs: List[ActionPair] = []
            for idx, pair in enumerate(pending):
                item = items[idx] if idx < len(items) else {}
                action = item.get("index") or item.get("create") or item.get("update")
                if not action:
                    failed += 1
                    logger.warning("[bulk] no result for doc_id=%s in bulk response", pair[0])
                    continue
                if action.get("error"):
                    status_code = action.get("status")
                    if status_code in TRANSIENT_STATUSES and attempt < self.retry_max:
                        retry_pairs.append(pair)
                    else:
                        failed += 1
                        error_info = action.get("error")
                        reason = error_info.get("reason") if isinstance(error_info, dict) else str(error_info)
                        logger.warning("[bulk] rejected doc_id=%s status=%s reason=%s", pair[0], status_code, reason)
                else:
                    indexed += 1

            if not retry_pairs:
                return indexed, failed, retried

            retried += len(retry_pairs)
            pending = retry_pairs
            attempt += 1
            time.sleep(self.retry_backoff_sec * (2 ** max(attempt - 1, 0)))

        for doc_id, _, _ in pending:
            failed += 1
            logger.warning("[bulk] retry exhausted doc_id=%s", doc_id)
        return indexed, failed, retried


class JsonConsumer:
    """Writes every document into a single JSON array."""

    def __init__(self, output: TextIO) -> None:
        self.output = output

    def run(self, documents: Iterable[BibRecord]) -> int:
        count = 0
        self.output.write("[")
        for doc in documents:
            if count:
                self.output.write(",")
            self.output.write("\n")
            self.output.write(json.dumps(doc.to_source(), ensure_ascii=False))
            count += 1
        self.output.write("\n]\n" if count else "]\n")
        self.output.flush()
        return count


class TitleConsumer:
    def __init__(self, output: TextIO) -> None:
        self.output = output

    def run(self, documents: Iterable[BibRecord]) -> int:
        count = 0
        for doc in documents:
            self.output.write(f"{doc.title}\n")
            count += 1
        self.output.flush()
        return count


def get_consumer(
    kind: str,
    settings: Settings,
    client: Optional[OpenSearchClient] = None,
    index_name: Optional[str] = None,
    output: Optional[TextIO] = None,
):
    if kind == "opensearch":
        if client is None or not index_name:
            raise ValueError("opensearch consumer needs a client and an index name")
        return BulkIndexer(client, index_name, settings)
    if kind == "json":
        return JsonConsumer(output)
    if kind == "title":
        return TitleConsumer(output)
    raise ValueError(f"Unknown consumer: {kind}")
