import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from catalog_indexer.config import Settings
from catalog_indexer.errors import BulkIndexError, CatalogIndexerError, DecodeAbortError
from catalog_indexer.ingest import ingest
from catalog_indexer.lifecycle import IndexLifecycleManager
from catalog_indexer.opensearch import OpenSearchClient

logger = logging.getLogger("catalog-indexer")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-indexer",
        description="Map binary MARC records to documents and manage the search indexes holding them.",
    )
    parser.add_argument("--url", "-u", default=None, help="URL for the OpenSearch cluster (default: OS_URL)")
    parser.add_argument("--index", "-i", default="", help="Name of the index")
    commands = parser.add_subparsers(dest="command", required=True)

    ingest_cmd = commands.add_parser("ingest", help="Parse and ingest the input file ('-' for stdin)")
    ingest_cmd.add_argument("filepath")
    ingest_cmd.add_argument("--rules", default=None, help="Path to MARC rules file (default: MARC_RULES_PATH)")
    ingest_cmd.add_argument(
        "--consumer",
        "-c",
        choices=["opensearch", "json", "title"],
        default="opensearch",
        help="Where mapped documents go",
    )
    ingest_cmd.add_argument("--prefix", "-p", default=None, help="Index prefix and alias name (default: INDEX_PREFIX)")
    ingest_cmd.add_argument("--auto", action="store_true", help="Promote the index to the prefix alias on completion")
    ingest_cmd.add_argument("--debug", action="store_true", help="Output debugging information")

    commands.add_parser("indexes", help="List indexes")
    commands.add_parser("aliases", help="List aliases and associated indexes")
    commands.add_parser("ping", help="Ping the cluster")
    commands.add_parser("delete", help="Delete the index given by --index")

    promote_cmd = commands.add_parser("promote", help="Point the prefix alias at the index given by --index")
    promote_cmd.add_argument("--prefix", "-p", default=None, help="Alias to move (default: INDEX_PREFIX)")

    reindex_cmd = commands.add_parser(
        "reindex",
        help="Copy the index given by --index into another index. The document source must be stored.",
    )
    reindex_cmd.add_argument("--destination", required=True, help="Name of new index")
    return parser


def _open_input(filepath: str):
    if filepath == "-":
        return sys.stdin.buffer
    return open(filepath, "rb")


def _run(args: argparse.Namespace, settings: Settings) -> int:
    client = OpenSearchClient(settings)
    manager = IndexLifecycleManager(client)

    if args.command == "ingest":
        stream = _open_input(args.filepath)
        try:
            result = ingest(
                stream,
                settings,
                client=client,
                index=args.index or None,
                prefix=args.prefix,
                promote=args.auto,
                consumer=args.consumer,
                rules_path=Path(args.rules) if args.rules else None,
            )
        finally:
            if stream is not sys.stdin.buffer:
                stream.close()
        print(f"Total records ingested: {result.indexed}", file=sys.stderr)
        if result.stats.skipped:
            print(
                f"Skipped {result.stats.skipped} records "
                f"(decode errors: {result.stats.decode_errors}, mapping errors: {result.stats.mapping_errors})",
                file=sys.stderr,
            )
        return 0

    if args.command == "indexes":
        for info in manager.list_indices():
            print(
                f"\nName: {info.index}\n  Documents: {info.docs_count}\n  Health: {info.health}\n"
                f"  Status: {info.status}\n  UUID: {info.uuid}\n  Size: {info.store_size}"
            )
        return 0

    if args.command == "aliases":
        for alias in manager.list_aliases():
            print(f"\nAlias: {alias.alias}\n  Index: {alias.index}")
        return 0

    if args.command == "ping":
        info = manager.ping()
        print(
            f"\nName: {info.name}\nCluster: {info.cluster_name}\n"
            f"Version: {info.version}\nLucene version: {info.lucene_version}"
        )
        return 0

    if args.command == "delete":
        manager.delete(args.index)
        return 0

    if args.command == "promote":
        manager.promote(args.index, args.prefix or settings.index_prefix)
        return 0

    if args.command == "reindex":
        count = manager.reindex(args.index, args.destination)
        print(f"{count} documents reindexed")
        return 0

    return 2


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    params: Dict[str, Any] = {}
    if args.url:
        params["os_url"] = args.url
    settings = Settings.from_env().override(params)
    level = "DEBUG" if getattr(args, "debug", False) else settings.log_level
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] [%(name)s] %(message)s")

    try:
        return _run(args, settings)
    except (BulkIndexError, DecodeAbortError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Total records ingested: {exc.indexed}", file=sys.stderr)
        return 1
    except (CatalogIndexerError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
