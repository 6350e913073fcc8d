"""
Command line entry point for docingest.

Usage:
    docingest crawl helpcenter [--dry-run] [--max-requests N] [--max-concurrency N]
    docingest crawl cloud
    docingest policies [--feed-url URL] [--dry-run]
    docingest search "configure extension install" [--kind policies] [--limit 5]

Exit status is 1 when the run fails and 2 when it completes with failed upserts.
"""

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from docingest import constants
from docingest.config import IndexerSettings
from docingest.crawler import CrawlDriver, HttpFetcher
from docingest.exceptions import DocIngestError
from docingest.indexer import BatchIndexer
from docingest.logging_utils import safe_log_event
from docingest.models import Document, IndexReport
from docingest.policies import build_policy_documents, fetch_policy_feed, summarize_policies
from docingest.search import search_articles, search_policies
from docingest.sources import SOURCES, get_source
from docingest.vector_store import UpstashVectorStore

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docingest",
        description="Crawl documentation sites and policy feeds into a vector index",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Crawl the help center without writing to the index
    docingest crawl helpcenter --dry-run

    # Index the policy reference
    docingest policies

    # Query indexed policies
    docingest search "block extensions" --kind policies --limit 5

Environment:
    UPSTASH_VECTOR_REST_URL, UPSTASH_VECTOR_REST_TOKEN must be set unless --dry-run.
""",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    crawl = subparsers.add_parser("crawl", help="Crawl a documentation site and index it")
    crawl.add_argument("source", choices=sorted(SOURCES), help="Site to crawl")
    crawl.add_argument(
        "--dry-run",
        action="store_true",
        help="Crawl and convert without writing to the index",
    )
    crawl.add_argument(
        "--max-requests",
        type=positive_int,
        help=f"Request budget (default: MAX_REQUESTS or {constants.MAX_REQUESTS})",
    )
    crawl.add_argument(
        "--max-concurrency",
        type=positive_int,
        help=f"Parallel fetches (default: MAX_CONCURRENCY or {constants.MAX_CONCURRENCY})",
    )
    crawl.set_defaults(func=run_crawl)

    policies = subparsers.add_parser("policies", help="Index the structured policy feed")
    policies.add_argument(
        "--feed-url",
        default=constants.POLICY_FEED_URL,
        help="Policy feed URL",
    )
    policies.add_argument(
        "--dry-run",
        action="store_true",
        help="Build policy documents without writing to the index",
    )
    policies.set_defaults(func=run_policies)

    search = subparsers.add_parser("search", help="Query the index")
    search.add_argument("query", help="Search text")
    search.add_argument(
        "--kind",
        choices=["articles", "policies"],
        default="articles",
        help="Result shape (default: articles)",
    )
    search.add_argument(
        "--limit",
        type=int,
        default=constants.DEFAULT_SEARCH_RESULTS,
        help=f"Maximum results (default: {constants.DEFAULT_SEARCH_RESULTS})",
    )
    search.set_defaults(func=run_search)

    return parser


def run_crawl(args: argparse.Namespace, settings: IndexerSettings) -> int:
    source = get_source(args.source)
    if not args.dry_run:
        settings.require_vector_store()

    config = source.crawl_config(
        max_requests=args.max_requests or settings.max_requests,
        max_concurrency=args.max_concurrency or settings.max_concurrency,
        request_delay_ms=settings.request_delay_ms,
        timeout=settings.request_timeout,
        headers={**source.headers, **settings.crawl_headers},
    )
    event = {"seeds": list(source.seeds), **config.to_dict()}
    logger.info(f"Crawling {source.name}: {safe_log_event(event)}")

    fetcher = HttpFetcher(
        timeout=config.timeout,
        delay_ms=config.request_delay_ms,
        cookies=config.cookies,
        headers=config.headers,
    )
    result = CrawlDriver(fetcher, source.handle_page, config).run(source.seeds)

    print(f"Crawled {result.stats['pages_visited']} pages, {len(result.documents)} documents")
    if result.errors:
        print(f"Pages with errors: {len(result.errors)}")

    return _index(result.documents, settings, args.dry_run)


def run_policies(args: argparse.Namespace, settings: IndexerSettings) -> int:
    if not args.dry_run:
        settings.require_vector_store()

    fetcher = HttpFetcher(
        timeout=settings.request_timeout,
        headers={"Accept": "application/json", **settings.crawl_headers},
    )
    feed = fetch_policy_feed(args.feed_url, fetcher)
    documents = build_policy_documents(feed)

    stats = summarize_policies(documents)
    logger.info(f"Policy statistics: {stats}")
    print(f"Built {stats['total_policies']} policy documents ({stats['deprecated_policies']} deprecated)")

    return _index(documents, settings, args.dry_run)


def run_search(args: argparse.Namespace, settings: IndexerSettings) -> int:
    url, token = settings.require_vector_store()
    search = search_policies if args.kind == "policies" else search_articles

    with UpstashVectorStore(url, token, timeout=settings.request_timeout) as store:
        results = search(store, args.query, args.limit)

    print(json.dumps([r.to_dict() for r in results], indent=2))
    return 0


def _index(documents: list[Document], settings: IndexerSettings, dry_run: bool) -> int:
    if dry_run:
        print(f"\nThis was a DRY RUN. {len(documents)} documents were not indexed.")
        return 0

    url, token = settings.require_vector_store()
    with UpstashVectorStore(url, token, timeout=settings.request_timeout) as store:
        indexer = BatchIndexer(
            store,
            batch_size=settings.batch_size,
            max_workers=settings.upsert_concurrency,
        )
        report = indexer.index_all(documents)

    _print_report(report)
    return 0 if report.ok else 2


def _print_report(report: IndexReport) -> None:
    print("\n" + "=" * 60)
    print("INDEXING SUMMARY")
    print("=" * 60)
    print(f"Documents attempted: {report.attempted}")
    print(f"Documents indexed:   {report.succeeded}")
    print(f"Documents failed:    {report.failed}")
    print(f"Batches:             {report.batches}")
    print("=" * 60)

    for failure in report.failures:
        print(f"  {failure.document_id}: {failure.error}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        settings = IndexerSettings.from_env()
        level = "DEBUG" if args.verbose else settings.log_level
        logging.getLogger().setLevel(getattr(logging, level, logging.INFO))

        exit_code = args.func(args, settings)
    except DocIngestError as e:
        logger.error(f"{args.command.capitalize()} failed: {e}")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
