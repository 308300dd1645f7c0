#!/usr/bin/env python3
"""
Article Sync Tool
Keeps a local index of saved articles in sync with a read-it-later service.
"""

import sys
import logging
import argparse
from typing import List, Optional

from config import Settings
from errors import IndexSaveError
from hub import LoggingHub
from loader import load
from models import Article, ArticleList
from remote import RemoteService
from service import Service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def sync_articles(service: Service, timeout: Optional[float] = None) -> bool:
    """
    Run one update and wait for it to finish.
    """
    hub = LoggingHub(verbose=True)
    if not service.update(hub):
        logger.warning("⏳ An update is already running")
        return False

    if isinstance(service, RemoteService):
        if not service.wait(timeout):
            logger.error("⏱️  Update did not finish in time, cancelling")
            service.cancel()
            service.wait()
            return False
        if hub.success is False:
            return False

    starred = len(service.filter(ArticleList.STARRED))
    unread = len(service.filter(ArticleList.UNREAD))
    total = len(service.filter(ArticleList.ALL))
    print("\n" + "=" * 60)
    print("📊 SYNC SUMMARY")
    print("=" * 60)
    print(f"   Articles: {total:,}")
    print(f"   Unread: {unread:,}")
    print(f"   Starred: {starred:,}")
    print("=" * 60)
    return True


def format_article(article: Article, articles_dir: str) -> str:
    flags = ""
    flags += "★" if article.starred else " "
    flags += "A" if article.archived else " "
    pending = ",".join(sorted(change.value for change in article.changed))
    info = article.file(articles_dir)
    line = f"{article.id:>12} {flags} {article.title} ({article.domain}, {article.reading_time} min, {info.size:,} bytes)"
    if pending:
        line += f" [pending: {pending}]"
    return line


def list_articles(service: Service, list_kind: ArticleList, articles_dir: str) -> List[Article]:
    articles = service.filter(list_kind)
    for article in articles:
        print(format_article(article, articles_dir))
    logger.info(f"📄 {len(articles):,} articles in '{list_kind.value}'")
    return articles


def apply_action(service: Service, command: str, article_id: str, undo: bool = False) -> bool:
    """
    Record a local star/archive/delete and persist the index.
    """
    index = service.index()
    try:
        if command == "star":
            index.star(article_id, starred=not undo)
        elif command == "archive":
            index.archive(article_id, archived=not undo)
        elif command == "delete":
            index.delete(article_id)
        else:
            raise ValueError(f"Unknown action: {command}")
    except KeyError:
        logger.error(f"❌ No article with id {article_id}")
        return False

    try:
        service.save_index()
    except IndexSaveError as e:
        logger.error(f"❌ {e}")
        return False
    logger.info(f"✅ {command} recorded for {article_id}, will be pushed on next sync")
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Article Sync Tool")
    parser.add_argument("--api", help="Backend to use: pocket, wallabag (default: $ARTICLES_API)")
    parser.add_argument("--articles-dir", help="Index and document directory (default: $ARTICLES_DIR)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Fetch remote articles and push local changes")
    sync_parser.add_argument("--timeout", type=float, default=None,
                             help="Give up after this many seconds")

    list_parser = subparsers.add_parser("list", help="Show articles from the local index")
    list_parser.add_argument("--list", dest="list_kind", default="unread",
                             choices=[kind.value for kind in ArticleList],
                             help="Which articles to show (default: unread)")

    star_parser = subparsers.add_parser("star", help="Star an article")
    star_parser.add_argument("article_id")
    star_parser.add_argument("--unstar", action="store_true", help="Remove the star instead")

    archive_parser = subparsers.add_parser("archive", help="Archive an article")
    archive_parser.add_argument("article_id")
    archive_parser.add_argument("--unarchive", action="store_true", help="Move back to unread")

    delete_parser = subparsers.add_parser("delete", help="Delete an article")
    delete_parser.add_argument("article_id")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    settings = Settings.from_env()
    if args.api:
        settings.api = args.api.lower()
    if args.articles_dir:
        settings.articles_dir = args.articles_dir

    service = load(settings)
    try:
        if args.command == "sync":
            ok = sync_articles(service, timeout=args.timeout)
        elif args.command == "list":
            list_articles(service, ArticleList(args.list_kind), settings.articles_dir)
            ok = True
        elif args.command == "star":
            ok = apply_action(service, "star", args.article_id, undo=args.unstar)
        elif args.command == "archive":
            ok = apply_action(service, "archive", args.article_id, undo=args.unarchive)
        else:
            ok = apply_action(service, "delete", args.article_id)
    except KeyboardInterrupt:
        logger.info("⏹️  Interrupted by user")
        if isinstance(service, RemoteService):
            service.cancel()
            service.wait()
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
