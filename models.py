import copy
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set, Any

ARTICLES_DIR = ".articles"


def ensure_aware(value: Optional[datetime]) -> datetime:
    """Attach UTC to naive timestamps; missing ones become the current time."""
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Change(Enum):
    """A locally made modification that has not been pushed yet."""

    DELETED = "deleted"
    STARRED = "starred"
    ARCHIVED = "archived"


class ArticleList(Enum):
    ALL = "all"
    UNREAD = "unread"
    STARRED = "starred"
    ARCHIVED = "archived"
    DELETED = "deleted"
    UNFILED = "unfiled"


@dataclass
class FileInfo:
    path: str
    kind: str
    size: int = 0


@dataclass
class Article:
    id: str
    title: str = ""
    domain: str = ""
    authors: List[str] = field(default_factory=list)
    format: str = "html"
    language: str = ""
    reading_time: int = 0
    added: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    starred: bool = False
    archived: bool = False
    changed: Set[Change] = field(default_factory=set)

    def path(self, articles_dir: str = ARTICLES_DIR) -> str:
        return os.path.abspath(
            os.path.join(articles_dir, f"article-{self.id}.{self.format}")
        )

    def file(self, articles_dir: str = ARTICLES_DIR) -> FileInfo:
        """Resolve the stored document; size is 0 when it is not on disk."""
        path = self.path(articles_dir)
        try:
            size = os.path.getsize(path)
        except OSError:
            size = 0
        return FileInfo(path=path, kind=self.format, size=size)

    def matches(self, list_kind: ArticleList) -> bool:
        deleted = Change.DELETED in self.changed
        if list_kind == ArticleList.ALL:
            return True
        if list_kind == ArticleList.UNREAD:
            return not self.archived and not deleted
        if list_kind == ArticleList.STARRED:
            return self.starred
        if list_kind == ArticleList.ARCHIVED:
            return self.archived
        if list_kind == ArticleList.DELETED:
            return deleted
        if list_kind == ArticleList.UNFILED:
            return not self.starred and not self.archived and not deleted
        return False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        # Empty change sets are left out of the persisted record
        if self.changed:
            data["changed"] = sorted(change.value for change in self.changed)
        data.update(
            {
                "title": self.title,
                "domain": self.domain,
                "authors": list(self.authors),
                "format": self.format,
                "language": self.language,
                "reading_time": self.reading_time,
                "added": ensure_aware(self.added).isoformat(),
                "starred": self.starred,
                "archived": self.archived,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        """
        Build an Article from its persisted form.

        Raises:
            KeyError, ValueError, TypeError: if the record is malformed
        """
        added = data.get("added")
        reading_time = int(data.get("reading_time", 0))
        if reading_time < 0:
            raise ValueError(f"Negative reading time for article {data['id']}")
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            domain=data.get("domain", ""),
            authors=list(data.get("authors", [])),
            format=data.get("format", "html"),
            language=data.get("language", ""),
            reading_time=reading_time,
            added=ensure_aware(datetime.fromisoformat(added) if added else None),
            starred=bool(data.get("starred", False)),
            archived=bool(data.get("archived", False)),
            changed={Change(value) for value in data.get("changed", [])},
        )


class ArticleIndex:
    """
    All known articles keyed by id.

    The index is shared between the UI thread and update workers. Anything that
    reads or mutates ``articles`` must hold ``lock``; the helper methods below
    take it themselves.
    """

    def __init__(self, articles: Optional[Dict[str, Article]] = None):
        self.articles: Dict[str, Article] = dict(articles or {})
        self.lock = threading.RLock()
        # Orders snapshot and write of concurrent saves
        self.save_lock = threading.Lock()

    def __len__(self) -> int:
        with self.lock:
            return len(self.articles)

    def __contains__(self, article_id: str) -> bool:
        with self.lock:
            return article_id in self.articles

    def get(self, article_id: str) -> Optional[Article]:
        with self.lock:
            article = self.articles.get(article_id)
            return copy.deepcopy(article) if article else None

    def snapshot(self) -> List[Article]:
        """Copies of every article, sorted by id."""
        with self.lock:
            return [copy.deepcopy(self.articles[key]) for key in sorted(self.articles)]

    def filter(self, list_kind: ArticleList) -> List[Article]:
        with self.lock:
            return [
                copy.deepcopy(self.articles[key])
                for key in sorted(self.articles)
                if self.articles[key].matches(list_kind)
            ]

    def star(self, article_id: str, starred: bool = True) -> None:
        with self.lock:
            article = self.articles[article_id]
            if article.starred != starred:
                article.starred = starred
                article.changed.add(Change.STARRED)

    def archive(self, article_id: str, archived: bool = True) -> None:
        with self.lock:
            article = self.articles[article_id]
            if article.archived != archived:
                article.archived = archived
                article.changed.add(Change.ARCHIVED)

    def delete(self, article_id: str) -> None:
        with self.lock:
            self.articles[article_id].changed.add(Change.DELETED)

    def to_dict(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "articles": {
                    key: self.articles[key].to_dict() for key in sorted(self.articles)
                }
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArticleIndex":
        articles = {}
        for key, record in data["articles"].items():
            article = Article.from_dict(record)
            if article.id != key:
                raise ValueError(f"Index key {key} does not match article id {article.id}")
            articles[key] = article
        return cls(articles)
