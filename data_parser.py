import math
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
from urllib.parse import urlparse

from models import Article, ensure_aware

WORDS_PER_MINUTE = 200


def _normalize_domain(url: Optional[str]) -> str:
    if not url:
        return ""
    try:
        return urlparse(url).netloc.replace("www.", "").lower()
    except ValueError:
        return ""


def parse_pocket_article(raw: Dict[str, Any]) -> Article:
    """
    Parse a raw Pocket API item into an Article.
    Handles missing/null fields, type validation, and timestamp normalization.
    """

    def get_str(field):
        val = raw.get(field)
        return str(val) if val is not None else ""

    def get_int(field):
        val = raw.get(field)
        try:
            return int(val) if val is not None else None
        except (ValueError, TypeError):
            return None

    def normalize_time(ts):
        if not ts:
            return None
        try:
            # Pocket time_added is a Unix timestamp string
            return datetime.fromtimestamp(int(ts), tz=timezone.utc)
        except (ValueError, TypeError, OverflowError, OSError):
            return None

    def get_authors() -> List[str]:
        authors = raw.get("authors")
        if not isinstance(authors, dict):
            return []
        entries = sorted(authors.items(), key=lambda item: str(item[0]))
        return [str(entry.get("name")) for _, entry in entries if isinstance(entry, dict) and entry.get("name")]

    url = raw.get("resolved_url") or raw.get("given_url")
    domain_metadata = raw.get("domain_metadata")
    if isinstance(domain_metadata, dict) and domain_metadata.get("name"):
        domain = str(domain_metadata["name"])
    else:
        domain = _normalize_domain(url)

    reading_time = get_int("time_to_read")
    if reading_time is None:
        word_count = get_int("word_count") or 0
        reading_time = math.ceil(word_count / WORDS_PER_MINUTE)

    return Article(
        id=get_str("item_id"),
        title=get_str("resolved_title") or get_str("given_title"),
        domain=domain,
        authors=get_authors(),
        format="html",
        language=get_str("lang"),
        reading_time=max(reading_time, 0),
        added=ensure_aware(normalize_time(raw.get("time_added"))),
        starred=get_str("favorite") == "1",
        archived=get_str("status") == "1",
    )


def parse_wallabag_entry(raw: Dict[str, Any]) -> Article:
    """Parse a Wallabag ``/api/entries`` item into an Article."""

    def normalize_time(ts):
        if not ts:
            return None
        try:
            # Wallabag sends offsets without a colon, e.g. 2024-01-02T10:00:00+0100
            return datetime.strptime(ts, "%Y-%m-%dT%H:%M:%S%z")
        except (ValueError, TypeError):
            try:
                return datetime.fromisoformat(ts)
            except (ValueError, TypeError):
                return None

    try:
        reading_time = max(int(raw.get("reading_time") or 0), 0)
    except (ValueError, TypeError):
        reading_time = 0

    published_by = raw.get("published_by")
    authors = [str(name) for name in published_by] if isinstance(published_by, list) else []

    return Article(
        id=str(raw["id"]) if raw.get("id") is not None else "",
        title=raw.get("title") or "",
        domain=raw.get("domain_name") or _normalize_domain(raw.get("url")),
        authors=authors,
        format="epub",
        language=raw.get("language") or "",
        reading_time=reading_time,
        added=ensure_aware(normalize_time(raw.get("created_at"))),
        starred=bool(raw.get("is_starred")),
        archived=bool(raw.get("is_archived")),
    )
