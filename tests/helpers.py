import threading
from datetime import datetime, timedelta, timezone

from hub import Hub, UpdateEvent
from models import Article


def make_article(article_id, **kwargs):
    defaults = {
        "title": f"Article {article_id}",
        "domain": "example.com",
        "authors": ["Ada", "Grace"],
        "format": "html",
        "language": "en",
        "reading_time": 5,
        "added": datetime(2024, 1, 2, 10, 0, tzinfo=timezone(timedelta(hours=2))),
    }
    defaults.update(kwargs)
    return Article(id=article_id, **defaults)


class RecordingHub(Hub):
    """Keeps every event it receives, in order."""

    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def send(self, event: UpdateEvent) -> None:
        with self._lock:
            self.events.append(event)

    def kinds(self):
        with self._lock:
            return [event.kind for event in self.events]
