from typing import List

from hub import Hub
from models import Article, ArticleIndex, ArticleList
from service import Service


class Dummy(Service):
    """Backend used when no remote service is configured."""

    def __init__(self):
        self._index = ArticleIndex()

    def filter(self, list_kind: ArticleList) -> List[Article]:
        return []

    def index(self) -> ArticleIndex:
        return self._index

    def save_index(self) -> None:
        pass

    def update(self, hub: Hub) -> bool:
        # nothing to do, always finishes immediately
        return True
