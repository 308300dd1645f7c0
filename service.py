"""
Service contract shared by every article backend.
"""

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import List

from hub import Hub
from models import Article, ArticleIndex, ArticleList


class UpdateState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class Service(ABC):
    """Abstract base class for article backends."""

    @abstractmethod
    def filter(self, list_kind: ArticleList) -> List[Article]:
        """
        Get the articles matching a list.

        Args:
            list_kind: Which subset of the index to return

        Returns:
            Copies of the matching articles, ordered by id
        """

    @abstractmethod
    def index(self) -> ArticleIndex:
        """Shared handle to the index. Hold ``index.lock`` while touching it."""

    @abstractmethod
    def save_index(self) -> None:
        """Persist the index."""

    @abstractmethod
    def update(self, hub: Hub) -> bool:
        """
        Update the list of articles.

        Args:
            hub: Receives progress notifications while the update runs

        Returns:
            True when the update was started, False when one is already in progress
        """


class UpdateGuard:
    """Idle/Running state with an atomic check-and-set."""

    def __init__(self):
        self._state = UpdateState.IDLE
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

    @property
    def state(self) -> UpdateState:
        with self._lock:
            return self._state

    def try_start(self) -> bool:
        with self._lock:
            if self._state == UpdateState.RUNNING:
                return False
            self._state = UpdateState.RUNNING
            self._idle.clear()
            return True

    def finish(self) -> None:
        with self._lock:
            self._state = UpdateState.IDLE
            self._idle.set()

    def wait_idle(self, timeout=None) -> bool:
        return self._idle.wait(timeout)
