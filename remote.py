#!/usr/bin/env python3
"""
Remote Service Module for Article Sync
Reconciles the local index with a networked read-it-later service.
"""

import copy
import logging
import threading
from abc import abstractmethod
from typing import Dict, List, Optional

from errors import IndexSaveError, RemoteFetchError, RemoteMutationPushError
from hub import Hub, UpdateEvent
from models import ARTICLES_DIR, Article, ArticleIndex, ArticleList, Change
from service import Service, UpdateGuard, UpdateState
from storage import load_or_create_index, save_index

logger = logging.getLogger(__name__)

# Deletion first: once it is confirmed the other changes are moot
PUSH_ORDER = [Change.DELETED, Change.STARRED, Change.ARCHIVED]


def _field_value(article: Article, change: Change) -> bool:
    if change == Change.STARRED:
        return article.starred
    if change == Change.ARCHIVED:
        return article.archived
    return True


def _refresh(local: Article, remote: Article, protected: set) -> Article:
    """Take the remote record, keeping local values for protected fields."""
    merged = copy.deepcopy(remote)
    merged.changed = set(local.changed)
    if Change.STARRED in protected:
        merged.starred = local.starred
    if Change.ARCHIVED in protected:
        merged.archived = local.archived
    return merged


class RemoteService(Service):
    """
    Base class for backends that sync against a remote service.

    Subclasses implement ``fetch_remote`` and ``push_change``; the update
    lifecycle, locking and merge rules live here.
    """

    name = "remote"

    def __init__(self, articles_dir: str = ARTICLES_DIR, index: Optional[ArticleIndex] = None):
        self.articles_dir = articles_dir
        self._index = index if index is not None else load_or_create_index(articles_dir)
        self._guard = UpdateGuard()
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @abstractmethod
    def fetch_remote(self, hub: Hub) -> List[Article]:
        """
        Fetch the complete remote article list.

        Raises:
            RemoteFetchError: if the list could not be retrieved
        """

    @abstractmethod
    def push_change(self, article: Article, change: Change) -> None:
        """
        Send one local change to the remote service.

        Args:
            article: Snapshot of the article at push time
            change: Which attribute to push

        Raises:
            RemoteMutationPushError: if the remote did not accept the change
        """

    def filter(self, list_kind: ArticleList) -> List[Article]:
        return self._index.filter(list_kind)

    def index(self) -> ArticleIndex:
        return self._index

    def save_index(self) -> None:
        save_index(self._index, self.articles_dir)

    def update(self, hub: Hub) -> bool:
        if not self._guard.try_start():
            logger.debug(f"{self.name}: update already in progress")
            return False

        self._cancelled.clear()
        self._thread = threading.Thread(
            target=self._run_update, args=(hub,), name=f"{self.name}-update", daemon=True
        )
        try:
            self._thread.start()
        except RuntimeError:
            self._guard.finish()
            raise
        return True

    def is_running(self) -> bool:
        return self._guard.state == UpdateState.RUNNING

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until no update is running. Returns False on timeout."""
        return self._guard.wait_idle(timeout)

    def cancel(self) -> None:
        """Ask the running update to stop before it touches the index."""
        if self.is_running():
            logger.info(f"{self.name}: cancelling update")
            self._cancelled.set()

    def _run_update(self, hub: Hub) -> None:
        success = False
        try:
            hub.send(UpdateEvent.started(self.name))
            success = self._reconcile(hub)
        except Exception as e:
            logger.error(f"{self.name}: unexpected error during update: {e}", exc_info=True)
            hub.send(UpdateEvent.error(f"Unexpected error during update: {e}"))
        finally:
            try:
                hub.send(UpdateEvent.finished(success))
            finally:
                self._guard.finish()

    def _reconcile(self, hub: Hub) -> bool:
        try:
            remote = self.fetch_remote(hub)
        except RemoteFetchError as e:
            logger.error(f"{self.name}: {e}")
            hub.send(UpdateEvent.error(str(e)))
            return False

        logger.info(f"{self.name}: fetched {len(remote)} remote articles")
        hub.send(UpdateEvent.progress("Fetched remote articles", len(remote), len(remote)))
        if self._is_cancelled():
            return False

        with self._index.lock:
            pending = [
                copy.deepcopy(article)
                for _, article in sorted(self._index.articles.items())
                if article.changed
            ]

        confirmed = self._push_pending(pending, hub)
        if confirmed is None or self._is_cancelled():
            return False

        self._merge(remote, confirmed)
        hub.send(UpdateEvent.progress("Merged remote articles", len(self._index)))

        try:
            self.save_index()
        except IndexSaveError as e:
            logger.error(f"{self.name}: {e}")
            hub.send(UpdateEvent.error(str(e)))
            return False
        return True

    def _push_pending(
        self, pending: List[Article], hub: Hub
    ) -> Optional[Dict[str, Dict[Change, bool]]]:
        """
        Push every pending change.

        Returns:
            Confirmed changes per article id, mapped to the value that was
            pushed, or None if the update was cancelled
        """
        confirmed: Dict[str, Dict[Change, bool]] = {}
        total = sum(len(article.changed) for article in pending)
        pushed = 0

        for article in pending:
            for change in PUSH_ORDER:
                if change not in article.changed:
                    continue
                if self._is_cancelled():
                    return None
                pushed += 1
                if Change.DELETED in confirmed.get(article.id, {}):
                    continue
                try:
                    self.push_change(article, change)
                    confirmed.setdefault(article.id, {})[change] = _field_value(article, change)
                    logger.debug(f"{self.name}: pushed {change.value} for {article.id}")
                except RemoteMutationPushError as e:
                    logger.warning(f"{self.name}: {e}")
                    hub.send(UpdateEvent.error(str(e)))
                hub.send(UpdateEvent.progress("Pushing local changes", pushed, total))

        return confirmed

    def _merge(self, remote: List[Article], confirmed: Dict[str, Dict[Change, bool]]) -> None:
        remote_by_id = {article.id: article for article in remote}
        deleted = {
            article_id for article_id, changes in confirmed.items() if Change.DELETED in changes
        }

        with self._index.lock:
            articles = self._index.articles

            for article_id, changes in confirmed.items():
                local = articles.get(article_id)
                if local is None:
                    continue
                if article_id in deleted:
                    del articles[article_id]
                    continue
                for change, value in changes.items():
                    # The user may have toggled the field again while we pushed
                    if _field_value(local, change) == value:
                        local.changed.discard(change)

            for article_id in list(articles):
                local = articles[article_id]
                remote_article = remote_by_id.get(article_id)
                if remote_article is None:
                    if Change.DELETED not in local.changed:
                        del articles[article_id]
                    continue
                protected = set(local.changed) | set(confirmed.get(article_id, {}))
                articles[article_id] = _refresh(local, remote_article, protected)

            for article_id, remote_article in remote_by_id.items():
                if article_id not in articles and article_id not in deleted:
                    articles[article_id] = copy.deepcopy(remote_article)

            logger.info(f"{self.name}: index now holds {len(articles)} articles")

    def _is_cancelled(self) -> bool:
        if self._cancelled.is_set():
            logger.warning(f"{self.name}: update cancelled, index left unchanged")
            return True
        return False
