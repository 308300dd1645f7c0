#!/usr/bin/env python3
"""
Wallabag Backend Module for Article Sync
Fetches entries from a Wallabag instance and pushes local changes back.
"""

import json
import time
import logging
from typing import Callable, Dict, Generator, List, Optional
import requests
from requests import Session

from data_parser import parse_wallabag_entry
from errors import RemoteFetchError, RemoteMutationPushError
from hub import Hub, UpdateEvent
from models import ARTICLES_DIR, Article, ArticleIndex, Change
from remote import RemoteService

logger = logging.getLogger(__name__)


class WallabagClient:
    """Handles OAuth and entry requests against a Wallabag server."""

    def __init__(
        self,
        session: Session,
        url: str,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
    ):
        self.session = session
        self.base_url = url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.username = username
        self.password = password
        self.timeout = 30
        self.per_page = 100
        self.access_token: Optional[str] = None
        self.token_expires_at = 0.0

    def authenticate(self) -> str:
        """
        Get an access token with the password grant.

        Raises:
            RemoteFetchError: if the server refuses the credentials
        """
        try:
            response = self.session.post(
                f"{self.base_url}/oauth/v2/token",
                data={
                    "grant_type": "password",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "username": self.username,
                    "password": self.password,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteFetchError(f"Network error during Wallabag authentication: {e}") from e

        if response.status_code != 200:
            raise RemoteFetchError(
                f"Wallabag authentication failed with status {response.status_code}"
            )
        try:
            data = response.json()
            self.access_token = data["access_token"]
        except (json.JSONDecodeError, ValueError, KeyError) as e:
            raise RemoteFetchError(f"Invalid token response from Wallabag: {e}") from e

        # Refresh a minute before the server says the token runs out
        self.token_expires_at = time.time() + int(data.get("expires_in", 3600)) - 60
        logger.debug("Obtained Wallabag access token")
        return self.access_token

    def _headers(self) -> Dict[str, str]:
        if not self.access_token or time.time() >= self.token_expires_at:
            self.authenticate()
        return {"Authorization": f"Bearer {self.access_token}"}

    def fetch_entries(
        self, progress_callback: Optional[Callable[[int, Optional[int]], None]] = None
    ) -> Generator[Dict, None, None]:
        """
        Fetch every entry, page by page.

        Args:
            progress_callback: Called with (fetched, total) after each page

        Yields:
            Raw entry dictionaries

        Raises:
            RemoteFetchError: if any page fails
        """
        page = 1
        fetched = 0
        while True:
            data = self._fetch_page(page)
            items = (data.get("_embedded") or {}).get("items") or []
            for item in items:
                yield item
                fetched += 1

            if progress_callback:
                progress_callback(fetched, data.get("total"))

            pages = int(data.get("pages") or 1)
            if not items or page >= pages:
                break
            page += 1

        logger.info(f"Wallabag fetch completed. Total entries: {fetched}")

    def _fetch_page(self, page: int) -> Dict:
        try:
            response = self.session.get(
                f"{self.base_url}/api/entries.json",
                params={"page": page, "perPage": self.per_page, "detail": "metadata"},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RemoteFetchError(f"Network error during Wallabag request: {e}") from e

        if response.status_code != 200:
            raise RemoteFetchError(
                f"Wallabag request failed with status {response.status_code}: {response.text}"
            )
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise RemoteFetchError(f"Invalid JSON response from Wallabag: {e}") from e

    def update_entry(self, entry_id: str, **fields) -> bool:
        response = self.session.patch(
            f"{self.base_url}/api/entries/{entry_id}.json",
            data=fields,
            headers=self._headers(),
            timeout=self.timeout,
        )
        return response.status_code == 200

    def delete_entry(self, entry_id: str) -> bool:
        response = self.session.delete(
            f"{self.base_url}/api/entries/{entry_id}.json",
            headers=self._headers(),
            timeout=self.timeout,
        )
        # Already gone counts as deleted
        return response.status_code in (200, 204, 404)


class WallabagService(RemoteService):
    name = "wallabag"

    def __init__(
        self,
        client: WallabagClient,
        articles_dir: str = ARTICLES_DIR,
        index: Optional[ArticleIndex] = None,
    ):
        super().__init__(articles_dir, index)
        self.client = client

    def fetch_remote(self, hub: Hub) -> List[Article]:
        def progress_callback(fetched: int, total: Optional[int]):
            hub.send(UpdateEvent.progress("Fetching Wallabag entries", fetched, total))

        articles = []
        for raw in self.client.fetch_entries(progress_callback=progress_callback):
            article = parse_wallabag_entry(raw)
            if not article.id:
                logger.warning("Skipping Wallabag entry without id")
                continue
            articles.append(article)
        return articles

    def push_change(self, article: Article, change: Change) -> None:
        try:
            if change == Change.DELETED:
                accepted = self.client.delete_entry(article.id)
            elif change == Change.STARRED:
                accepted = self.client.update_entry(article.id, starred=int(article.starred))
            else:
                accepted = self.client.update_entry(article.id, archive=int(article.archived))
        except (requests.exceptions.RequestException, RemoteFetchError) as e:
            raise RemoteMutationPushError(article.id, change.value, str(e)) from e
        if not accepted:
            raise RemoteMutationPushError(article.id, change.value, "Wallabag rejected the change")
