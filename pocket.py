#!/usr/bin/env python3
"""
Pocket Backend Module for Article Sync
Fetches articles from the Pocket API with pagination and rate limiting,
and pushes local changes back through the actions endpoint.
"""

import json
import random
import time
import logging
from typing import Callable, Dict, Generator, List, Optional
import requests
from requests import Session

from data_parser import parse_pocket_article
from errors import RemoteFetchError, RemoteMutationPushError
from hub import Hub, UpdateEvent
from models import ARTICLES_DIR, Article, ArticleIndex, Change
from remote import RemoteService

logger = logging.getLogger(__name__)

# Pocket item status values
STATUS_UNREAD = "0"
STATUS_ARCHIVED = "1"
STATUS_DELETED = "2"


class PocketAuthenticator:
    def __init__(self, consumer_key: Optional[str] = None, access_token: Optional[str] = None):
        self.consumer_key = consumer_key
        self.access_token = access_token
        self.session = None

    def load_credentials(self) -> bool:
        if (
            not self.consumer_key
            or not self.access_token
            or self.consumer_key.strip() == ""
            or self.access_token.strip() == ""
        ):
            self.session = None
            return False
        self.session = requests.Session()
        return True

    def get_session(self) -> Optional[requests.Session]:
        return self.session


class PocketClient:
    """Handles talking to the Pocket API with pagination and rate limiting."""

    def __init__(self, session: Session, consumer_key: str, access_token: str):
        self.session = session
        self.consumer_key = consumer_key
        self.access_token = access_token
        self.base_url = "https://getpocket.com/v3"
        self.timeout = 30
        self.base_rate_limit_delay = 1.5  # Base delay in seconds
        self.max_batch_size = 272  # Discovered API limit
        self.progressive_delay_factor = 0.1  # Increase delay by 10% every 10 batches
        self.rate_limit_backoff = 2.0  # Multiplier for rate limit retries
        self.max_retries = 3

    def fetch_articles(
        self,
        state: str = "all",
        count: int = 272,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> Generator[Dict, None, None]:
        """
        Fetch articles from Pocket API with pagination.

        Args:
            state: "all", "unread", or "archive"
            count: Number of articles per request (max 272 - discovered limit)
            progress_callback: Called with the running total after each batch

        Yields:
            Dictionary containing article data

        Raises:
            RemoteFetchError: if any batch fails
        """
        offset = 0
        total_fetched = 0

        # Ensure count doesn't exceed the discovered API limit
        batch_count = min(count, self.max_batch_size)
        logger.info(f"Starting article fetch (state: {state}, batch size: {batch_count})")

        while True:
            logger.debug(f"Fetching batch: offset={offset}, count={batch_count}")
            response_data = self._fetch_batch(
                detail_type="complete", state=state, count=batch_count, offset=offset
            )

            # An empty account comes back as "list": []
            articles = response_data.get("list") or {}
            if not articles:
                logger.info("No more articles to fetch")
                break

            for article_data in articles.values():
                yield article_data
                total_fetched += 1

            if progress_callback:
                progress_callback(total_fetched)

            offset += batch_count
            if len(articles) < batch_count:
                break

            current_delay = self._calculate_progressive_delay(offset // self.max_batch_size)
            logger.debug(f"Rate limiting delay: {current_delay:.1f}s")
            time.sleep(current_delay)

        logger.info(f"Article fetch completed. Total articles: {total_fetched}")

    def _fetch_batch(
        self, detail_type: str, state: str, count: int, offset: int, attempt: int = 0
    ) -> Dict:
        """
        Fetch a single batch of articles from Pocket API.

        Args:
            detail_type: Level of detail for articles
            state: Article state filter
            count: Number of articles to fetch
            offset: Pagination offset
            attempt: Retry counter for timeouts and rate limits

        Returns:
            Response data dictionary

        Raises:
            RemoteFetchError: if the batch could not be fetched
        """
        payload = {
            "detailType": detail_type,
            "state": state,
            "count": count,
            "offset": offset,
        }

        try:
            response = self._post("get", payload)
        except requests.exceptions.Timeout:
            if attempt >= self.max_retries:
                raise RemoteFetchError("Pocket request timed out")
            logger.error("Request timeout. Retrying...")
            time.sleep(2)
            return self._fetch_batch(detail_type, state, count, offset, attempt + 1)
        except requests.exceptions.RequestException as e:
            raise RemoteFetchError(f"Network error during Pocket request: {e}") from e

        if response.status_code == 200:
            try:
                data = response.json()
            except (json.JSONDecodeError, ValueError) as e:
                raise RemoteFetchError(f"Invalid JSON response from Pocket: {e}") from e
            # A successful batch ends the rate-limited stretch
            self.rate_limit_backoff = 2.0
            logger.debug(f"Successfully fetched batch: {len(data.get('list') or {})} articles")
            return data

        elif response.status_code == 429:
            if attempt >= self.max_retries:
                raise RemoteFetchError("Pocket rate limit exceeded")
            retry_delay = 5 * self.rate_limit_backoff
            logger.warning(f"Rate limit exceeded. Waiting {retry_delay} seconds...")
            time.sleep(retry_delay)
            # Increase backoff for next retry
            self.rate_limit_backoff = min(self.rate_limit_backoff * 1.5, 10.0)
            return self._fetch_batch(detail_type, state, count, offset, attempt + 1)

        elif response.status_code == 401:
            raise RemoteFetchError("Authentication failed. Check your credentials.")

        elif response.status_code == 403:
            raise RemoteFetchError("Access forbidden. Check your API permissions.")

        raise RemoteFetchError(
            f"API request failed with status {response.status_code}: {response.text}"
        )

    def send_action(self, action: str, item_id: str) -> bool:
        """
        Send a single modify action.

        Returns:
            True if Pocket accepted the action

        Raises:
            requests.exceptions.RequestException: on network failure
        """
        payload = {"actions": [{"action": action, "item_id": item_id}]}
        response = self._post("send", payload)
        if response.status_code != 200:
            logger.error(f"Action {action} on {item_id} failed with status {response.status_code}")
            return False
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            logger.error(f"Invalid JSON response for action {action} on {item_id}")
            return False
        results = data.get("action_results") or []
        return data.get("status") == 1 and bool(results) and results[0] is not False

    def _post(self, endpoint: str, payload: Dict) -> requests.Response:
        body = {
            "consumer_key": self.consumer_key,
            "access_token": self.access_token,
        }
        body.update(payload)
        return self.session.post(
            f"{self.base_url}/{endpoint}",
            json=body,
            headers={
                "Content-Type": "application/json; charset=UTF-8",
                "X-Accept": "application/json",
            },
            timeout=self.timeout,
        )

    def _calculate_progressive_delay(self, batch_number: int) -> float:
        """
        Calculate progressive delay that increases over time to avoid rate limiting.

        Args:
            batch_number: Current batch number (0-based)

        Returns:
            Delay in seconds
        """
        # Increase delay by 10% every 10 batches
        delay_multiplier = 1.0 + (batch_number // 10) * self.progressive_delay_factor

        # Add some randomness to avoid predictable patterns
        jitter = random.uniform(0.8, 1.2)

        return self.base_rate_limit_delay * delay_multiplier * jitter


def create_pocket_client(authenticator: PocketAuthenticator) -> Optional[PocketClient]:
    """
    Create a client instance from an authenticator.

    Args:
        authenticator: PocketAuthenticator instance

    Returns:
        PocketClient instance or None if there is no session
    """
    session = authenticator.get_session()
    if not session:
        logger.error("No authenticated session available")
        return None

    return PocketClient(
        session=session,
        consumer_key=authenticator.consumer_key,
        access_token=authenticator.access_token,
    )


class PocketService(RemoteService):
    name = "pocket"

    def __init__(
        self,
        client: PocketClient,
        articles_dir: str = ARTICLES_DIR,
        index: Optional[ArticleIndex] = None,
    ):
        super().__init__(articles_dir, index)
        self.client = client

    def fetch_remote(self, hub: Hub) -> List[Article]:
        articles = []

        def progress_callback(total: int):
            hub.send(UpdateEvent.progress("Fetching Pocket articles", total))

        for raw in self.client.fetch_articles(progress_callback=progress_callback):
            if str(raw.get("status")) == STATUS_DELETED:
                continue
            article = parse_pocket_article(raw)
            if not article.id:
                logger.warning("Skipping Pocket item without item_id")
                continue
            articles.append(article)
        return articles

    def push_change(self, article: Article, change: Change) -> None:
        if change == Change.DELETED:
            action = "delete"
        elif change == Change.STARRED:
            action = "favorite" if article.starred else "unfavorite"
        else:
            action = "archive" if article.archived else "readd"

        try:
            accepted = self.client.send_action(action, article.id)
        except requests.exceptions.RequestException as e:
            raise RemoteMutationPushError(article.id, change.value, str(e)) from e
        if not accepted:
            raise RemoteMutationPushError(article.id, change.value, f"Pocket rejected {action}")
