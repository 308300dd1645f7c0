"""
Configuration for Article Sync.
Loads settings from a .env file and environment variables.
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

from models import ARTICLES_DIR

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Backend selection and credentials."""

    api: str = ""
    articles_dir: str = ARTICLES_DIR
    pocket_consumer_key: Optional[str] = None
    pocket_access_token: Optional[str] = None
    wallabag_url: Optional[str] = None
    wallabag_client_id: Optional[str] = None
    wallabag_client_secret: Optional[str] = None
    wallabag_username: Optional[str] = None
    wallabag_password: Optional[str] = None

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Build settings from the environment.

        Args:
            load_env_file: Read a .env file first (existing variables win)

        Returns:
            Settings instance
        """
        if load_env_file:
            load_dotenv()
        return cls(
            api=os.getenv("ARTICLES_API", "").strip().lower(),
            articles_dir=os.getenv("ARTICLES_DIR", ARTICLES_DIR),
            pocket_consumer_key=os.getenv("POCKET_CONSUMER_KEY"),
            pocket_access_token=os.getenv("POCKET_ACCESS_TOKEN"),
            wallabag_url=os.getenv("WALLABAG_URL"),
            wallabag_client_id=os.getenv("WALLABAG_CLIENT_ID"),
            wallabag_client_secret=os.getenv("WALLABAG_CLIENT_SECRET"),
            wallabag_username=os.getenv("WALLABAG_USERNAME"),
            wallabag_password=os.getenv("WALLABAG_PASSWORD"),
        )

    def has_wallabag_credentials(self) -> bool:
        values = [
            self.wallabag_url,
            self.wallabag_client_id,
            self.wallabag_client_secret,
            self.wallabag_username,
            self.wallabag_password,
        ]
        return all(value and value.strip() for value in values)
