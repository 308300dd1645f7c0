"""
Factory function for creating the article service.
"""
import logging

import requests

from config import Settings
from dummy import Dummy
from pocket import PocketAuthenticator, PocketService, create_pocket_client
from service import Service
from wallabag import WallabagClient, WallabagService

logger = logging.getLogger(__name__)


def load(settings: Settings) -> Service:
    """
    Create the service selected by ``settings.api``.

    - 'pocket': PocketService
    - 'wallabag': WallabagService
    - anything else: Dummy

    A known backend with incomplete credentials also falls back to Dummy.

    Args:
        settings: Backend selection and credentials

    Returns:
        Service: Exactly one configured backend
    """
    if settings.api == "pocket":
        authenticator = PocketAuthenticator(
            settings.pocket_consumer_key, settings.pocket_access_token
        )
        if authenticator.load_credentials():
            client = create_pocket_client(authenticator)
            if client:
                return PocketService(client, settings.articles_dir)
        logger.error("Pocket credentials missing. Falling back to the dummy backend.")
        return Dummy()

    if settings.api == "wallabag":
        if settings.has_wallabag_credentials():
            client = WallabagClient(
                session=requests.Session(),
                url=settings.wallabag_url,
                client_id=settings.wallabag_client_id,
                client_secret=settings.wallabag_client_secret,
                username=settings.wallabag_username,
                password=settings.wallabag_password,
            )
            return WallabagService(client, settings.articles_dir)
        logger.error("Wallabag credentials missing. Falling back to the dummy backend.")
        return Dummy()

    if settings.api:
        logger.warning(f"Unknown article API '{settings.api}'. Using the dummy backend.")
    return Dummy()
