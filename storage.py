import os
import json
import logging
import tempfile
from pathlib import Path

from errors import IndexLoadError, IndexSaveError
from models import ARTICLES_DIR, ArticleIndex

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"


def ensure_dir(path: str):
    Path(path).mkdir(parents=True, exist_ok=True)


def index_path(articles_dir: str = ARTICLES_DIR) -> str:
    return os.path.join(articles_dir, INDEX_FILE)


def read_index(articles_dir: str = ARTICLES_DIR) -> ArticleIndex:
    path = index_path(articles_dir)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return ArticleIndex.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise IndexLoadError(f"Cannot load index from {path}: {e}") from e


def load_or_create_index(articles_dir: str = ARTICLES_DIR) -> ArticleIndex:
    """Read the persisted index, starting empty when there is none."""
    try:
        index = read_index(articles_dir)
        logger.info(f"Loaded {len(index)} articles from {index_path(articles_dir)}")
        return index
    except IndexLoadError as e:
        logger.warning(f"{e}. Starting with an empty index")
        return ArticleIndex()


def save_index(index: ArticleIndex, articles_dir: str = ARTICLES_DIR) -> None:
    """
    Write the index to disk.

    The index is serialized under its lock, then written to a temporary file
    next to the target and moved into place, so a failed write leaves the
    previous index.json untouched. Concurrent saves of the same index are
    serialized from snapshot to replace, so the newest snapshot lands last.

    Raises:
        IndexSaveError: if the index could not be written
    """
    path = index_path(articles_dir)
    with index.save_lock:
        _write_index(index.to_dict(), path, articles_dir)


def _write_index(data: dict, path: str, articles_dir: str) -> None:
    temp_path = None
    try:
        ensure_dir(articles_dir)
        fd, temp_path = tempfile.mkstemp(
            prefix=".index-", suffix=".json.tmp", dir=articles_dir
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(temp_path, path)
        logger.debug(f"Saved {len(data['articles'])} articles to {path}")
    except (OSError, TypeError, ValueError) as e:
        if temp_path and os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as remove_error:
                logger.error(f"Could not remove temporary file {temp_path}: {remove_error}")
        raise IndexSaveError(f"Cannot save index to {path}: {e}") from e
