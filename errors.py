"""
Error types for Article Sync.
"""


class ArticleSyncError(Exception):
    """Base class for all article sync errors."""


class IndexLoadError(ArticleSyncError):
    """The persisted index is missing, unreadable or malformed."""


class IndexSaveError(ArticleSyncError):
    """The index could not be written to disk."""


class RemoteFetchError(ArticleSyncError):
    """Fetching the remote article list failed."""


class RemoteMutationPushError(ArticleSyncError):
    """A single local change could not be pushed to the remote service."""

    def __init__(self, article_id: str, change, message: str):
        super().__init__(f"Failed to push {change} for article {article_id}: {message}")
        self.article_id = article_id
        self.change = change
