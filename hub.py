#!/usr/bin/env python3
"""
Hub Module for Article Sync
Notification sink that receives progress events while an update runs.
"""

import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class EventKind(Enum):
    STARTED = "started"
    PROGRESS = "progress"
    ERROR = "error"
    FINISHED = "finished"


@dataclass
class UpdateEvent:
    kind: EventKind
    message: str = ""
    done: int = 0
    total: Optional[int] = None
    success: bool = True

    @classmethod
    def started(cls, message: str = "") -> "UpdateEvent":
        return cls(EventKind.STARTED, message)

    @classmethod
    def progress(cls, message: str, done: int, total: Optional[int] = None) -> "UpdateEvent":
        return cls(EventKind.PROGRESS, message, done=done, total=total)

    @classmethod
    def error(cls, message: str) -> "UpdateEvent":
        return cls(EventKind.ERROR, message, success=False)

    @classmethod
    def finished(cls, success: bool, message: str = "") -> "UpdateEvent":
        return cls(EventKind.FINISHED, message, success=success)


class Hub(ABC):
    """Receives update notifications. Events may arrive from a worker thread."""

    @abstractmethod
    def send(self, event: UpdateEvent) -> None:
        """Deliver one event."""


class LoggingHub(Hub):
    """Track and log update progress."""

    def __init__(self, verbose: bool = True):
        self.start_time = time.time()
        self.verbose = verbose
        self.errors: List[str] = []
        self.success: Optional[bool] = None

    def send(self, event: UpdateEvent) -> None:
        if event.kind == EventKind.STARTED:
            self.start_time = time.time()
            self.errors = []
            self.success = None
            logger.info(f"🚀 Update started {event.message}".rstrip())
        elif event.kind == EventKind.PROGRESS:
            if self.verbose:
                self._display_status(event)
        elif event.kind == EventKind.ERROR:
            self.errors.append(event.message)
            logger.error(f"❌ {event.message}")
        elif event.kind == EventKind.FINISHED:
            self.success = event.success
            elapsed = self._format_time(time.time() - self.start_time)
            if event.success:
                logger.info(f"✅ Update completed in {elapsed} {event.message}".rstrip())
            else:
                logger.warning(f"⚠️  Update failed after {elapsed} {event.message}".rstrip())

    def _display_status(self, event: UpdateEvent) -> None:
        elapsed_time = time.time() - self.start_time
        status = f"🔄 {event.message} | {event.done:,}"
        if event.total:
            percentage = (event.done / event.total) * 100
            status += f" / {event.total:,} ({percentage:.1f}%)"
        if elapsed_time > 0:
            status += f" | Rate: {event.done / elapsed_time:.1f}/sec"
        status += f" | Elapsed: {self._format_time(elapsed_time)}"
        logger.info(status)

    def _format_time(self, seconds: float) -> str:
        """Format time in human-readable format."""
        if seconds < 60:
            return f"{seconds:.0f}s"
        elif seconds < 3600:
            minutes = seconds / 60
            return f"{minutes:.0f}m"
        else:
            hours = seconds / 3600
            return f"{hours:.1f}h"

