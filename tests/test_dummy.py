import threading

import pytest

from dummy import Dummy
from helpers import RecordingHub
from models import ArticleIndex, ArticleList


class TestDummyService:
    """The dummy backend honors the service contract without doing any work."""

    def test_update_always_starts(self):
        service = Dummy()
        hub = RecordingHub()
        assert service.update(hub) is True
        assert service.update(hub) is True

    def test_update_schedules_nothing(self):
        service = Dummy()
        before = threading.active_count()
        service.update(RecordingHub())
        assert threading.active_count() == before

    def test_update_does_not_notify_or_change_index(self):
        service = Dummy()
        hub = RecordingHub()
        service.update(hub)
        assert hub.events == []
        assert len(service.index()) == 0

    @pytest.mark.parametrize("list_kind", list(ArticleList))
    def test_filter_is_always_empty(self, list_kind):
        assert Dummy().filter(list_kind) == []

    def test_save_index_is_noop(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        Dummy().save_index()
        assert list(tmp_path.iterdir()) == []

    def test_index_handle_is_stable(self):
        service = Dummy()
        assert isinstance(service.index(), ArticleIndex)
        assert service.index() is service.index()
