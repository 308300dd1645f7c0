import unittest
from unittest.mock import MagicMock, patch

import requests

from errors import RemoteFetchError, RemoteMutationPushError
from hub import EventKind
from models import ArticleIndex, Change
from wallabag import WallabagClient, WallabagService
from helpers import RecordingHub, make_article


def make_response(status_code=200, data=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    response.text = ""
    return response


TOKEN = {"access_token": "abc", "expires_in": 3600}


class TestWallabagClient(unittest.TestCase):
    def setUp(self):
        self.mock_session = MagicMock()
        self.mock_session.post.return_value = make_response(data=TOKEN)
        self.client = WallabagClient(
            session=self.mock_session,
            url="https://wallabag.example/",
            client_id="id",
            client_secret="secret",
            username="user",
            password="pass",
        )

    def test_authenticate(self):
        self.assertEqual(self.client.authenticate(), "abc")
        call_args = self.mock_session.post.call_args
        self.assertEqual(call_args[0][0], "https://wallabag.example/oauth/v2/token")
        self.assertEqual(call_args[1]["data"]["grant_type"], "password")
        self.assertEqual(call_args[1]["data"]["username"], "user")

    def test_authenticate_failure(self):
        self.mock_session.post.return_value = make_response(400, {"error": "invalid_grant"})
        with self.assertRaises(RemoteFetchError):
            self.client.authenticate()

    def test_authenticate_network_error(self):
        self.mock_session.post.side_effect = requests.exceptions.ConnectionError("down")
        with self.assertRaises(RemoteFetchError):
            self.client.authenticate()

    def test_fetch_entries_paginates(self):
        self.mock_session.get.side_effect = [
            make_response(data={"pages": 2, "total": 3, "_embedded": {"items": [{"id": 1}, {"id": 2}]}}),
            make_response(data={"pages": 2, "total": 3, "_embedded": {"items": [{"id": 3}]}}),
        ]
        progress = []

        entries = list(self.client.fetch_entries(lambda done, total: progress.append((done, total))))

        self.assertEqual([e["id"] for e in entries], [1, 2, 3])
        self.assertEqual(progress, [(2, 3), (3, 3)])
        pages = [c[1]["params"]["page"] for c in self.mock_session.get.call_args_list]
        self.assertEqual(pages, [1, 2])
        headers = self.mock_session.get.call_args[1]["headers"]
        self.assertEqual(headers["Authorization"], "Bearer abc")
        # Token is reused across pages
        self.assertEqual(self.mock_session.post.call_count, 1)

    def test_fetch_entries_http_error(self):
        self.mock_session.get.return_value = make_response(500)
        with self.assertRaises(RemoteFetchError):
            list(self.client.fetch_entries())

    @patch("wallabag.time.time")
    def test_expired_token_is_refreshed(self, mock_time):
        mock_time.return_value = 1000.0
        self.client.authenticate()
        mock_time.return_value = 1000.0 + 3600
        self.client._headers()
        self.assertEqual(self.mock_session.post.call_count, 2)

    def test_update_entry(self):
        self.mock_session.patch.return_value = make_response(200, {})
        self.assertTrue(self.client.update_entry("5", starred=1))
        call_args = self.mock_session.patch.call_args
        self.assertEqual(call_args[0][0], "https://wallabag.example/api/entries/5.json")
        self.assertEqual(call_args[1]["data"], {"starred": 1})

    def test_delete_missing_entry_counts_as_deleted(self):
        self.mock_session.delete.return_value = make_response(404)
        self.assertTrue(self.client.delete_entry("5"))


class TestWallabagService(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.service = WallabagService(self.client, articles_dir="unused", index=ArticleIndex())

    def test_fetch_remote(self):
        def fetch_entries(progress_callback=None):
            yield {"id": 1, "title": "One", "is_starred": 1}
            yield {"id": 2, "title": "Two", "is_archived": 1}
            progress_callback(2, 2)

        self.client.fetch_entries.side_effect = fetch_entries
        hub = RecordingHub()

        articles = self.service.fetch_remote(hub)

        self.assertEqual([a.id for a in articles], ["1", "2"])
        self.assertTrue(articles[0].starred)
        self.assertTrue(articles[1].archived)
        self.assertEqual(hub.kinds(), [EventKind.PROGRESS])

    def test_fetch_remote_skips_entries_without_id(self):
        def fetch_entries(progress_callback=None):
            yield {"title": "No id"}
            yield {"id": None, "title": "Null id"}
            yield {"id": 3, "title": "Three"}

        self.client.fetch_entries.side_effect = fetch_entries

        with self.assertLogs("wallabag", level="WARNING") as logs:
            articles = self.service.fetch_remote(RecordingHub())

        self.assertEqual([a.id for a in articles], ["3"])
        self.assertEqual(len(logs.records), 2)

    def test_push_star(self):
        self.client.update_entry.return_value = True
        self.service.push_change(make_article("1", starred=True), Change.STARRED)
        self.client.update_entry.assert_called_once_with("1", starred=1)

    def test_push_unarchive(self):
        self.client.update_entry.return_value = True
        self.service.push_change(make_article("1", archived=False), Change.ARCHIVED)
        self.client.update_entry.assert_called_once_with("1", archive=0)

    def test_push_delete(self):
        self.client.delete_entry.return_value = True
        self.service.push_change(make_article("1"), Change.DELETED)
        self.client.delete_entry.assert_called_once_with("1")

    def test_push_rejected(self):
        self.client.update_entry.return_value = False
        with self.assertRaises(RemoteMutationPushError):
            self.service.push_change(make_article("1"), Change.STARRED)

    def test_push_token_failure(self):
        self.client.delete_entry.side_effect = RemoteFetchError("auth failed")
        with self.assertRaises(RemoteMutationPushError):
            self.service.push_change(make_article("1"), Change.DELETED)


if __name__ == "__main__":
    unittest.main()
