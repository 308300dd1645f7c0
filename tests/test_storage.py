import os
import json
import shutil
import tempfile
import threading
import time
import unittest
from unittest.mock import patch

from errors import IndexLoadError, IndexSaveError
from models import ArticleIndex, Change
from storage import ensure_dir, index_path, load_or_create_index, read_index, save_index
from helpers import make_article


class TestStorage(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.articles_dir = os.path.join(self.tmpdir, ".articles")
        self.index = ArticleIndex(
            {
                "1": make_article("1", starred=True, changed={Change.STARRED}),
                "2": make_article("2", archived=True),
            }
        )

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_ensure_dir(self):
        new_dir = os.path.join(self.tmpdir, "subdir")
        ensure_dir(new_dir)
        self.assertTrue(os.path.isdir(new_dir))

    def test_save_creates_directory(self):
        save_index(self.index, self.articles_dir)
        self.assertTrue(os.path.exists(os.path.join(self.articles_dir, "index.json")))

    def test_saved_format(self):
        save_index(self.index, self.articles_dir)
        with open(index_path(self.articles_dir), "r", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(sorted(data["articles"]), ["1", "2"])
        self.assertEqual(data["articles"]["1"]["changed"], ["starred"])
        self.assertNotIn("changed", data["articles"]["2"])
        self.assertEqual(data["articles"]["2"]["added"], "2024-01-02T10:00:00+02:00")

    def test_round_trip(self):
        save_index(self.index, self.articles_dir)
        loaded = read_index(self.articles_dir)
        self.assertEqual(loaded.snapshot(), self.index.snapshot())

    def test_no_temp_files_left(self):
        save_index(self.index, self.articles_dir)
        self.assertEqual(os.listdir(self.articles_dir), ["index.json"])

    def test_missing_index(self):
        with self.assertRaises(IndexLoadError):
            read_index(self.articles_dir)

    def test_corrupt_index(self):
        ensure_dir(self.articles_dir)
        with open(index_path(self.articles_dir), "w") as f:
            f.write("{not json")
        with self.assertRaises(IndexLoadError):
            read_index(self.articles_dir)

    def test_index_without_articles_key(self):
        ensure_dir(self.articles_dir)
        with open(index_path(self.articles_dir), "w") as f:
            json.dump({"items": {}}, f)
        with self.assertRaises(IndexLoadError):
            read_index(self.articles_dir)

    def test_load_or_create_recovers(self):
        index = load_or_create_index(self.articles_dir)
        self.assertEqual(len(index), 0)

    def test_failed_save_keeps_previous_index(self):
        save_index(self.index, self.articles_dir)
        self.index.star("2")
        with patch("storage.json.dump", side_effect=TypeError("not serializable")):
            with self.assertRaises(IndexSaveError):
                save_index(self.index, self.articles_dir)
        loaded = read_index(self.articles_dir)
        self.assertEqual(loaded.get("2").changed, set())
        self.assertEqual(os.listdir(self.articles_dir), ["index.json"])

    def test_concurrent_saves_keep_newest_snapshot(self):
        save_index(self.index, self.articles_dir)
        entered = threading.Event()
        gate = threading.Event()
        original_dump = json.dump
        calls = []

        def slow_first_dump(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                entered.set()
                gate.wait(5)
            return original_dump(*args, **kwargs)

        with patch("storage.json.dump", side_effect=slow_first_dump):
            first = threading.Thread(target=save_index, args=(self.index, self.articles_dir))
            first.start()
            self.assertTrue(entered.wait(5))

            # The first save already holds its snapshot; change the index under it
            self.index.star("2")
            second = threading.Thread(target=save_index, args=(self.index, self.articles_dir))
            second.start()
            time.sleep(0.1)
            gate.set()
            first.join(5)
            second.join(5)

        self.assertEqual(len(calls), 2)
        self.assertEqual(read_index(self.articles_dir).get("2").changed, {Change.STARRED})

    def test_save_into_unusable_directory(self):
        blocker = os.path.join(self.tmpdir, "blocker")
        with open(blocker, "w") as f:
            f.write("")
        with self.assertRaises(IndexSaveError):
            save_index(self.index, blocker)


if __name__ == "__main__":
    unittest.main()
