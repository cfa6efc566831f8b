"""Unit tests for settings persistence."""

import json
import os
import shutil
import tempfile
import unittest
from pathlib import Path

from mdr.settings_persistence import SettingsPersistence, get_persistence


class TestSettingsPersistence(unittest.TestCase):
    """Test settings persistence functionality."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.persistence = SettingsPersistence(Path(self.temp_dir) / "config")
        self.test_doc_path = os.path.join(self.temp_dir, "notes.md")

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_save_and_load_settings(self):
        settings = {"scroll_offset": 42, "toc_visible": False, "last_query": "needle"}
        self.assertTrue(self.persistence.save_settings(self.test_doc_path, settings))
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), settings)

    def test_settings_survive_a_fresh_instance(self):
        self.persistence.save_settings(self.test_doc_path, {"scroll_offset": 7})
        other = SettingsPersistence(Path(self.temp_dir) / "config")
        self.assertEqual(other.load_settings(self.test_doc_path), {"scroll_offset": 7})

    def test_load_nonexistent_document(self):
        self.assertEqual(self.persistence.load_settings("/nonexistent/document.md"), {})

    def test_none_document_path(self):
        self.assertFalse(self.persistence.save_settings(None, {"scroll_offset": 1}))
        self.assertEqual(self.persistence.load_settings(None), {})

    def test_relative_and_absolute_paths_share_settings(self):
        cwd = os.getcwd()
        try:
            os.chdir(self.temp_dir)
            self.persistence.save_settings("notes.md", {"toc_visible": True})
        finally:
            os.chdir(cwd)
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {"toc_visible": True})

    def test_documents_are_independent(self):
        other_doc = os.path.join(self.temp_dir, "other.md")
        self.persistence.save_settings(self.test_doc_path, {"scroll_offset": 1})
        self.persistence.save_settings(other_doc, {"scroll_offset": 2})
        self.assertEqual(self.persistence.load_settings(self.test_doc_path)["scroll_offset"], 1)
        self.assertEqual(self.persistence.load_settings(other_doc)["scroll_offset"], 2)

    def test_invalid_values_are_dropped_on_load(self):
        settings_file = Path(self.temp_dir) / "config" / "settings.json"
        settings_file.parent.mkdir(parents=True)
        settings_file.write_text(json.dumps({
            os.path.abspath(self.test_doc_path): {
                "scroll_offset": -3,
                "toc_visible": "yes",
                "last_query": "ok",
            }
        }), encoding="utf-8")
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {"last_query": "ok"})

    def test_corrupt_file_is_ignored(self):
        settings_file = Path(self.temp_dir) / "config" / "settings.json"
        settings_file.parent.mkdir(parents=True)
        settings_file.write_text("{not json", encoding="utf-8")
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {})
        # A later save replaces the corrupt file
        self.assertTrue(self.persistence.save_settings(self.test_doc_path, {"scroll_offset": 0}))
        self.persistence.clear_cache()
        self.assertEqual(self.persistence.load_settings(self.test_doc_path), {"scroll_offset": 0})

    def test_atomic_save_leaves_no_temp_file(self):
        self.persistence.save_settings(self.test_doc_path, {"scroll_offset": 5})
        config_dir = Path(self.temp_dir) / "config"
        self.assertTrue((config_dir / "settings.json").exists())
        self.assertFalse((config_dir / "settings.tmp").exists())

    def test_validate_setting(self):
        validate = self.persistence.validate_setting
        self.assertTrue(validate("scroll_offset", 0))
        self.assertTrue(validate("scroll_offset", 120))
        self.assertFalse(validate("scroll_offset", -1))
        self.assertFalse(validate("scroll_offset", True))
        self.assertFalse(validate("scroll_offset", "3"))
        self.assertTrue(validate("toc_visible", False))
        self.assertFalse(validate("toc_visible", 1))
        self.assertTrue(validate("last_query", ""))
        self.assertFalse(validate("last_query", 12))
        self.assertTrue(validate("scroll_offset", None))
        self.assertTrue(validate("future_setting", object()))


class TestGlobalPersistence(unittest.TestCase):

    def test_singleton(self):
        self.assertIs(get_persistence(), get_persistence())


if __name__ == "__main__":
    unittest.main()
