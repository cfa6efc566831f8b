"""Per-document viewer state kept between runs.

Scroll position, TOC visibility and the last search query are stored in
one JSON file under the platform config directory, keyed by the absolute
path of the document, and restored the next time that file is opened.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import platformdirs

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"

# bool is an int subclass, so scroll_offset must rule it out explicitly
_VALIDATORS: Dict[str, Callable[[Any], bool]] = {
    'scroll_offset': lambda v: isinstance(v, int) and not isinstance(v, bool) and v >= 0,
    'toc_visible': lambda v: isinstance(v, bool),
    'last_query': lambda v: isinstance(v, str),
}


class SettingsPersistence:
    """JSON-backed store of settings per document path."""

    def __init__(self, config_dir: Optional[Path] = None):
        self._config_dir = Path(config_dir) if config_dir else Path(platformdirs.user_config_dir("mdr"))
        self._settings_file = self._config_dir / SETTINGS_FILENAME
        self._cache: Optional[Dict[str, Dict[str, Any]]] = None

    def _read(self) -> Dict[str, Dict[str, Any]]:
        """All stored documents; a missing or unreadable file counts as empty."""
        if self._cache is None:
            self._cache = self._read_file()
        return self._cache

    def _read_file(self) -> Dict[str, Dict[str, Any]]:
        try:
            with open(self._settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable settings file {self._settings_file}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {self._settings_file}: top level is not an object")
            return {}
        return data

    def _write(self, documents: Dict[str, Dict[str, Any]]) -> bool:
        """Replace the settings file atomically through a sibling temp file."""
        temp_file = self._settings_file.with_suffix('.tmp')
        try:
            self._config_dir.mkdir(parents=True, exist_ok=True)
            temp_file.write_text(json.dumps(documents, indent=2), encoding='utf-8')
            os.replace(temp_file, self._settings_file)
        except OSError as e:
            logger.warning(f"Could not write settings to {self._settings_file}: {e}")
            temp_file.unlink(missing_ok=True)
            return False
        self._cache = documents
        return True

    def load_settings(self, document_path: Optional[str]) -> Dict[str, Any]:
        """Valid settings stored for a document; invalid values are dropped with a warning."""
        if document_path is None:
            return {}
        key = os.path.abspath(document_path)
        stored = self._read().get(key, {})
        if not isinstance(stored, dict):
            logger.warning(f"Ignoring settings for {key}: not an object")
            return {}

        settings = {}
        for name, value in stored.items():
            if self.validate_setting(name, value):
                settings[name] = value
            else:
                logger.warning(f"Ignoring invalid setting {name}={value!r} for {key}")
        return settings

    def save_settings(self, document_path: Optional[str], settings: Dict[str, Any]) -> bool:
        """Store settings for a document; False if nothing was written."""
        if document_path is None:
            return False
        documents = dict(self._read())
        documents[os.path.abspath(document_path)] = dict(settings)
        return self._write(documents)

    def validate_setting(self, key: str, value: Any) -> bool:
        if value is None:
            return True  # not set
        validator = _VALIDATORS.get(key)
        # Keys written by newer versions pass through
        return validator is None or validator(value)

    def clear_cache(self) -> None:
        self._cache = None


_persistence: Optional[SettingsPersistence] = None


def get_persistence() -> SettingsPersistence:
    """Process-wide store in the user's config directory."""
    global _persistence
    if _persistence is None:
        _persistence = SettingsPersistence()
    return _persistence
