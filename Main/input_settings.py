"""
Settings for the unicode abbreviation input.

Stored in the application's settings.json under the "input" key:

    {
        "input": {
            "enabled": true,
            "leader": "\\\\",
            "languages": ["lean", "*.md"],
            "customTranslations": {"ssub": "⊊"}
        }
    }
"""

import os
import json
import logging
from fnmatch import fnmatch
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from Main.abbreviation_engine import DEFAULT_LEADER

logger = logging.getLogger(__name__)

SETTINGS_SECTION = 'input'

# File extension -> language id used by the language filter
LANGUAGE_IDS = {
    '.lean': 'lean',
    '.hlean': 'lean',
    '.md': 'markdown',
    '.markdown': 'markdown',
    '.tex': 'latex',
    '.txt': 'plaintext',
    '.py': 'python',
    '.rs': 'rust',
    '.agda': 'agda',
}


@dataclass
class InputSettings:
    enabled: bool = True
    leader: str = DEFAULT_LEADER
    languages: List[str] = field(default_factory=lambda: ['lean'])
    custom_translations: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        """Build settings from a loosely typed mapping, falling back to defaults on bad values."""
        settings = cls()
        if not isinstance(data, dict):
            return settings
        enabled = data.get('enabled', settings.enabled)
        if isinstance(enabled, bool):
            settings.enabled = enabled
        leader = data.get('leader', settings.leader)
        if isinstance(leader, str) and leader and not leader.isspace():
            settings.leader = leader
        else:
            logger.warning("Invalid input leader %r, using %r", leader, DEFAULT_LEADER)
        languages = data.get('languages', settings.languages)
        if isinstance(languages, str):
            languages = [languages]
        if isinstance(languages, (list, tuple)):
            settings.languages = [p for p in languages if isinstance(p, str) and p]
        custom = data.get('customTranslations', data.get('custom_translations', {}))
        if isinstance(custom, dict):
            settings.custom_translations = dict(custom)
        else:
            logger.warning("Ignoring malformed customTranslations (%s)", type(custom).__name__)
        return settings

    def to_dict(self):
        data = asdict(self)
        data['customTranslations'] = data.pop('custom_translations')
        return data


@dataclass(frozen=True)
class DocumentInfo:
    path: Optional[str] = None
    language_id: Optional[str] = None

    @classmethod
    def for_path(cls, path):
        return cls(path, language_for_path(path))


def language_for_path(path):
    if not path:
        return None
    ext = os.path.splitext(path)[1].lower()
    return LANGUAGE_IDS.get(ext)


def matches_language_filter(settings, document):
    """A pattern matches the document's language id exactly, or its file name/path as a glob."""
    for pattern in settings.languages:
        if document.language_id and pattern == document.language_id:
            return True
        if document.path:
            name = os.path.basename(document.path)
            if fnmatch(name, pattern) or fnmatch(document.path.replace('\\', '/'), pattern):
                return True
    return False


def load_input_settings(path):
    """Load the input section of a settings file; missing or broken files give defaults."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.info("Using default input settings (%s)", e)
        return InputSettings()
    if not isinstance(data, dict):
        return InputSettings()
    return InputSettings.from_dict(data.get(SETTINGS_SECTION, {}))


def save_input_settings(path, settings):
    """Write the input section back, keeping every other key of the settings file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            data = {}
    except (FileNotFoundError, json.JSONDecodeError):
        data = {}
    data[SETTINGS_SECTION] = settings.to_dict()
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=4, ensure_ascii=False)
    except OSError as e:
        logger.error("Error saving input settings to %s: %s", path, e)
        return False
    return True
