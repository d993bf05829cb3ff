"""
Tests for reading, writing and applying the input settings.
"""

import json

import pytest

from Main.input_settings import (
    DocumentInfo,
    InputSettings,
    language_for_path,
    load_input_settings,
    matches_language_filter,
    save_input_settings,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestFromDict:

    def test_defaults(self):
        settings = InputSettings()
        assert settings.enabled is True
        assert settings.leader == "\\"
        assert settings.languages == ["lean"]
        assert settings.custom_translations == {}

    def test_full_section(self):
        settings = InputSettings.from_dict({
            "enabled": False,
            "leader": ";",
            "languages": ["lean", "*.md"],
            "customTranslations": {"ssub": "⊊"},
        })
        assert settings.enabled is False
        assert settings.leader == ";"
        assert settings.languages == ["lean", "*.md"]
        assert settings.custom_translations == {"ssub": "⊊"}

    def test_snake_case_custom_translations(self):
        settings = InputSettings.from_dict({"custom_translations": {"x": "✗"}})
        assert settings.custom_translations == {"x": "✗"}

    @pytest.mark.parametrize("leader", ["", " ", 5, None])
    def test_bad_leader_falls_back(self, leader):
        assert InputSettings.from_dict({"leader": leader}).leader == "\\"

    def test_malformed_custom_translations_are_ignored(self):
        assert InputSettings.from_dict({"customTranslations": ["a"]}).custom_translations == {}

    def test_single_language_string(self):
        assert InputSettings.from_dict({"languages": "markdown"}).languages == ["markdown"]

    def test_not_a_mapping(self):
        assert InputSettings.from_dict("nonsense") == InputSettings()

    def test_to_dict_uses_settings_file_keys(self):
        data = InputSettings(custom_translations={"x": "✗"}).to_dict()
        assert data["customTranslations"] == {"x": "✗"}
        assert "custom_translations" not in data
        assert InputSettings.from_dict(data) == InputSettings(custom_translations={"x": "✗"})


# ---------------------------------------------------------------------------
# Language filter
# ---------------------------------------------------------------------------

class TestLanguageFilter:

    def test_language_for_path(self):
        assert language_for_path("/src/Main.lean") == "lean"
        assert language_for_path("README.MD") == "markdown"
        assert language_for_path("notes.unknown") is None
        assert language_for_path(None) is None

    def test_language_id_match(self):
        settings = InputSettings(languages=["lean"])
        assert matches_language_filter(settings, DocumentInfo.for_path("a/Basic.lean"))
        assert not matches_language_filter(settings, DocumentInfo.for_path("a/notes.md"))

    def test_glob_on_file_name(self):
        settings = InputSettings(languages=["*.md"])
        assert matches_language_filter(settings, DocumentInfo.for_path("/docs/notes.md"))
        assert not matches_language_filter(settings, DocumentInfo.for_path("/docs/notes.txt"))

    def test_glob_on_path(self):
        settings = InputSettings(languages=["*/scratch/*"])
        assert matches_language_filter(settings, DocumentInfo("/home/me/scratch/file.xyz"))

    def test_untitled_document(self):
        assert not matches_language_filter(InputSettings(), DocumentInfo())
        assert matches_language_filter(InputSettings(languages=["lean"]), DocumentInfo(None, "lean"))


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestPersistence:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_input_settings(str(tmp_path / "settings.json")) == InputSettings()

    def test_broken_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{", encoding="utf-8")
        assert load_input_settings(str(path)) == InputSettings()

    def test_load_input_section(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"input": {"leader": "`"}}), encoding="utf-8")
        assert load_input_settings(str(path)).leader == "`"

    def test_save_keeps_other_keys(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
        settings = InputSettings(enabled=False, custom_translations={"ssub": "⊊"})
        assert save_input_settings(str(path), settings)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["theme"] == "dark"
        assert data["input"]["enabled"] is False
        assert load_input_settings(str(path)) == settings

    def test_save_to_unwritable_path(self, tmp_path):
        assert not save_input_settings(str(tmp_path / "missing" / "settings.json"), InputSettings())
