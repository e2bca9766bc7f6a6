"""Tests for settings.py — TOML persistence of default diagram configuration."""
from __future__ import annotations

import platformdirs
import pytest

import settings
from sequence.model import DiagramState
from sequence.parser import parse
from settings import AppSettings, SettingsManager, get_settings


@pytest.fixture()
def config_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(platformdirs, "user_config_dir", lambda name: str(tmp_path / name))
    return tmp_path / "seqlayout"


@pytest.fixture()
def manager(config_dir) -> SettingsManager:
    return SettingsManager()


class TestSettingsManager:

    def test_defaults_without_file(self, manager, config_dir):
        assert manager.settings == AppSettings()
        assert manager.get_settings_path() == config_dir / "settings.toml"
        assert not manager.get_settings_path().exists()

    def test_ensure_file_complete_writes_all_sections(self, manager):
        manager.ensure_file_complete()
        text = manager.get_settings_path().read_text(encoding="utf-8")
        for section in ("[general]", "[font]", "[sequence]"):
            assert section in text

    def test_round_trip(self, manager):
        manager.settings.general.theme = "dark"
        manager.settings.sequence.box_margin = 12
        manager.settings.font.family = "Menlo"
        manager.save()

        reloaded = SettingsManager()
        assert reloaded.settings.general.theme == "dark"
        assert reloaded.settings.sequence.box_margin == 12
        assert reloaded.settings.font.family == "Menlo"

    def test_partial_file_keeps_defaults(self, manager):
        path = manager.get_settings_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text('[sequence]\nwidth = 200\n', encoding="utf-8")

        loaded = manager.load()
        assert loaded.sequence.width == 200
        assert loaded.sequence.height == 65
        assert loaded.general.theme == "default"

    def test_corrupt_file_falls_back_to_defaults(self, manager):
        path = manager.get_settings_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("this is [not toml", encoding="utf-8")
        assert manager.load() == AppSettings()

    def test_to_toml(self, manager):
        text = manager.to_toml()
        assert 'theme = "default"' in text
        assert "mirror_actors = true" in text


class TestDiagramConfig:

    def test_defaults_match_diagram_config(self, manager):
        conf = manager.diagram_config()
        assert conf.box_margin == 10
        assert conf.message_margin == 35
        assert conf.font_size == 16
        assert conf.extras == {}

    def test_persisted_values_flow_into_config(self, manager):
        manager.settings.general.wrap = True
        manager.settings.general.log_level = 1
        manager.settings.sequence.mirror_actors = False
        manager.settings.sequence.actor_margin = 80
        conf = manager.diagram_config()
        assert conf.wrap is True
        assert conf.log_level == 1
        assert conf.mirror_actors is False
        assert conf.actor_margin == 80

    def test_persisted_settings_seed_a_parse(self, manager):
        manager.settings.sequence.actor_margin = 80
        state = parse(
            "%%{init: {'sequence': {'boxMargin': 5}}}%%\nsequenceDiagram\nA->B: hi",
            DiagramState(manager.diagram_config()),
        )
        assert state.config.actor_margin == 80
        assert state.config.box_margin == 5


class TestSingleton:

    def test_get_settings_is_cached(self, config_dir, monkeypatch):
        monkeypatch.setattr(settings, "_settings_manager", None)
        assert get_settings() is get_settings()
