"""Tests for settings validation, the settings form and the YAML config."""

import pytest
from pydantic import ValidationError

from autolink.daemon.config import Config, Settings, SettingsManager
from autolink.daemon.settings_tab import SettingsTab, parse_value


class TestSettings:

    def test_defaults(self, settings):
        assert settings.min_trigger_length == 2
        assert settings.max_suggestions == 10
        assert settings.case_sensitive is False
        assert settings.include_aliases is True
        assert settings.recency_weight == 30
        assert settings.decay_threshold_days == 90
        assert settings.newness_boost_days == 7
        assert settings.newness_boost_strength == 0.5

    @pytest.mark.parametrize("field,value", [
        ("min_trigger_length", 0),
        ("max_suggestions", -1),
        ("decay_threshold_days", 0),
        ("newness_boost_days", 0),
        ("recency_weight", 101),
        ("recency_weight", -5),
        ("newness_boost_strength", 2.5),
    ])
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_frozen(self, settings):
        with pytest.raises(ValidationError):
            settings.max_suggestions = 3

    def test_field_name_accepts_alias(self):
        assert Settings.field_name("maxSuggestions") == "max_suggestions"
        assert Settings.field_name("max_suggestions") == "max_suggestions"
        assert Settings.field_name("nonsense") is None

    def test_persisted_layout_is_camel_case(self, settings):
        data = settings.to_persisted()
        assert data["minTriggerLength"] == 2
        assert data["enableNewnessBoost"] is True
        assert "min_trigger_length" not in data

    def test_from_persisted_drops_invalid_fields(self):
        settings = Settings.from_persisted({
            "maxSuggestions": 5,
            "recencyWeight": 500,
            "matchStart": True,
            "unknownKey": "x",
        })
        assert settings.max_suggestions == 5
        assert settings.recency_weight == 30
        assert settings.match_start is True

    def test_from_persisted_non_mapping(self):
        assert Settings.from_persisted("garbage") == Settings()


class TestSettingsManager:

    def test_update_applies_and_notifies(self):
        calls = []
        manager = SettingsManager(on_change=lambda: calls.append(1))
        assert manager.update(maxSuggestions=3, match_start=True)
        assert manager.current.max_suggestions == 3
        assert manager.current.match_start is True
        assert calls == [1]

    def test_invalid_update_keeps_prior_values(self):
        calls = []
        manager = SettingsManager(on_change=lambda: calls.append(1))
        manager.update(recency_weight=50)

        assert not manager.update(recency_weight=150, max_suggestions=4)
        assert manager.current.recency_weight == 50
        assert manager.current.max_suggestions == 10
        assert calls == [1]

    def test_unknown_key_rejected(self):
        manager = SettingsManager()
        assert not manager.update(colour="red")
        assert manager.current == Settings()

    def test_earlier_reader_keeps_its_snapshot(self):
        manager = SettingsManager()
        before = manager.current
        manager.update(max_suggestions=2)
        assert before.max_suggestions == 10
        assert manager.current.max_suggestions == 2


class TestSettingsTab:

    def test_parse_value(self):
        assert parse_value("yes", False) is True
        assert parse_value("OFF", True) is False
        assert parse_value(" 7 ", 3) == 7
        assert parse_value("0.25", 0.5) == 0.25
        with pytest.raises(ValueError):
            parse_value("maybe", True)
        with pytest.raises(ValueError):
            parse_value("abc", 3)

    def test_describe_lists_every_setting(self):
        tab = SettingsTab(SettingsManager())
        fields = tab.describe()
        assert {f.key for f in fields} == set(Settings.model_fields)
        recency = next(f for f in fields if f.key == "recency_weight")
        assert recency.kind == "percent"
        assert recency.value == 30

    def test_set_valid(self):
        tab = SettingsTab(SettingsManager())
        assert tab.set("caseSensitive", "true")
        assert tab.get("case_sensitive") is True
        assert tab.set("newness_boost_strength", "1.5")
        assert tab.get("newnessBoostStrength") == 1.5

    def test_set_invalid_keeps_value(self):
        tab = SettingsTab(SettingsManager())
        assert not tab.set("max_suggestions", "0")
        assert not tab.set("max_suggestions", "lots")
        assert not tab.set("unknown", "1")
        assert tab.get("max_suggestions") == 10
        assert tab.get("unknown") is None

    def test_as_dict(self):
        tab = SettingsTab(SettingsManager(Settings(show_path=True)))
        assert tab.as_dict()["show_path"] is True


class TestConfig:

    def test_creates_missing_vault(self, tmp_path):
        config = Config(vault_path=tmp_path / "new_vault")
        assert config.vault_path.is_dir()
        assert config.data_path == config.vault_path / ".autolink" / "data.json"

    def test_extension_normalized(self, temp_vault):
        assert Config(vault_path=temp_vault, extension="MD").extension == ".md"
        with pytest.raises(ValidationError):
            Config(vault_path=temp_vault, extension="  ")

    def test_custom_data_dir(self, temp_vault, tmp_path):
        config = Config(vault_path=temp_vault, data_dir=tmp_path / "state")
        assert config.data_path == tmp_path / "state" / "data.json"

    def test_save_and_load(self, temp_vault, tmp_path):
        path = tmp_path / "conf" / "autolink.yaml"
        Config(vault_path=temp_vault, log_level="DEBUG").save(path)

        loaded = Config.load(path)
        assert loaded.vault_path == temp_vault.resolve()
        assert loaded.log_level == "DEBUG"
        assert loaded.extension == ".md"
