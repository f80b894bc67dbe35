"""Tests for configuration loading and per-run settings."""

from decimal import Decimal

import pytest

from ledger_recon.config import (
    DEFAULT_STOP_WORDS,
    MatchingConfig,
    ReconConfig,
    generate_default_config,
    load_config,
)
from ledger_recon.utils.exceptions import ConfigurationError


class TestSettingsFor:
    """Tests for ReconConfig.settings_for."""

    def test_accuracy_defaults(self, accuracy_settings):
        assert accuracy_settings.mode == "accuracy"
        assert accuracy_settings.strict_window_days == 3
        assert accuracy_settings.loose_window_days == 10
        assert accuracy_settings.reference_window_days == 45
        assert accuracy_settings.fuzzy_threshold == 0.6
        assert accuracy_settings.max_combination_depth == 4
        assert accuracy_settings.amount_tolerance_cents == 1

    def test_speed_defaults(self, speed_settings):
        assert speed_settings.strict_window_days == 1
        assert speed_settings.loose_window_days == 3
        assert speed_settings.reference_window_days == 10
        assert speed_settings.fuzzy_threshold == 0.85
        assert speed_settings.max_combination_depth == 2

    def test_default_mode_used_when_omitted(self, config):
        assert config.settings_for().mode == "accuracy"
        assert config.settings_for(None).mode == "accuracy"

    def test_unknown_mode(self, config):
        with pytest.raises(ConfigurationError, match="thorough"):
            config.settings_for("thorough")

    def test_settings_are_frozen(self, accuracy_settings):
        with pytest.raises(AttributeError):
            accuracy_settings.fuzzy_threshold = 0.1

    def test_tolerance_in_cents(self):
        config = ReconConfig(matching=MatchingConfig(amount_tolerance=Decimal("0.05")))
        assert config.settings_for().amount_tolerance_cents == 5

    def test_sub_cent_tolerance_rounds_up_to_one_cent(self):
        config = ReconConfig(matching=MatchingConfig(amount_tolerance=Decimal("0.001")))
        assert config.settings_for().amount_tolerance_cents == 1

    def test_stop_words(self, accuracy_settings):
        assert "invoice" in accuracy_settings.scoring.stop_words
        assert accuracy_settings.scoring.stop_words == frozenset(DEFAULT_STOP_WORDS)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self):
        config = load_config(None)
        assert config.matching.default_mode == "accuracy"
        assert config.config_file_path is None

    def test_missing_file_falls_back_to_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config.config_file_path is None

    def test_partial_override_is_merged(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "matching:\n"
            "  default_mode: speed\n"
            "  modes:\n"
            "    speed:\n"
            "      loose_window_days: 5\n"
        )

        config = load_config(path)

        speed = config.settings_for()
        assert speed.mode == "speed"
        assert speed.loose_window_days == 5
        assert speed.strict_window_days == 1
        assert config.settings_for("accuracy").loose_window_days == 10
        assert config.config_file_path == str(path)

    def test_custom_stop_words(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("matching:\n  scoring:\n    stop_words: [acme, widgets]\n")

        config = load_config(path)

        assert config.matching.scoring.stop_words == frozenset({"acme", "widgets"})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("matching: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_root_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- accuracy\n- speed\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_validation_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("matching:\n  modes:\n    accuracy:\n      fuzzy_threshold: 1.5\n")

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config(path)

    def test_non_positive_tolerance_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("matching:\n  amount_tolerance: 0\n")

        with pytest.raises(ConfigurationError):
            load_config(path)


class TestGenerateDefaultConfig:
    """Tests for generate_default_config."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        generate_default_config(path)

        assert path.read_text().startswith("# Bank / ledger reconciliation configuration")

        config = load_config(path)
        defaults = ReconConfig().settings_for("accuracy")
        loaded = config.settings_for("accuracy")
        assert loaded.reference_window_days == defaults.reference_window_days
        assert loaded.amount_tolerance == Decimal("0.01")
        assert loaded.scoring.stop_words == defaults.scoring.stop_words
