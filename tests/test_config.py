# tests/test_config.py
"""
Tests for AnalyzerConfig loading and validation.
"""

import json

import pytest

from pinelint.config import AnalyzerConfig
from pinelint.errors import ConfigError, Severity


class TestAnalyzerConfig:

    def test_defaults(self):
        config = AnalyzerConfig()
        assert config.validate() == []
        assert config.selected_severity() is None
        assert config.is_enabled("style")

    def test_selected_severity(self):
        assert AnalyzerConfig(severity_filter="warning").selected_severity() is Severity.WARNING

    def test_validate_reports_problems(self):
        config = AnalyzerConfig(
            severity_filter="loud",
            max_line_length=0,
            enabled_validators=("style", "nope"),
            rules_path="/nonexistent/rules.json",
        )
        warnings = config.validate()
        assert len(warnings) == 4
        assert "unknown validator 'nope'" in warnings

    def test_merged_skips_none(self):
        config = AnalyzerConfig(severity_filter="error").merged(severity_filter=None, max_line_length=80)
        assert (config.severity_filter, config.max_line_length) == ("error", 80)

    def test_from_file(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"enabled_validators": ["style"], "max_line_length": 99}))
        config = AnalyzerConfig.from_file(path)
        assert config.enabled_validators == ("style",)
        assert not config.is_enabled("naming")

    def test_unknown_keys(self):
        with pytest.raises(ConfigError, match="unknown configuration keys: colour"):
            AnalyzerConfig.from_dict({"colour": True})

    def test_bad_json(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="invalid JSON"):
            AnalyzerConfig.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            AnalyzerConfig.from_file(tmp_path / "absent.json")
