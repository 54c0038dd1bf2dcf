"""pinelint/config.py — Analyzer configuration."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pinelint.errors import ConfigError, Severity

logger = logging.getLogger(__name__)

__all__ = ["AnalyzerConfig", "SEVERITY_FILTERS"]

SEVERITY_FILTERS = ("all", "error", "warning", "suggestion")


@dataclass
class AnalyzerConfig:
    """Tuning knobs for an ``Analyzer``.

    ``enabled_validators`` of ``None`` means every validator in the
    static table.  ``severity_filter`` keeps only violations of exactly the
    given severity (``all`` keeps everything).
    """

    catalog_path: Optional[str] = None
    rules_path: Optional[str] = None
    enabled_validators: Optional[Tuple[str, ...]] = None
    severity_filter: str = "all"
    max_line_length: int = 120
    max_nesting_depth: int = 200

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        from pinelint.validators import validator_names

        warnings: List[str] = []
        if self.severity_filter not in SEVERITY_FILTERS:
            warnings.append(
                f"severity_filter must be one of {', '.join(SEVERITY_FILTERS)}"
            )
        if self.max_line_length <= 0:
            warnings.append("max_line_length must be positive")
        if self.max_nesting_depth <= 0:
            warnings.append("max_nesting_depth must be positive")
        if self.enabled_validators is not None:
            known = set(validator_names())
            for name in self.enabled_validators:
                if name not in known:
                    warnings.append(f"unknown validator {name!r}")
        for attr in ("catalog_path", "rules_path"):
            path = getattr(self, attr)
            if path is not None and not Path(path).is_file():
                warnings.append(f"{attr} does not exist: {path}")
        return warnings

    def selected_severity(self) -> Optional[Severity]:
        if self.severity_filter == "all":
            return None
        return Severity.parse(self.severity_filter)

    def is_enabled(self, name: str) -> bool:
        return self.enabled_validators is None or name in self.enabled_validators

    def merged(self, **overrides: Any) -> "AnalyzerConfig":
        """Copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyzerConfig":
        if not isinstance(data, dict):
            raise ConfigError("configuration must be a JSON object")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
        values = dict(data)
        if values.get("enabled_validators") is not None:
            values["enabled_validators"] = tuple(values["enabled_validators"])
        return cls(**values)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AnalyzerConfig":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid JSON in {path}: {exc}") from exc
        config = cls.from_dict(data)
        logger.debug("loaded configuration from %s", path)
        return config
