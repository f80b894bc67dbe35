"""Configuration loader and validation for reconciliation settings."""

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models.transaction import to_cents
from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_STOP_WORDS = [
    "the", "and", "or", "ltd", "inc", "corp", "plc", "llc", "gmbh", "pvt",
    "payment", "transfer", "tfr", "inv", "ref", "invoice", "bill", "reference",
    "to", "from", "of", "for", "by", "deposit", "withdrawal", "dr", "cr",
    "momo", "mobile", "money", "bank", "charges", "service", "fee", "comm",
    "pos", "purchase", "card", "visa", "mastercard", "direct", "debit",
    "standing", "order", "chq", "cheque", "cash", "atm", "trf", "rtgs", "neft",
    "imps", "ach", "wire", "swift", "txn", "id", "no", "number", "account",
    "acct", "opening", "balance", "closing", "brought", "forward",
]  # fmt: skip


class InputConfig(BaseModel):
    """Configuration for CSV ingestion."""

    encoding: str = "utf-8"
    delimiter: str = ","
    header_scan_rows: int = Field(default=20, ge=1)
    # Header keywords used to detect each column (compared after stripping
    # non-alphanumerics and lowercasing)
    date_keywords: list[str] = Field(default_factory=lambda: ["date", "dt"])
    description_keywords: list[str] = Field(
        default_factory=lambda: [
            "description",
            "desc",
            "memo",
            "details",
            "narrative",
            "particulars",
        ]
    )
    amount_keywords: list[str] = Field(default_factory=lambda: ["amount", "value", "amt"])
    debit_keywords: list[str] = Field(default_factory=lambda: ["debit", "withdrawal", "dr"])
    credit_keywords: list[str] = Field(default_factory=lambda: ["credit", "deposit", "cr"])


class ModeProfile(BaseModel):
    """Date windows and acceptance thresholds for one matching mode."""

    model_config = ConfigDict(frozen=True)

    strict_window_days: int = Field(ge=0)
    loose_window_days: int = Field(gt=0)
    reference_window_days: int = Field(ge=0)
    fuzzy_threshold: float = Field(ge=0.0, le=1.0)
    max_combination_depth: int = Field(ge=0)


class ScoringConfig(BaseModel):
    """Text similarity constants."""

    model_config = ConfigDict(frozen=True)

    stop_words: frozenset[str] = Field(default_factory=lambda: frozenset(DEFAULT_STOP_WORDS))
    numeric_identity_score: float = 0.98
    containment_score: float = 0.85
    # Edit distance only applies when both strings are longer than this
    edit_distance_min_length: int = 3
    # ...and their lengths differ by less than this
    edit_distance_max_length_gap: int = 5
    min_reference_digits: int = 3
    year_range_start: int = 2020
    year_range_end: int = 2030


class PassConfig(BaseModel):
    """Per-pass confidences and tunable ranking constants."""

    model_config = ConfigDict(frozen=True)

    reference_confidence: float = 0.99
    exact_date_confidence: float = 0.95
    strict_window_confidence: float = 0.9
    split_merge_confidence: float = 0.85
    perfect_match_similarity: float = 0.8
    strong_text_similarity: float = 0.8
    strict_min_similarity: float = 0.5
    strict_close_days: int = 1
    strict_tie_break: float = 0.1
    date_penalty_weight: float = 0.2


class MatchingConfig(BaseModel):
    """Configuration for the matching engine."""

    default_mode: str = "accuracy"
    amount_tolerance: Decimal = Field(default=Decimal("0.01"), gt=0)
    modes: dict[str, ModeProfile] = Field(
        default_factory=lambda: {
            "accuracy": ModeProfile(
                strict_window_days=3,
                loose_window_days=10,
                reference_window_days=45,
                fuzzy_threshold=0.6,
                max_combination_depth=4,
            ),
            "speed": ModeProfile(
                strict_window_days=1,
                loose_window_days=3,
                reference_window_days=10,
                fuzzy_threshold=0.85,
                max_combination_depth=2,
            ),
        }
    )
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    passes: PassConfig = Field(default_factory=PassConfig)


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matched Groups"))
    unmatched_bank: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Bank")
    )
    unmatched_ledger: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Ledger")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    report_filename_template: str = "reconciliation_report_{date}.xlsx"
    csv_filename_template: str = "reconciliation_report_{date}.csv"
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None

    def settings_for(self, mode: Optional[str] = None) -> "MatchSettings":
        """
        Resolve the immutable settings used by one reconciliation run.

        Args:
            mode: Mode name; falls back to ``matching.default_mode``

        Returns:
            Frozen MatchSettings for the engine

        Raises:
            ConfigurationError: If the mode is not configured
        """
        matching = self.matching
        mode = mode or matching.default_mode
        profile = matching.modes.get(mode)
        if profile is None:
            available = ", ".join(sorted(matching.modes)) or "none"
            raise ConfigurationError(
                f"Unknown matching mode '{mode}' (available: {available})"
            )

        return MatchSettings(
            mode=mode,
            amount_tolerance=matching.amount_tolerance,
            amount_tolerance_cents=max(1, to_cents(matching.amount_tolerance)),
            strict_window_days=profile.strict_window_days,
            loose_window_days=profile.loose_window_days,
            reference_window_days=profile.reference_window_days,
            fuzzy_threshold=profile.fuzzy_threshold,
            max_combination_depth=profile.max_combination_depth,
            scoring=matching.scoring,
            passes=matching.passes,
        )


@dataclass(frozen=True)
class MatchSettings:
    """Everything the engine reads during a run, resolved for a single mode."""

    mode: str
    amount_tolerance: Decimal
    amount_tolerance_cents: int
    strict_window_days: int
    loose_window_days: int
    reference_window_days: int
    fuzzy_threshold: float
    max_combination_depth: int
    scoring: ScoringConfig
    passes: PassConfig


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "encoding": "utf-8",
            "delimiter": ",",
            "header_scan_rows": 20,
        },
        "matching": {
            "default_mode": "accuracy",
            "amount_tolerance": "0.01",
            "modes": {
                "accuracy": {
                    "strict_window_days": 3,
                    "loose_window_days": 10,
                    "reference_window_days": 45,
                    "fuzzy_threshold": 0.6,
                    "max_combination_depth": 4,
                },
                "speed": {
                    "strict_window_days": 1,
                    "loose_window_days": 3,
                    "reference_window_days": 10,
                    "fuzzy_threshold": 0.85,
                    "max_combination_depth": 2,
                },
            },
            "passes": {
                "reference_confidence": 0.99,
                "exact_date_confidence": 0.95,
                "strict_window_confidence": 0.9,
                "split_merge_confidence": 0.85,
                "strict_tie_break": 0.1,
                "date_penalty_weight": 0.2,
            },
        },
        "output": {
            "report_filename_template": "reconciliation_report_{date}.xlsx",
            "csv_filename_template": "reconciliation_report_{date}.csv",
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "matched": {"enabled": True, "name": "Matched Groups"},
                "unmatched_bank": {"enabled": True, "name": "Unmatched Bank"},
                "unmatched_ledger": {"enabled": True, "name": "Unmatched Ledger"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration root in {config_path} must be a mapping"
            )

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()
    config_dict["matching"]["scoring"] = {"stop_words": list(DEFAULT_STOP_WORDS)}

    yaml_content = """# Bank / ledger reconciliation configuration
# Generated configuration file - customize as needed
# Modes trade recall for runtime: "accuracy" widens date windows,
# "speed" narrows them and caps split/merge combinations at 2 items.

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
