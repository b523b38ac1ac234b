"""
config.py - Load dashboard settings from config/dashboard.yaml.

Values in the YAML file are merged over DEFAULTS, one level deep, so a file
that only overrides ``trend.padding`` keeps the other trend settings.
"""

import copy
from pathlib import Path
from typing import Optional

import yaml


CONFIG_FILE = Path(__file__).parent.parent / "config" / "dashboard.yaml"

DEFAULTS = {
    "columns": {
        "date": ["date", "transaction_date", "created_at", "timestamp"],
        "description": ["description", "details", "memo", "note", "reference"],
        "category": ["category", "type", "classification", "class"],
        "amount": ["amount", "value", "cost", "price", "expense", "debit"],
        "merchant": ["merchant", "vendor", "store", "company", "supplier"],
        "employee": ["employee", "user", "name", "staff", "person"],
        "department": ["department", "team", "division", "unit", "branch"],
        "status": ["status", "approval_status", "state"],
    },
    "status_aliases": {
        "approved": ["approved", "approve", "accepted", "complete"],
        "rejected": ["rejected", "denied", "declined"],
    },
    "budget_multiplier": 1.5,
    "max_file_size_mb": 10,
    "trend": {
        "min_months": 6,
        "max_months": 12,
        "padding": "leading",
    },
    "insights": {
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
        "model": "gemini-2.0-flash",
        "api_key_env": "GEMINI_API_KEY",
        "timeout": 30,
    },
}

TREND_PADDING_MODES = ("leading", "symmetric")


def load_config(path: Optional[Path] = None) -> dict:
    """Load settings from YAML and merge them over DEFAULTS.

    Args:
        path: Path to a dashboard.yaml. Defaults to config/dashboard.yaml;
              when the default file is absent the built-in DEFAULTS are used.

    Returns:
        Settings dict with every key of DEFAULTS present.

    Raises:
        FileNotFoundError: If an explicit ``path`` does not exist.
        ValueError: If the file is not valid YAML, is not a mapping, or
            ``trend.padding`` is not a known mode.
    """
    settings = copy.deepcopy(DEFAULTS)
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = CONFIG_FILE
        if not path.exists():
            return settings

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    for key, value in data.items():
        if isinstance(settings.get(key), dict):
            if not isinstance(value, dict):
                raise ValueError(f"Config section '{key}' must be a mapping")
            settings[key] = {**settings[key], **value}
        else:
            settings[key] = value

    padding = settings["trend"]["padding"]
    if padding not in TREND_PADDING_MODES:
        raise ValueError(
            f"Unknown trend padding '{padding}'. Expected one of: {', '.join(TREND_PADDING_MODES)}"
        )
    return settings
