"""
Journal file loader.

Reads trades and trader settings exported from the journal's store as JSON
or YAML files.
"""

import json
import logging
import os
from typing import Any, List

import yaml

from ..models.settings import Settings
from ..models.trade import Trade

logger = logging.getLogger(__name__)


class JournalFileError(Exception):
    """An input file is missing or cannot be parsed."""


def _read(path: str) -> Any:
    if not os.path.exists(path):
        raise JournalFileError(f"File not found: {path}")

    try:
        with open(path, "r") as f:
            if path.endswith((".yaml", ".yml")):
                return yaml.safe_load(f)
            return json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise JournalFileError(f"Cannot parse {path}: {e}") from e


def load_trades(path: str) -> List[Trade]:
    """
    Load trades from a JSON/YAML file.

    Accepts a list of trade records or an object with a ``trades`` list.

    Raises:
        JournalFileError: unreadable file or unexpected layout
        MalformedTradeError: a record lacks a required trade field
    """
    data = _read(path)
    if isinstance(data, dict):
        data = data.get("trades")
    if not isinstance(data, list):
        raise JournalFileError(f"{path}: expected a list of trades")

    trades = [Trade.from_dict(row) for row in data]
    logger.info(f"Loaded {len(trades)} trades from {path}")
    return trades


def load_settings_file(path: str) -> Settings:
    """Load trader settings from a JSON/YAML file."""
    data = _read(path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise JournalFileError(f"{path}: expected a settings object")

    # Accept the store's {"settings": {...}} wrapper as well
    if "settings" in data and isinstance(data["settings"], dict):
        data = data["settings"]

    settings = Settings.from_dict(data)
    logger.info(f"Loaded trader settings from {path}")
    return settings
