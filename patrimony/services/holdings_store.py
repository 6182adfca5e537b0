"""Read-only holdings snapshot loader."""

import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from patrimony.lib.errors import HoldingsFileError
from patrimony.lib.logging_config import get_logger
from patrimony.models.holding import Holding, parse_holdings

logger = get_logger(__name__)


def load_holdings(path: Union[str, Path]) -> list[Holding]:
    """
    Load holdings from a JSON export.

    The file holds a list of holding records in camelCase, or an object with
    a ``holdings`` list.

    Args:
        path: JSON file path

    Returns:
        Typed holdings in file order

    Raises:
        HoldingsFileError: File unreadable, not JSON, or a record is invalid
    """
    file_path = Path(path)

    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except OSError as e:
        logger.error(f"Cannot read holdings file {file_path}: {e}")
        raise HoldingsFileError(str(file_path), str(e)) from e
    except json.JSONDecodeError as e:
        logger.error(f"Holdings file {file_path} is not valid JSON: {e}")
        raise HoldingsFileError(str(file_path), f"invalid JSON at line {e.lineno}") from e

    records = raw.get("holdings") if isinstance(raw, dict) else raw
    if not isinstance(records, list):
        raise HoldingsFileError(str(file_path), "expected a list of holdings")

    try:
        holdings = parse_holdings(records)
    except ValidationError as e:
        logger.error(f"Invalid holding records in {file_path}: {e}")
        raise HoldingsFileError(str(file_path), f"{e.error_count()} invalid field(s)") from e

    logger.info(f"Loaded {len(holdings)} holdings from {file_path}")
    return holdings
