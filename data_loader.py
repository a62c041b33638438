# data_loader.py
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

logger = logging.getLogger(__name__)

BATCH_COLUMNS = ("protocol_id", "protocol_text")


def load_protocol_text(file_path: str) -> Optional[str]:
    """Loads one protocol from a plain-text file."""
    logger.info(f"Attempting to load protocol text from: {file_path}")
    try:
        text = Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.error(f"Protocol file not found: {file_path}")
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading protocol file: {e}", exc_info=True)
        return None

    if not text.strip():
        logger.warning(f"Protocol file is empty: {file_path}")
        return None
    logger.info(f"Loaded protocol of {len(text.split())} words from {file_path}")
    return text


def load_protocol_batch(file_path: str) -> Optional[pd.DataFrame]:
    """
    Loads a batch of protocols from a CSV or Excel file.

    Required columns are ``protocol_id`` and ``protocol_text``; ``phase`` and
    ``therapeutic_area`` are optional.
    """
    logger.info(f"Attempting to load protocol batch from: {file_path}")
    try:
        if Path(file_path).suffix.lower() in (".xlsx", ".xls"):
            df = pd.read_excel(file_path)
        else:
            df = pd.read_csv(file_path)
    except FileNotFoundError:
        logger.error(f"Batch file not found: {file_path}")
        return None
    except Exception as e:
        logger.error(f"Error loading batch file: {e}", exc_info=True)
        return None

    missing = [column for column in BATCH_COLUMNS if column not in df.columns]
    if missing:
        logger.error(f"Batch file {file_path} is missing columns: {', '.join(missing)}")
        return None

    df = df.dropna(subset=["protocol_text"])
    if df.empty:
        logger.warning(f"Batch file loaded but holds no protocol text: {file_path}")
        return None

    for column in ("phase", "therapeutic_area"):
        if column not in df.columns:
            df[column] = None
    df = df.astype({"protocol_id": str})
    logger.info(f"Successfully loaded {len(df)} protocols from {file_path}")
    return df
