"""Transcript loading from exported chat files."""
import logging
from datetime import date
from pathlib import Path

import pandas as pd

from .models import Message

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("timestamp", "sender", "content")


def load_csv_transcript(csv_path: Path) -> str:
    """Convert a timestamp/sender/content CSV into chat-export lines.

    Rows with an unparseable timestamp or an empty sender are skipped.
    """
    df = pd.read_csv(csv_path)
    missing = [c for c in CSV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{csv_path} is missing columns: {', '.join(missing)}")

    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce")
    lines = []
    for row in df.itertuples():
        if pd.isna(row.timestamp) or pd.isna(row.sender) or not str(row.sender).strip():
            continue
        content = "" if pd.isna(row.content) else str(row.content)
        # Newlines inside a cell would split the message
        content = " ".join(content.splitlines())
        lines.append(Message(
            timestamp=row.timestamp.to_pydatetime(),
            sender=str(row.sender).strip(),
            content=content,
            is_client=True,
        ).to_line())
    return "\n".join(lines)


def load_transcripts(paths: list[Path]) -> str:
    """Read and concatenate transcript files (.txt exports or .csv tables)."""
    texts = []
    for path in paths:
        path = Path(path)
        if path.suffix.lower() == ".csv":
            texts.append(load_csv_transcript(path))
        else:
            texts.append(path.read_text(encoding="utf-8"))
        logger.info("Loaded transcript %s", path)
    return "\n".join(texts)


def get_date_range(messages: list[Message]) -> tuple[date, date]:
    """First and last message dates."""
    if not messages:
        raise ValueError("No messages to take a date range from")
    return messages[0].timestamp.date(), messages[-1].timestamp.date()
