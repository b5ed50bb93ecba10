"""Transcript tokenizing and conversation grouping."""
import logging
import re
import unicodedata
from datetime import datetime

from .models import Message

logger = logging.getLogger(__name__)

LINE_RE = re.compile(
    r"^\[(\d{1,2}):(\d{2})(?:\s*([ap])\.?\s*m\.?)?,\s*"
    r"(\d{1,2})/(\d{1,2})/(\d{2,4})\]\s*([^:]+):\s*(.*)$",
    re.IGNORECASE,
)


def _fold(text: str) -> str:
    """Lowercase and strip accents for name comparison."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _parse_timestamp(match: re.Match) -> datetime:
    hour, minute = int(match.group(1)), int(match.group(2))
    period = (match.group(3) or "").lower()
    if period == "p" and hour != 12:
        hour += 12
    elif period == "a" and hour == 12:
        hour = 0

    first, second, year = int(match.group(4)), int(match.group(5)), int(match.group(6))
    # Month first unless the first component cannot be a month
    if first > 12:
        day, month = first, second
    else:
        month, day = first, second
    if year < 100:
        year += 1900 if year > 50 else 2000

    return datetime(year, month, day, hour, minute)


def parse_transcript(text: str, bakery_name: str = "panaderia quilantan") -> list[Message]:
    """Parse exported chat text into messages sorted by timestamp.

    Only single-line `[H:MM AM, M/D/YYYY] Sender: Content` entries are
    recognized; continuation lines and system notices are dropped.
    """
    if not isinstance(text, str):
        raise TypeError(f"transcript must be a string, got {type(text).__name__}")

    bakery = _fold(bakery_name)
    messages = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        match = LINE_RE.match(line)
        if not match:
            continue
        try:
            timestamp = _parse_timestamp(match)
        except ValueError:
            logger.debug("Skipping line with invalid timestamp: %s", line)
            continue

        sender = match.group(7).strip()
        messages.append(Message(
            timestamp=timestamp,
            sender=sender,
            content=match.group(8).strip(),
            is_client=bakery not in _fold(sender),
        ))

    # sorted() is stable, so equal timestamps keep transcript order
    return sorted(messages, key=lambda m: m.timestamp)


def group_conversations(messages: list[Message]) -> dict[str, list[Message]]:
    """Split the timeline into one conversation per client.

    A bakery message belongs to the closest preceding client message's
    sender; when there is none, to the closest following one. With no
    client messages at all, bakery messages are dropped.
    """
    owners: list[str | None] = [None] * len(messages)

    # Backward pass: nearest preceding client sender
    last_client = None
    for i, message in enumerate(messages):
        if message.is_client:
            last_client = message.sender
        owners[i] = last_client

    # Forward pass only fills what the backward pass left empty
    next_client = None
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].is_client:
            next_client = messages[i].sender
        elif owners[i] is None:
            owners[i] = next_client

    conversations: dict[str, list[Message]] = {}
    for message, owner in zip(messages, owners):
        if owner is None:
            continue
        conversations.setdefault(owner, []).append(message)
    return conversations
