import unicodedata
from datetime import datetime, timezone


def fold(value: str) -> str:
    """Case- and accent-insensitive form used for text matching."""
    decomposed = unicodedata.normalize("NFKD", str(value))
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
