# utils.py
from typing import Any, Mapping, Optional, Sequence


def safe_first(lst: Sequence[Any]):
    return lst[0] if lst else None


def is_number(value: Any) -> bool:
    """True for ints and floats; bools are rejected even though they subclass int."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_present(value: Any) -> bool:
    """A value counts as present unless it is None or a blank string."""
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def first_present(record: Mapping[str, Any], candidates: Sequence[str], default=None):
    """
    Walk an ordered list of candidate keys and return the first truthy value.

    Upstream metadata is sparse: empty strings and zeros mean "not set".
    """
    for key in candidates:
        value = record.get(key)
        if value:
            return value
    return default


def media_part_key(track: Mapping[str, Any]) -> Optional[str]:
    """Playable file path of a track: Media[0].Part[0].key."""
    media = safe_first(track.get("Media") or [])
    if not isinstance(media, Mapping):
        return None
    part = safe_first(media.get("Part") or [])
    if not isinstance(part, Mapping):
        return None
    return part.get("key") or None
