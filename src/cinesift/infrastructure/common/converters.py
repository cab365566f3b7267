"""Type conversion utilities shared by the catalog adapters."""

from __future__ import annotations

import random
import re
from typing import Any

PLACEHOLDER_IMAGE = "https://via.placeholder.com/500x750/1e293b/64748b?text=No+Image"

# Values providers use to say "there is no image".
_NO_IMAGE_SENTINELS = frozenset({"", "n/a", "none", "null"})

_IMDB_ID_RE = re.compile(r"^tt(\d+)$", re.IGNORECASE)

# Pseudo-ids for records whose native id cannot be parsed. Collisions with
# real ids are possible and tolerated by callers.
_pseudo_ids = random.Random()


def to_int(raw: str | int | float | None) -> int | None:
    """Convert string or number to int, return None if invalid.

    Handles various formats:
        - None → None
        - int → int (passthrough)
        - 7.0 → 7
        - "123" → 123
        - "1,234" → 1234
        - "" / "N/A" → None

    Args:
        raw: Input value.

    Returns:
        Integer or None if conversion fails.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, int):
        return raw

    if isinstance(raw, float):
        return int(raw)

    if isinstance(raw, str):
        txt = "".join(ch for ch in raw if ch.isdigit())
        if not txt:
            return None
        return int(txt)

    return None


def parse_rating(raw: Any) -> float:
    """Parse a provider rating into the 0.0-10.0 range, one decimal.

    Accepts numbers and strings like ``"7.5"`` or ``"7.5/10"``.
    Unparseable values (``"N/A"``, None) become 0.0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, str):
        head = raw.strip().split("/", 1)[0]
        try:
            value = float(head)
        except ValueError:
            return 0.0
    elif isinstance(raw, (int, float)):
        value = float(raw)
    else:
        return 0.0

    if value != value:  # NaN
        return 0.0
    return round(min(max(value, 0.0), 10.0), 1)


def image_or_placeholder(raw: Any, *, prefix: str = "") -> str:
    """Return a usable image reference, substituting the placeholder.

    *prefix* is prepended to relative paths (TMDB returns ``/abc.jpg``).
    Anything that is not a string counts as "no image".
    """
    if not isinstance(raw, str) or raw.strip().lower() in _NO_IMAGE_SENTINELS:
        return PLACEHOLDER_IMAGE
    if prefix and raw.startswith("/"):
        return f"{prefix}{raw}"
    return raw


def parse_imdb_id(imdb_id: str | None) -> int | None:
    """``"tt0137523"`` → 137523. None if the id is not IMDb-shaped."""
    if not imdb_id:
        return None
    match = _IMDB_ID_RE.match(imdb_id.strip())
    if not match:
        return None
    return int(match.group(1))


def derive_movie_id(native_id: Any, index: int = 0) -> int:
    """Derive a stable integer id from a provider's native identifier.

    Integers pass through, IMDb-style ids are parsed. Anything else gets a
    pseudo-id (random base offset by *index*), which can collide.
    """
    if isinstance(native_id, int) and not isinstance(native_id, bool):
        return native_id
    if isinstance(native_id, str):
        parsed = parse_imdb_id(native_id)
        if parsed is not None:
            return parsed
        if native_id.strip().isdigit():
            return int(native_id.strip())
    return _pseudo_ids.randrange(1_000_000) + index


def format_imdb_id(movie_id: int) -> str:
    """137523 → ``"tt0137523"`` (IMDb pads to seven digits)."""
    return f"tt{movie_id:07d}"


def parse_runtime_minutes(raw: Any) -> int | None:
    """``"142 min"`` / 142 → 142. None when unknown."""
    if isinstance(raw, str) and raw.strip().lower() == "n/a":
        return None
    value = to_int(raw)
    return value if value else None


def split_csv(raw: Any) -> list[str]:
    """``"Drama, Crime"`` → ["Drama", "Crime"]; ``"N/A"`` → []."""
    if not isinstance(raw, str) or raw.strip().upper() == "N/A":
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]
