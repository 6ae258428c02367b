# plex.py
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import requests

from errors import NoLibraryFound, NotConfigured, ProviderTimeout, ProviderUnavailable
from utils import first_present, media_part_key

logger = logging.getLogger(__name__)

PLEX_URL = os.environ.get("PLEX_URL", "http://localhost:32400")
PLEX_TOKEN = os.environ.get("PLEX_TOKEN", "")

# Upstream timeouts (seconds)
SECTIONS_TIMEOUT = 10
TRACKS_TIMEOUT = 30
AUDIO_TIMEOUT = 30
THUMB_TIMEOUT = 10

MUSIC_SECTION_TYPE = "artist"
TRACK_ITEM_TYPE = 10

# Plex answers XML unless asked for JSON
JSON_HEADERS = {"Accept": "application/json"}

# Output field -> (candidate upstream keys in priority order, default)
TRACK_FIELDS = (
    ("id", ("ratingKey",), None),
    ("title", ("title",), None),
    ("artist", ("grandparentTitle", "originalTitle"), "Unknown Artist"),
    ("album", ("parentTitle",), "Unknown Album"),
    ("year", ("parentYear", "year"), None),
    ("duration", ("duration",), None),
    ("thumbPath", ("thumb",), None),
)


def is_configured() -> bool:
    return bool(PLEX_TOKEN)


def masked_token() -> str:
    return f"{PLEX_TOKEN[:4]}..." if PLEX_TOKEN else ""


def _require_token() -> None:
    if not PLEX_TOKEN:
        raise NotConfigured("Plex token not configured. Set PLEX_TOKEN environment variable.")


def _upstream_url(path: str) -> str:
    clean = path if path.startswith("/") else f"/{path}"
    return f"{PLEX_URL.rstrip('/')}{clean}"


def _get(
    path: str,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    stream: bool = False,
):
    """
    GET against the Plex server with the token attached.

    Maps every requests failure onto the gateway errors. The response
    status is checked before it is returned.
    """
    query = {"X-Plex-Token": PLEX_TOKEN}
    query.update(params or {})
    url = _upstream_url(path)
    try:
        r = requests.get(
            url,
            params=query,
            headers=headers,
            timeout=timeout,
            stream=stream,
        )
    except requests.Timeout as e:
        raise ProviderTimeout("Plex request timed out", details=str(e)) from e
    except requests.RequestException as e:
        raise ProviderUnavailable("Plex server unreachable", details=str(e)) from e

    try:
        r.raise_for_status()
    except requests.HTTPError as e:
        r.close()
        raise ProviderUnavailable(
            f"Plex returned HTTP {r.status_code}", details=str(e)
        ) from e
    return r


def _json(r) -> Dict[str, Any]:
    try:
        data = r.json()
    except ValueError as e:
        raise ProviderUnavailable("Plex returned invalid JSON", details=str(e)) from e
    container = data.get("MediaContainer") if isinstance(data, dict) else None
    if not isinstance(container, dict):
        raise ProviderUnavailable("Plex response missing MediaContainer")
    return container


# =========================
# Track listing
# =========================

def find_music_section(directories: List[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    for d in directories:
        if isinstance(d, Mapping) and d.get("type") == MUSIC_SECTION_TYPE:
            return d
    return None


def normalize_track(track: Mapping[str, Any]) -> Dict[str, Any]:
    out = {
        field: first_present(track, candidates, default)
        for field, candidates, default in TRACK_FIELDS
    }
    out["audioPath"] = media_part_key(track)
    return out


def normalize_tracks(metadata: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Tracks without a playable part are dropped."""
    tracks = (normalize_track(t) for t in metadata if isinstance(t, Mapping))
    return [t for t in tracks if t["audioPath"]]


def fetch_tracks() -> List[Dict[str, Any]]:
    _require_token()

    with _get("/library/sections", SECTIONS_TIMEOUT, headers=JSON_HEADERS) as r:
        sections = _json(r)
    section = find_music_section(sections.get("Directory") or [])
    if section is None:
        raise NoLibraryFound("No music library found in Plex")

    with _get(
        f"/library/sections/{section.get('key')}/all",
        TRACKS_TIMEOUT,
        params={"type": TRACK_ITEM_TYPE},
        headers=JSON_HEADERS,
    ) as r:
        container = _json(r)

    tracks = normalize_tracks(container.get("Metadata") or [])
    logger.info(f"Found {len(tracks)} tracks in Plex library")
    return tracks


# =========================
# Byte proxies
# =========================

def open_audio_stream(path: str):
    """Caller owns the returned response and must close it."""
    _require_token()
    logger.info(f"Streaming audio from {_upstream_url(path)} (token {masked_token()})")
    return _get(path, AUDIO_TIMEOUT, stream=True)


def open_thumb_stream(path: str):
    """Caller owns the returned response and must close it."""
    _require_token()
    return _get(path, THUMB_TIMEOUT, stream=True)
