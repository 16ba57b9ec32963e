"""Persist user-named screens to a local JSON file.

The file holds a JSON object with the screens under a single key, newest
first::

    {"saved-screens": [{"id": "...", "name": "...", "query": "...", ...}]}

At most ``max_entries`` screens are kept; saving beyond the cap drops the
oldest.  A missing or unreadable file behaves as an empty store.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.config import get_section, project_root
from app.logging import get_logger
from screener.models import (
    DEFAULT_LIMIT,
    SavedScreen,
    ScreenerCriteria,
    ScreenRequest,
)

logger = get_logger(__name__)

STORAGE_KEY = "saved-screens"
MAX_ENTRIES = 10
_DEFAULT_PATH = "data/saved_screens.json"


class SavedScreenStore:
    """Newest-first, bounded collection of :class:`SavedScreen` records.

    Args:
        path: JSON file location.  Relative paths resolve against the
            project root.  Defaults to ``saved_screens.path`` from config.
        key: Top-level key the list is stored under.
        max_entries: Cap on stored screens; defaults to
            ``saved_screens.max_entries``.
    """

    def __init__(
        self,
        path: str | Path | None = None,
        key: str = STORAGE_KEY,
        max_entries: int | None = None,
    ) -> None:
        cfg = get_section("saved_screens")
        target = Path(path or cfg.get("path") or _DEFAULT_PATH)
        if not target.is_absolute():
            target = project_root() / target
        self._path = target
        self._key = key
        self._max_entries = int(max_entries or cfg.get("max_entries", MAX_ENTRIES))

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> list[SavedScreen]:
        """Return stored screens, newest first."""
        screens: list[SavedScreen] = []
        for entry in self._read():
            try:
                screens.append(SavedScreen.from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unreadable saved screen: %s", exc)
        return screens

    def get(self, screen_id: str) -> SavedScreen | None:
        for screen in self.list():
            if screen.id == screen_id:
                return screen
        return None

    def find(self, id_or_name: str) -> SavedScreen | None:
        """Look a screen up by id, then by case-insensitive name."""
        screen = self.get(id_or_name)
        if screen is not None:
            return screen
        wanted = id_or_name.strip().lower()
        for screen in self.list():
            if screen.name.lower() == wanted:
                return screen
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save(
        self,
        name: str,
        query: str,
        criteria: ScreenerCriteria,
        sort_by: str = "volume",
        sort_order: str = "desc",
    ) -> SavedScreen:
        """Store a new screen at the front of the list and return it."""
        # Validate ordering before anything is written.
        ScreenRequest(criteria=criteria, sort_by=sort_by, sort_order=sort_order)
        screen = SavedScreen(
            id=uuid.uuid4().hex[:12],
            name=name.strip() or query,
            query=query,
            criteria=criteria,
            saved_at=datetime.now(timezone.utc).isoformat(),
            sort_by=sort_by,
            sort_order=sort_order,
        )
        screens = [screen, *self.list()]
        dropped = screens[self._max_entries:]
        if dropped:
            logger.info("Saved screens over cap; dropping %d oldest", len(dropped))
        self._write(screens[:self._max_entries])
        logger.info("Saved screen '%s' (%s)", screen.name, screen.id)
        return screen

    def delete(self, screen_id: str) -> bool:
        """Remove the screen with *screen_id*; return ``False`` if absent."""
        screens = self.list()
        kept = [s for s in screens if s.id != screen_id]
        if len(kept) == len(screens):
            return False
        self._write(kept)
        logger.info("Deleted saved screen %s", screen_id)
        return True

    def clear(self) -> None:
        self._write([])

    @staticmethod
    def to_request(screen: SavedScreen, limit: int = DEFAULT_LIMIT) -> ScreenRequest:
        """Build the request that re-runs *screen* exactly as saved."""
        return ScreenRequest(
            criteria=screen.criteria,
            sort_by=screen.sort_by,
            sort_order=screen.sort_order,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            with open(self._path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable saved screens file %s: %s", self._path, exc)
            return []
        entries = data.get(self._key) if isinstance(data, dict) else None
        if not isinstance(entries, list):
            return []
        return [e for e in entries if isinstance(e, dict)]

    def _write(self, screens: list[SavedScreen]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data: dict[str, Any] = {}
        if self._path.exists():
            try:
                with open(self._path) as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    data = loaded
            except (OSError, json.JSONDecodeError):
                data = {}
        data[self._key] = [s.to_dict() for s in screens]
        with open(self._path, "w") as f:
            json.dump(data, f, indent=2)
