#!/usr/bin/env python3
"""
Saved palettes: a small JSON file holding the most recent palettes and tokens.

A saved palette re-enters the pipeline at token derivation; nothing about it
differs from a freshly extracted palette.
"""

import contextlib
import json
import logging
import os
import random
import string
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from extract_colors import Swatch
from tokens import ThemeTokens

logger = logging.getLogger(__name__)

MAX_SAVED = 5
DEFAULT_STORE_PATH = Path.home() / '.design_tokens' / 'palettes.json'


@dataclass
class SavedPalette:
    """One stored palette with the tokens derived from it."""
    id: str
    name: str
    timestamp: int  # Milliseconds since the epoch
    palette: list  # Swatch
    tokens: ThemeTokens

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'timestamp': self.timestamp,
            'palette': [swatch.to_dict() for swatch in self.palette],
            'tokens': self.tokens.as_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SavedPalette':
        return cls(
            id=data['id'],
            name=data['name'],
            timestamp=int(data['timestamp']),
            palette=[Swatch.from_dict(item) for item in data['palette']],
            tokens=ThemeTokens.from_dict(data['tokens']),
        )


def generate_id() -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"pal_{int(time.time() * 1000)}_{suffix}"


class PaletteStore:
    """Newest-first list of saved palettes, capped at max_saved."""

    def __init__(self, path=DEFAULT_STORE_PATH, max_saved: int = MAX_SAVED):
        self.path = Path(path)
        self.max_saved = max_saved

    def entries(self) -> list:
        """Saved palettes, newest first. An unreadable store reads as empty."""
        try:
            raw = json.loads(self.path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            logger.warning("Could not read saved palettes from %s: %s", self.path, e)
            return []

        if not isinstance(raw, list):
            logger.warning("Could not read saved palettes from %s: expected a list, got %s",
                           self.path, type(raw).__name__)
            return []

        saved = []
        for item in raw:
            try:
                saved.append(SavedPalette.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed saved palette: %s", e)
        return saved

    def save(self, name: Optional[str], palette: list, tokens: ThemeTokens) -> SavedPalette:
        """Store a palette at the front, evicting the oldest beyond max_saved."""
        record = SavedPalette(
            id=generate_id(),
            name=name or f"Palette {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            timestamp=int(time.time() * 1000),
            palette=list(palette),
            tokens=tokens,
        )

        saved = [record] + self.entries()
        self._write(saved[:self.max_saved])
        logger.debug("Saved palette %s (%d swatches)", record.id, len(record.palette))
        return record

    def get(self, palette_id: str) -> SavedPalette:
        """Raises KeyError if no saved palette has this id."""
        for saved in self.entries():
            if saved.id == palette_id:
                return saved
        raise KeyError(palette_id)

    def delete(self, palette_id: str) -> None:
        saved = self.entries()
        remaining = [s for s in saved if s.id != palette_id]
        if len(remaining) != len(saved):
            self._write(remaining)

    def _write(self, saved: list) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([s.to_dict() for s in saved], indent=2)

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise
