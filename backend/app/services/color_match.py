"""Nearest-color lookup over a snapshot of the mirrored swatches.

The matcher is a plain linear scan using Euclidean distance in RGB space.
``SwatchSnapshot`` is owned by its caller and refreshed explicitly, either
through ``reload`` or when its time-to-live has passed.
"""

import logging
import math
import string
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.app.core.config import settings
from backend.app.core.database import utcnow
from backend.app.models.swatch import Swatch

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]


def hex_to_rgb(hex_color: str | None) -> RGB:
    """Convert RRGGBB (optionally prefixed with '#') to an RGB tuple.

    Malformed input maps to black rather than failing.
    """
    if not hex_color:
        return (0, 0, 0)
    value = hex_color.strip().lstrip("#")
    if len(value) != 6 or any(c not in string.hexdigits for c in value):
        return (0, 0, 0)
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def color_distance(a: RGB, b: RGB) -> float:
    """Euclidean distance between two RGB colors."""
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


@dataclass(frozen=True)
class SnapshotEntry:
    """The fields of a swatch needed to present a color match."""

    id: int
    color_name: str
    hex_color: str
    manufacturer: str
    filament_type: str
    card_img: str = ""
    mfr_purchase_link: str | None = None


@dataclass(frozen=True)
class ColorMatch:
    entry: SnapshotEntry
    distance: float


def find_closest_swatches(entries: Sequence[SnapshotEntry], hex_color: str, count: int = 5) -> list[ColorMatch]:
    """Return the ``count`` entries closest to ``hex_color``, nearest first.

    Ties keep snapshot order.
    """
    if not entries or not hex_color or count <= 0:
        return []

    target = hex_to_rgb(hex_color)
    scored = [ColorMatch(entry=e, distance=color_distance(target, hex_to_rgb(e.hex_color))) for e in entries]
    scored.sort(key=lambda m: m.distance)
    return scored[:count]


@dataclass
class SwatchSnapshot:
    """Immutable-per-load copy of every swatch, with an explicit refresh contract."""

    ttl: timedelta = field(default_factory=lambda: timedelta(hours=settings.snapshot_ttl_hours))
    entries: tuple[SnapshotEntry, ...] = ()
    loaded_at: datetime | None = None

    def is_stale(self, now: datetime | None = None) -> bool:
        if self.loaded_at is None:
            return True
        return (now or utcnow()) - self.loaded_at >= self.ttl

    def invalidate(self):
        """Force the next ``ensure_fresh`` to reload."""
        self.loaded_at = None

    async def reload(self, db: AsyncSession) -> "SwatchSnapshot":
        result = await db.execute(
            select(Swatch)
            .options(selectinload(Swatch.manufacturer), selectinload(Swatch.filament_type))
            .order_by(Swatch.id)
        )
        self.entries = tuple(
            SnapshotEntry(
                id=s.id,
                color_name=s.color_name,
                hex_color=s.hex_color,
                manufacturer=s.manufacturer.name if s.manufacturer else "",
                filament_type=s.filament_type.name if s.filament_type else "",
                card_img=s.card_img,
                mfr_purchase_link=s.mfr_purchase_link,
            )
            for s in result.scalars().all()
        )
        self.loaded_at = utcnow()
        logger.info("Loaded color snapshot with %d swatches", len(self.entries))
        return self

    async def ensure_fresh(self, db: AsyncSession) -> "SwatchSnapshot":
        if self.is_stale():
            await self.reload(db)
        return self
