from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.database import Base


class ColorStandardMatch:
    """Columns shared by the ranked best-fit entries of each color standard.

    Rows are owned by a single swatch and are replaced wholesale whenever that
    swatch is re-synced.
    """

    id: Mapped[int] = mapped_column(primary_key=True)
    swatch_id: Mapped[int] = mapped_column(ForeignKey("swatches.id", ondelete="CASCADE"), index=True)
    rank: Mapped[int] = mapped_column(Integer)  # 1-3, slot number in the remote record
    code: Mapped[str] = mapped_column(String(100), default="")
    name: Mapped[str | None] = mapped_column(String(200))
    hex_color: Mapped[str] = mapped_column(String(7), default="")
    category: Mapped[str | None] = mapped_column(String(100))


class PantoneMatch(ColorStandardMatch, Base):
    __tablename__ = "swatch_pantone_matches"


class PmsMatch(ColorStandardMatch, Base):
    """PMS paint-code match. Upstream only provides code and hex."""

    __tablename__ = "swatch_pms_matches"


class RalMatch(ColorStandardMatch, Base):
    __tablename__ = "swatch_ral_matches"


# Standard key -> model. The owning Swatch collection is "<key>_matches".
MATCH_MODELS: dict[str, type[ColorStandardMatch]] = {
    "pantone": PantoneMatch,
    "pms": PmsMatch,
    "ral": RalMatch,
}
MAX_MATCHES_PER_STANDARD = 3
