from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.core.database import Base


class Swatch(Base):
    """A physical filament color sample, keyed by its remote catalog id."""

    __tablename__ = "swatches"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    color_name: Mapped[str] = mapped_column(String(200), default="")
    color_parent: Mapped[str] = mapped_column(String(100), index=True, default="")
    alt_color_parent: Mapped[str | None] = mapped_column(String(100))
    hex_color: Mapped[str] = mapped_column(String(7), index=True, default="")  # As published upstream, usually RRGGBB

    image_front: Mapped[str] = mapped_column(String(500), default="")
    image_back: Mapped[str] = mapped_column(String(500), default="")
    image_other: Mapped[str | None] = mapped_column(String(500))
    card_img: Mapped[str] = mapped_column(String(500), default="")

    date_added: Mapped[datetime | None] = mapped_column(DateTime)
    date_published: Mapped[datetime | None] = mapped_column(DateTime, index=True)
    human_readable_date: Mapped[str] = mapped_column(String(100), default="")

    notes: Mapped[str] = mapped_column(Text, default="")
    amazon_purchase_link: Mapped[str | None] = mapped_column(String(1000))
    mfr_purchase_link: Mapped[str | None] = mapped_column(String(1000))

    is_available: Mapped[bool] = mapped_column(Boolean, default=False)
    published: Mapped[bool] = mapped_column(Boolean, default=False)

    td: Mapped[float | None] = mapped_column(Float)  # Transmission distance (translucency)
    td_range: Mapped[list | None] = mapped_column(JSON)  # [min, max]

    manufacturer_id: Mapped[int] = mapped_column(ForeignKey("manufacturers.id"), index=True)
    filament_type_id: Mapped[int] = mapped_column(ForeignKey("filament_types.id"), index=True)

    # Verbatim remote record, kept for fields the schema does not model yet
    raw_payload: Mapped[dict | None] = mapped_column(JSON)
    last_synced: Mapped[datetime] = mapped_column(DateTime)

    manufacturer: Mapped["Manufacturer"] = relationship(back_populates="swatches")
    filament_type: Mapped["FilamentType"] = relationship(back_populates="swatches")

    pantone_matches: Mapped[list["PantoneMatch"]] = relationship(
        cascade="all, delete-orphan", order_by="PantoneMatch.rank"
    )
    pms_matches: Mapped[list["PmsMatch"]] = relationship(cascade="all, delete-orphan", order_by="PmsMatch.rank")
    ral_matches: Mapped[list["RalMatch"]] = relationship(cascade="all, delete-orphan", order_by="RalMatch.rank")


from backend.app.models.color_standard import PantoneMatch, PmsMatch, RalMatch  # noqa: E402
from backend.app.models.filament_type import FilamentType  # noqa: E402
from backend.app.models.manufacturer import Manufacturer  # noqa: E402
