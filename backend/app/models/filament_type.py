from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.core.database import Base


class FilamentType(Base):
    """Material descriptor (PLA, PETG, ...) mirrored from the remote catalog."""

    __tablename__ = "filament_types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(200), index=True, default="")
    hot_end_temp: Mapped[int] = mapped_column(Integer, default=0)  # Celsius
    bed_temp: Mapped[int] = mapped_column(Integer, default=0)  # Celsius
    parent_type: Mapped[str | None] = mapped_column(String(200))  # Embedded parent label, e.g. "PLA"

    swatches: Mapped[list["Swatch"]] = relationship(back_populates="filament_type")


from backend.app.models.swatch import Swatch  # noqa: E402
