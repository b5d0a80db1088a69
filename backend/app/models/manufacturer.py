from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.core.database import Base


class Manufacturer(Base):
    """Filament manufacturer mirrored from the remote swatch catalog."""

    __tablename__ = "manufacturers"

    # Remote-assigned id, never generated locally
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(200), index=True, default="")
    website: Mapped[str] = mapped_column(String(500), default="")

    swatches: Mapped[list["Swatch"]] = relationship(back_populates="manufacturer")


from backend.app.models.swatch import Swatch  # noqa: E402
