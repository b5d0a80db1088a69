from backend.app.models.manufacturer import Manufacturer
from backend.app.models.filament_type import FilamentType
from backend.app.models.swatch import Swatch
from backend.app.models.color_standard import PantoneMatch, PmsMatch, RalMatch

__all__ = [
    "Manufacturer",
    "FilamentType",
    "Swatch",
    "PantoneMatch",
    "PmsMatch",
    "RalMatch",
]
