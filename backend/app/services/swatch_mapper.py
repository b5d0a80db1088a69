"""Maps raw filamentcolors.xyz swatch records into typed values.

Everything here is pure: no I/O and no database access. Field names are
matched case-insensitively, optional fields fall back to explicit empty
values, and only the identifiers needed for reconciliation are required.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from backend.app.models.color_standard import MATCH_MODELS, MAX_MATCHES_PER_STANDARD
from backend.app.services.sync_errors import MappingFailed


# Remote key prefix for each standard, e.g. closest_pantone_1
_MATCH_PREFIXES = {standard: f"closest_{standard}_" for standard in MATCH_MODELS}


@dataclass
class RemoteManufacturer:
    """Manufacturer as embedded in a remote swatch."""

    id: int
    name: str
    website: str


@dataclass
class RemoteFilamentType:
    """Filament type as embedded in a remote swatch."""

    id: int
    name: str
    hot_end_temp: int
    bed_temp: int
    parent_type: str | None


@dataclass
class RemoteColorMatch:
    """One ranked best-fit entry of a color standard."""

    rank: int  # 1-3
    code: str
    name: str | None
    hex_color: str
    category: str | None


@dataclass
class RemoteSwatch:
    """One remote swatch record, ready for reconciliation."""

    id: int
    manufacturer: RemoteManufacturer
    filament_type: RemoteFilamentType
    color_name: str = ""
    color_parent: str = ""
    alt_color_parent: str | None = None
    hex_color: str = ""
    image_front: str = ""
    image_back: str = ""
    image_other: str | None = None
    card_img: str = ""
    date_added: datetime | None = None
    date_published: datetime | None = None
    human_readable_date: str = ""
    notes: str = ""
    amazon_purchase_link: str | None = None
    mfr_purchase_link: str | None = None
    is_available: bool = False
    published: bool = False
    td: float | None = None
    td_range: list[float] | None = None
    matches: dict[str, list[RemoteColorMatch]] = field(default_factory=dict)
    raw: dict = field(default_factory=dict)

    def scalar_values(self) -> dict[str, Any]:
        """Column values of the Swatch row, excluding id, matches and sync metadata."""
        return {
            "color_name": self.color_name,
            "color_parent": self.color_parent,
            "alt_color_parent": self.alt_color_parent,
            "hex_color": self.hex_color,
            "image_front": self.image_front,
            "image_back": self.image_back,
            "image_other": self.image_other,
            "card_img": self.card_img,
            "date_added": self.date_added,
            "date_published": self.date_published,
            "human_readable_date": self.human_readable_date,
            "notes": self.notes,
            "amazon_purchase_link": self.amazon_purchase_link,
            "mfr_purchase_link": self.mfr_purchase_link,
            "is_available": self.is_available,
            "published": self.published,
            "td": self.td,
            "td_range": self.td_range,
            "manufacturer_id": self.manufacturer.id,
            "filament_type_id": self.filament_type.id,
            "raw_payload": self.raw,
        }


def _lower_keys(data: dict) -> dict:
    return {str(key).lower(): value for key, value in data.items()}


def _str(value, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _optional_str(value) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def parse_datetime(value) -> datetime | None:
    """Parse an ISO-8601 timestamp into a naive UTC datetime."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _td_range(value) -> list[float] | None:
    if not isinstance(value, (list, tuple)):
        return None
    values = [_float(v) for v in value]
    if any(v is None for v in values):
        return None
    return values


def _required_id(data: dict, field_name: str, record_id=None) -> int:
    value = data.get("id")
    if value is None or isinstance(value, bool):
        raise MappingFailed(field_name, record_id)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MappingFailed(field_name, record_id, reason=f"not an integer ({value!r})") from None


def _required_object(data: dict, key: str, record_id: int) -> dict:
    value = data.get(key)
    if not isinstance(value, dict):
        raise MappingFailed(key, record_id)
    return _lower_keys(value)


def _map_manufacturer(data: dict, record_id: int) -> RemoteManufacturer:
    mfr = _required_object(data, "manufacturer", record_id)
    return RemoteManufacturer(
        id=_required_id(mfr, "manufacturer.id", record_id),
        name=_str(mfr.get("name")),
        website=_str(mfr.get("website")),
    )


def _map_filament_type(data: dict, record_id: int) -> RemoteFilamentType:
    ft = _required_object(data, "filament_type", record_id)

    parent = ft.get("parent_type")
    if isinstance(parent, dict):
        parent = _lower_keys(parent).get("name")

    return RemoteFilamentType(
        id=_required_id(ft, "filament_type.id", record_id),
        name=_str(ft.get("name")),
        hot_end_temp=_int(ft.get("hot_end_temp")),
        bed_temp=_int(ft.get("bed_temp")),
        parent_type=_optional_str(parent),
    )


def _map_matches(data: dict) -> dict[str, list[RemoteColorMatch]]:
    matches: dict[str, list[RemoteColorMatch]] = {}
    for standard, prefix in _MATCH_PREFIXES.items():
        entries = []
        for rank in range(1, MAX_MATCHES_PER_STANDARD + 1):
            entry = data.get(f"{prefix}{rank}")
            if not isinstance(entry, dict):
                continue
            entry = _lower_keys(entry)
            entries.append(
                RemoteColorMatch(
                    rank=rank,
                    code=_str(entry.get("code")),
                    name=_optional_str(entry.get("name")),
                    hex_color=_str(entry.get("hex_color")),
                    category=_optional_str(entry.get("category")),
                )
            )
        matches[standard] = entries
    return matches


def map_swatch(raw: Any) -> RemoteSwatch:
    """Map one raw catalog record.

    Raises:
        MappingFailed: if the record is not an object or lacks its own id,
            its manufacturer id or its filament type id.
    """
    if not isinstance(raw, dict):
        raise MappingFailed("record", reason=f"not an object ({type(raw).__name__})")

    data = _lower_keys(raw)
    swatch_id = _required_id(data, "id")

    return RemoteSwatch(
        id=swatch_id,
        manufacturer=_map_manufacturer(data, swatch_id),
        filament_type=_map_filament_type(data, swatch_id),
        color_name=_str(data.get("color_name")),
        color_parent=_str(data.get("color_parent")),
        alt_color_parent=_optional_str(data.get("alt_color_parent")),
        hex_color=_str(data.get("hex_color")),
        image_front=_str(data.get("image_front")),
        image_back=_str(data.get("image_back")),
        image_other=_optional_str(data.get("image_other")),
        card_img=_str(data.get("card_img")),
        date_added=parse_datetime(data.get("date_added")),
        date_published=parse_datetime(data.get("date_published")),
        human_readable_date=_str(data.get("human_readable_date")),
        notes=_str(data.get("notes")),
        amazon_purchase_link=_optional_str(data.get("amazon_purchase_link")),
        mfr_purchase_link=_optional_str(data.get("mfr_purchase_link")),
        is_available=_bool(data.get("is_available")),
        published=_bool(data.get("published")),
        td=_float(data.get("td")),
        td_range=_td_range(data.get("td_range")),
        matches=_map_matches(data),
        raw=raw,
    )
