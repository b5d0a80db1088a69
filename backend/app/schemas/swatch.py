from datetime import datetime

from pydantic import BaseModel


class ManufacturerResponse(BaseModel):
    id: int
    name: str
    website: str

    class Config:
        from_attributes = True


class FilamentTypeResponse(BaseModel):
    id: int
    name: str
    hot_end_temp: int
    bed_temp: int
    parent_type: str | None = None

    class Config:
        from_attributes = True


class ColorStandardMatchResponse(BaseModel):
    rank: int
    code: str
    name: str | None = None
    hex_color: str
    category: str | None = None

    class Config:
        from_attributes = True


class SwatchSummary(BaseModel):
    id: int
    color_name: str
    color_parent: str
    alt_color_parent: str | None = None
    hex_color: str
    card_img: str
    image_front: str
    date_published: datetime | None = None
    is_available: bool
    td: float | None = None
    manufacturer: ManufacturerResponse
    filament_type: FilamentTypeResponse
    last_synced: datetime

    class Config:
        from_attributes = True


class SwatchDetail(SwatchSummary):
    image_back: str
    image_other: str | None = None
    date_added: datetime | None = None
    human_readable_date: str
    notes: str
    amazon_purchase_link: str | None = None
    mfr_purchase_link: str | None = None
    published: bool
    td_range: list[float] | None = None
    pantone_matches: list[ColorStandardMatchResponse] = []
    pms_matches: list[ColorStandardMatchResponse] = []
    ral_matches: list[ColorStandardMatchResponse] = []


class PagedSwatches(BaseModel):
    items: list[SwatchSummary]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class ColorCount(BaseModel):
    color: str
    count: int


class DatabaseStats(BaseModel):
    total_swatches: int
    total_manufacturers: int
    total_filament_types: int
    last_sync_date: datetime | None = None
    color_breakdown: list[ColorCount]


class ClosestSwatch(BaseModel):
    """A nearest-color result with its RGB distance to the query."""

    id: int
    color_name: str
    hex_color: str
    manufacturer: str
    filament_type: str
    card_img: str
    mfr_purchase_link: str | None = None
    distance: float
