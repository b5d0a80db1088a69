import math

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.app.core.database import get_db
from backend.app.models.filament_type import FilamentType
from backend.app.models.manufacturer import Manufacturer
from backend.app.models.swatch import Swatch
from backend.app.schemas.swatch import (
    ClosestSwatch,
    ColorCount,
    DatabaseStats,
    FilamentTypeResponse,
    ManufacturerResponse,
    PagedSwatches,
    SwatchDetail,
    SwatchSummary,
)
from backend.app.services.color_match import SwatchSnapshot, find_closest_swatches

router = APIRouter(prefix="/swatches", tags=["swatches"])


def get_swatch_snapshot(request: Request) -> SwatchSnapshot:
    """The color snapshot owned by the running application."""
    return request.app.state.swatch_snapshot


@router.get("/", response_model=PagedSwatches)
async def list_swatches(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    color_parent: str | None = None,
    manufacturer: str | None = None,
    filament_type: str | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """List swatches, newest publication first."""
    query = select(Swatch).join(Swatch.manufacturer).join(Swatch.filament_type)

    if color_parent and color_parent.strip():
        query = query.where(Swatch.color_parent == color_parent)
    if manufacturer and manufacturer.strip():
        query = query.where(Manufacturer.name.ilike(f"%{manufacturer}%"))
    if filament_type and filament_type.strip():
        query = query.where(FilamentType.name.ilike(f"%{filament_type}%"))
    if search and search.strip():
        query = query.where(
            or_(
                Swatch.color_name.ilike(f"%{search}%"),
                Manufacturer.name.ilike(f"%{search}%"),
                Swatch.hex_color.ilike(f"%{search}%"),
            )
        )

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total_count = total_result.scalar() or 0

    result = await db.execute(
        query.options(selectinload(Swatch.manufacturer), selectinload(Swatch.filament_type))
        .order_by(Swatch.date_published.desc(), Swatch.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return PagedSwatches(
        items=[SwatchSummary.model_validate(s) for s in result.scalars().all()],
        total_count=total_count,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total_count / page_size),
    )


@router.get("/colors", response_model=list[str])
async def list_color_parents(db: AsyncSession = Depends(get_db)):
    """Distinct color parents, alphabetically."""
    result = await db.execute(select(Swatch.color_parent).distinct().order_by(Swatch.color_parent))
    return list(result.scalars().all())


@router.get("/manufacturers", response_model=list[ManufacturerResponse])
async def list_manufacturers(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Manufacturer).order_by(Manufacturer.name))
    return list(result.scalars().all())


@router.get("/filament-types", response_model=list[FilamentTypeResponse])
async def list_filament_types(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(FilamentType).order_by(FilamentType.name))
    return list(result.scalars().all())


@router.get("/search-by-color/{hex_color}", response_model=list[SwatchSummary])
async def search_by_color(hex_color: str, db: AsyncSession = Depends(get_db)):
    """Substring match on the hex code, e.g. 'ff00' matches 'ff0000'."""
    needle = hex_color.lower().replace("#", "")
    result = await db.execute(
        select(Swatch)
        .options(selectinload(Swatch.manufacturer), selectinload(Swatch.filament_type))
        .where(func.lower(Swatch.hex_color).contains(needle))
        .order_by(Swatch.id)
        .limit(50)
    )
    return list(result.scalars().all())


@router.get("/closest/{hex_color}", response_model=list[ClosestSwatch])
async def closest_swatches(
    hex_color: str,
    count: int = Query(5, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    snapshot: SwatchSnapshot = Depends(get_swatch_snapshot),
):
    """Swatches nearest to a color by RGB distance."""
    await snapshot.ensure_fresh(db)
    matches = find_closest_swatches(snapshot.entries, hex_color, count)
    return [
        ClosestSwatch(
            id=m.entry.id,
            color_name=m.entry.color_name,
            hex_color=m.entry.hex_color,
            manufacturer=m.entry.manufacturer,
            filament_type=m.entry.filament_type,
            card_img=m.entry.card_img,
            mfr_purchase_link=m.entry.mfr_purchase_link,
            distance=round(m.distance, 3),
        )
        for m in matches
    ]


@router.get("/stats", response_model=DatabaseStats)
async def get_stats(db: AsyncSession = Depends(get_db)):
    """Totals, last sync time and swatches per color parent."""
    total_swatches = (await db.execute(select(func.count(Swatch.id)))).scalar() or 0
    total_manufacturers = (await db.execute(select(func.count(Manufacturer.id)))).scalar() or 0
    total_filament_types = (await db.execute(select(func.count(FilamentType.id)))).scalar() or 0
    last_sync_date = (await db.execute(select(func.max(Swatch.last_synced)))).scalar()

    breakdown = await db.execute(
        select(Swatch.color_parent, func.count(Swatch.id).label("count"))
        .group_by(Swatch.color_parent)
        .order_by(func.count(Swatch.id).desc(), Swatch.color_parent)
    )

    return DatabaseStats(
        total_swatches=total_swatches,
        total_manufacturers=total_manufacturers,
        total_filament_types=total_filament_types,
        last_sync_date=last_sync_date,
        color_breakdown=[ColorCount(color=color, count=count) for color, count in breakdown.all()],
    )


@router.get("/{swatch_id}", response_model=SwatchDetail)
async def get_swatch(swatch_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Swatch)
        .options(
            selectinload(Swatch.manufacturer),
            selectinload(Swatch.filament_type),
            selectinload(Swatch.pantone_matches),
            selectinload(Swatch.pms_matches),
            selectinload(Swatch.ral_matches),
        )
        .where(Swatch.id == swatch_id)
    )
    swatch = result.scalar_one_or_none()
    if not swatch:
        raise HTTPException(404, "Swatch not found")
    return swatch
