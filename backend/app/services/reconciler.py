"""Reconciles mapped catalog records against the local store.

Reconciliation is two-phase. ``Reconciler.stage`` decides what to write for a
record and returns it as data, using a ``PassView`` that already reflects
everything staged earlier in the same pass. ``Reconciler.apply`` then writes
the staged changes to the session in order, so a manufacturer or filament
type is always flushed before the swatch that references it.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import Base
from backend.app.models.color_standard import MATCH_MODELS, MAX_MATCHES_PER_STANDARD
from backend.app.models.filament_type import FilamentType
from backend.app.models.manufacturer import Manufacturer
from backend.app.models.swatch import Swatch
from backend.app.services.swatch_mapper import RemoteColorMatch, RemoteSwatch
from backend.app.services.sync_errors import ReconciliationFailed

logger = logging.getLogger(__name__)

# Smallest step used to keep last_synced strictly increasing
_WATERMARK_STEP = timedelta(microseconds=1)


class ChangeAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"


@dataclass
class StagedChange:
    """A single row write decided during staging."""

    action: ChangeAction
    model: type[Base]
    entity_id: int
    values: dict[str, Any]
    # Swatch only: standard -> replacement match rows
    matches: dict[str, list[dict[str, Any]]] | None = None


@dataclass
class StoreMutation:
    """All writes for one record, parents first."""

    swatch_id: int
    changes: list[StagedChange] = field(default_factory=list)

    @property
    def created(self) -> list[StagedChange]:
        return [c for c in self.changes if c.action is ChangeAction.CREATE]


@dataclass
class PassView:
    """What the current pass knows to exist: persisted rows plus staged creates."""

    manufacturer_ids: set[int] = field(default_factory=set)
    filament_type_ids: set[int] = field(default_factory=set)
    swatch_watermarks: dict[int, datetime] = field(default_factory=dict)

    @classmethod
    async def load(cls, session: AsyncSession) -> "PassView":
        """Load the identifiers and watermarks of everything already persisted."""
        manufacturers = await session.execute(select(Manufacturer.id))
        filament_types = await session.execute(select(FilamentType.id))
        swatches = await session.execute(select(Swatch.id, Swatch.last_synced))
        return cls(
            manufacturer_ids=set(manufacturers.scalars().all()),
            filament_type_ids=set(filament_types.scalars().all()),
            swatch_watermarks={row.id: row.last_synced for row in swatches},
        )


def _match_rows(matches: list[RemoteColorMatch]) -> list[dict[str, Any]]:
    rows = [
        {
            "rank": m.rank,
            "code": m.code,
            "name": m.name,
            "hex_color": m.hex_color,
            "category": m.category,
        }
        for m in matches
    ]
    return rows[:MAX_MATCHES_PER_STANDARD]


def next_watermark(synced_at: datetime, previous: datetime | None) -> datetime:
    """Return a last_synced value strictly greater than ``previous``."""
    if previous is None or synced_at > previous:
        return synced_at
    return previous + _WATERMARK_STEP


class Reconciler:
    """Stages and applies the writes for mapped catalog records."""

    def stage(self, record: RemoteSwatch, view: PassView, synced_at: datetime) -> StoreMutation:
        """Decide the writes for ``record`` and record them in ``view``.

        Parents are overwritten field by field on every sighting, so the last
        record of a pass that mentions a manufacturer or filament type wins.
        """
        mutation = StoreMutation(swatch_id=record.id)

        mfr = record.manufacturer
        mutation.changes.append(
            StagedChange(
                action=ChangeAction.UPDATE if mfr.id in view.manufacturer_ids else ChangeAction.CREATE,
                model=Manufacturer,
                entity_id=mfr.id,
                values={"name": mfr.name, "website": mfr.website},
            )
        )
        view.manufacturer_ids.add(mfr.id)

        ft = record.filament_type
        mutation.changes.append(
            StagedChange(
                action=ChangeAction.UPDATE if ft.id in view.filament_type_ids else ChangeAction.CREATE,
                model=FilamentType,
                entity_id=ft.id,
                values={
                    "name": ft.name,
                    "hot_end_temp": ft.hot_end_temp,
                    "bed_temp": ft.bed_temp,
                    "parent_type": ft.parent_type,
                },
            )
        )
        view.filament_type_ids.add(ft.id)

        exists = record.id in view.swatch_watermarks
        watermark = next_watermark(synced_at, view.swatch_watermarks.get(record.id))
        values = record.scalar_values()
        values["last_synced"] = watermark

        mutation.changes.append(
            StagedChange(
                action=ChangeAction.UPDATE if exists else ChangeAction.CREATE,
                model=Swatch,
                entity_id=record.id,
                values=values,
                matches={standard: _match_rows(record.matches.get(standard, [])) for standard in MATCH_MODELS},
            )
        )
        view.swatch_watermarks[record.id] = watermark
        logger.debug("Staged %s of swatch %d", mutation.changes[-1].action.value, record.id)

        return mutation

    async def apply(self, session: AsyncSession, mutation: StoreMutation):
        """Write a staged mutation, flushing after every change.

        Raises:
            ReconciliationFailed: if a row cannot be written or an entity
                staged for update no longer exists.
        """
        try:
            for change in mutation.changes:
                if change.action is ChangeAction.CREATE:
                    self._create(session, change)
                else:
                    await self._update(session, change, mutation.swatch_id)
                await session.flush()
        except ReconciliationFailed:
            raise
        except SQLAlchemyError as e:
            raise ReconciliationFailed(mutation.swatch_id, f"{type(e).__name__}: {e}") from e

    def _create(self, session: AsyncSession, change: StagedChange):
        entity = change.model(id=change.entity_id, **change.values)
        if change.matches is not None:
            for standard, model in MATCH_MODELS.items():
                setattr(entity, f"{standard}_matches", [model(**row) for row in change.matches[standard]])
        session.add(entity)

    async def _update(self, session: AsyncSession, change: StagedChange, swatch_id: int):
        entity = await session.get(change.model, change.entity_id)
        if entity is None:
            raise ReconciliationFailed(
                swatch_id, f"{change.model.__name__} {change.entity_id} disappeared during the pass"
            )

        for name, value in change.values.items():
            setattr(entity, name, value)

        if change.matches is not None:
            # Sub-matches are never diffed: drop them all and recreate
            for standard, model in MATCH_MODELS.items():
                await session.execute(
                    delete(model).where(model.swatch_id == change.entity_id).execution_options(synchronize_session=False)
                )
                session.add_all(model(swatch_id=change.entity_id, **row) for row in change.matches[standard])
