"""
SQL Company Store
=================
CompanyStore on top of an AsyncSession.
Only flushes; whoever opened the session owns the transaction.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.company import Company, Event, StageTransition, utcnow
from app.core.stages import EventType, Stage
from app.db.models import (
    Company as CompanyModel,
    CompanyEvent as EventModel,
    StageTransitionRecord as TransitionModel,
)


def _utc(value: datetime) -> datetime:
    # SQLite drops the offset on write, so store everything as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything we write is UTC
    return _utc(value) if value is not None else None


def _to_event(row: EventModel) -> Event:
    return Event(
        id=row.id,
        company_id=row.company_id,
        event_type=EventType.parse(row.event_type),
        event_data=dict(row.event_data or {}),
        created_at=_aware(row.created_at),
    )


def _to_company(row: CompanyModel, events: Optional[list] = None) -> Company:
    return Company(
        id=row.id,
        name=row.name,
        stage=Stage.parse(row.stage),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        events=events or [],
    )


class SqlCompanyStore:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_company(self, company_id: int, for_update: bool = False) -> Optional[Company]:
        query = (
            select(CompanyModel)
            .where(CompanyModel.id == company_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            # Row lock: one logical operation per company at a time
            query = query.with_for_update()

        result = await self.session.execute(query)
        row = result.scalar_one_or_none()
        if row is None:
            return None

        return _to_company(row, await self.load_events(company_id))

    async def load_events(self, company_id: int) -> list[Event]:
        result = await self.session.execute(
            select(EventModel)
            .where(EventModel.company_id == company_id)
            .order_by(EventModel.created_at, EventModel.id)
        )
        return [_to_event(row) for row in result.scalars().all()]

    async def append_event(
        self,
        company_id: int,
        event_type: EventType,
        data: dict,
        created_at: Optional[datetime] = None,
    ) -> int:
        row = EventModel(
            company_id=company_id,
            event_type=event_type.value,
            event_data=dict(data or {}),
            created_at=_utc(created_at or utcnow()),
        )
        self.session.add(row)
        await self.session.flush()
        return row.id

    async def append_transition(self, company_id: int, from_stage: Stage, to_stage: Stage) -> None:
        self.session.add(TransitionModel(
            company_id=company_id,
            from_stage=from_stage.value,
            to_stage=to_stage.value,
            created_at=utcnow(),
        ))
        await self.session.flush()

    async def update_stage(self, company_id: int, new_stage: Stage) -> None:
        now = utcnow()
        await self.session.execute(
            update(CompanyModel)
            .where(CompanyModel.id == company_id)
            .values(stage=new_stage.value, stage_entered_at=now, updated_at=now)
        )

    async def create_company(self, name: str) -> int:
        now = utcnow()
        row = CompanyModel(
            name=name,
            stage=Stage.ICE.value,
            stage_entered_at=now,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        await self.session.flush()
        return row.id

    async def list_companies(self) -> list[Company]:
        result = await self.session.execute(
            select(CompanyModel).order_by(CompanyModel.updated_at.desc(), CompanyModel.id.desc())
        )
        return [_to_company(row) for row in result.scalars().all()]

    async def load_transitions(self, company_id: int) -> list[StageTransition]:
        result = await self.session.execute(
            select(TransitionModel)
            .where(TransitionModel.company_id == company_id)
            .order_by(TransitionModel.created_at, TransitionModel.id)
        )
        return [
            StageTransition(
                company_id=row.company_id,
                from_stage=Stage.parse(row.from_stage),
                to_stage=Stage.parse(row.to_stage),
                created_at=_aware(row.created_at),
            )
            for row in result.scalars().all()
        ]
