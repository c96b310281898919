"""
Initialize database tables and demo companies
Run this once: python -m app.db.init_db
"""

import asyncio
import logging

from sqlalchemy import func, select

from app.core.stages import EventType, Stage
from app.db.database import async_session_factory, init_db
from app.db.models import Company as CompanyModel
from app.db.repository import SqlCompanyStore


logger = logging.getLogger(__name__)


# name, stage reached, events that got it there
DEMO_COMPANIES = [
    ("Alpha Technologies LLC", Stage.ICE, []),
    ("Beta Consulting", Stage.TOUCHED, [
        (EventType.CONTACT_ATTEMPT, {"method": "phone", "comment": "No answer"}),
    ]),
    ("Ivanov Sole Trader", Stage.AWARE, [
        (EventType.CONTACT_ATTEMPT, {"method": "phone", "comment": "Dialed the number"}),
        (EventType.LPR_CONVERSATION, {"comment": "Spoke to the director, interested"}),
    ]),
]


async def seed_demo_data(session) -> int:
    """Insert demo companies into an empty database. Returns how many were added."""
    existing = await session.scalar(select(func.count()).select_from(CompanyModel))
    if existing:
        logger.info("Database already has %s companies, skipping demo data", existing)
        return 0

    store = SqlCompanyStore(session)
    for name, target, events in DEMO_COMPANIES:
        company_id = await store.create_company(name)
        for event_type, data in events:
            await store.append_event(company_id, event_type, data)

        stage = Stage.ICE
        while stage != target:
            next_stage = stage.next()
            await store.append_transition(company_id, stage, next_stage)
            stage = next_stage
        if target != Stage.ICE:
            await store.update_stage(company_id, target)

    return len(DEMO_COMPANIES)


async def main():
    await init_db()
    async with async_session_factory() as session:
        async with session.begin():
            added = await seed_demo_data(session)
    logger.info("Demo data added: %s companies", added)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
