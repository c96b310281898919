"""Tests for SqlCompanyStore against in-memory SQLite."""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.company import utcnow
from app.core.stage_service import StageService
from app.core.stages import EventType, Stage
from app.db.init_db import DEMO_COMPANIES, seed_demo_data
from app.db.repository import SqlCompanyStore


@pytest.fixture
def store(session):
    return SqlCompanyStore(session)


class TestCompanies:

    @pytest.mark.asyncio
    async def test_new_company_starts_at_ice(self, store):
        company_id = await store.create_company("Alpha")

        company = await store.load_company(company_id)

        assert company.name == "Alpha"
        assert company.stage == Stage.ICE
        assert company.events == []
        assert company.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_missing_company_is_none(self, store):
        assert await store.load_company(404) is None
        assert await store.load_company(404, for_update=True) is None

    @pytest.mark.asyncio
    async def test_update_stage(self, store):
        company_id = await store.create_company("Alpha")

        await store.update_stage(company_id, Stage.TOUCHED)

        assert (await store.load_company(company_id)).stage == Stage.TOUCHED

    @pytest.mark.asyncio
    async def test_list_companies_most_recent_first(self, store):
        first = await store.create_company("First")
        second = await store.create_company("Second")
        await store.update_stage(first, Stage.TOUCHED)

        companies = await store.list_companies()

        assert [c.id for c in companies] == [first, second]


class TestEvents:

    @pytest.mark.asyncio
    async def test_events_in_chronological_order(self, store):
        company_id = await store.create_company("Alpha")
        now = utcnow()
        await store.append_event(company_id, EventType.LPR_CONVERSATION, {}, created_at=now)
        await store.append_event(
            company_id, EventType.CONTACT_ATTEMPT, {}, created_at=now - timedelta(days=1)
        )

        events = await store.load_events(company_id)

        assert [e.event_type for e in events] == [
            EventType.CONTACT_ATTEMPT,
            EventType.LPR_CONVERSATION,
        ]

    @pytest.mark.asyncio
    async def test_same_timestamp_keeps_insertion_order(self, store):
        company_id = await store.create_company("Alpha")
        now = utcnow()
        first = await store.append_event(company_id, EventType.DEMO_PLANNED, {"n": 1}, created_at=now)
        second = await store.append_event(company_id, EventType.DEMO_PLANNED, {"n": 2}, created_at=now)

        company = await store.load_company(company_id)

        assert [e.id for e in company.events] == [first, second]
        assert company.last_event_data(EventType.DEMO_PLANNED) == {"n": 2}

    @pytest.mark.asyncio
    async def test_offset_timestamp_is_stored_as_utc(self, session_factory):
        moscow = timezone(timedelta(hours=3))
        created_at = datetime(2026, 1, 1, 12, 0, tzinfo=moscow)
        async with session_factory() as session:
            async with session.begin():
                store = SqlCompanyStore(session)
                company_id = await store.create_company("Alpha")
                await store.append_event(
                    company_id, EventType.CONTACT_ATTEMPT, {}, created_at=created_at
                )
                await store.append_event(
                    company_id, EventType.LPR_CONVERSATION, {},
                    created_at=datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc),
                )

        async with session_factory() as session:
            events = await SqlCompanyStore(session).load_events(company_id)

        assert events[0].created_at == datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
        assert events[0].created_at == created_at
        assert [e.event_type for e in events] == [
            EventType.CONTACT_ATTEMPT,
            EventType.LPR_CONVERSATION,
        ]

    @pytest.mark.asyncio
    async def test_event_data_round_trip(self, store):
        company_id = await store.create_company("Alpha")
        await store.append_event(
            company_id, EventType.CONTACT_ATTEMPT, {"method": "phone", "minutes": 4.5}
        )

        (event,) = await store.load_events(company_id)

        assert event.company_id == company_id
        assert event.event_data == {"method": "phone", "minutes": 4.5}
        assert event.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_backdated_event_counts_against_demo_window(self, store):
        company_id = await store.create_company("Alpha")
        await store.update_stage(company_id, Stage.DEMO_DONE)
        await store.append_event(
            company_id, EventType.DEMO_CONDUCTED, {}, created_at=utcnow() - timedelta(days=90)
        )
        await store.append_event(company_id, EventType.INVOICE_ISSUED, {})

        result = await StageService(store).try_advance(company_id)

        assert not result.success
        assert (await store.load_company(company_id)).stage == Stage.DEMO_DONE


class TestTransitions:

    @pytest.mark.asyncio
    async def test_perform_action_writes_transition(self, store):
        company_id = await store.create_company("Alpha")

        result = await StageService(store).perform_action(company_id, EventType.CONTACT_ATTEMPT, {})

        assert result.new_stage == Stage.TOUCHED
        transitions = await store.load_transitions(company_id)
        assert [(t.from_stage, t.to_stage) for t in transitions] == [(Stage.ICE, Stage.TOUCHED)]
        assert (await store.load_company(company_id)).stage == Stage.TOUCHED

    @pytest.mark.asyncio
    async def test_changes_persist_after_commit(self, session_factory):
        async with session_factory() as session:
            async with session.begin():
                store = SqlCompanyStore(session)
                company_id = await store.create_company("Alpha")
                await StageService(store).perform_action(company_id, EventType.CONTACT_ATTEMPT)

        async with session_factory() as session:
            company = await SqlCompanyStore(session).load_company(company_id)

        assert company.stage == Stage.TOUCHED
        assert len(company.events) == 1


class TestSeed:

    @pytest.mark.asyncio
    async def test_seed_demo_companies(self, session, store):
        added = await seed_demo_data(session)

        companies = {c.name: c for c in await store.list_companies()}
        assert added == len(DEMO_COMPANIES) == len(companies)
        for name, stage, events in DEMO_COMPANIES:
            company = await store.load_company(companies[name].id)
            assert company.stage == stage
            assert len(company.events) == len(events)
            transitions = await store.load_transitions(company.id)
            assert len(transitions) == stage.order
            assert all(t.to_stage == t.from_stage.next() for t in transitions)

    @pytest.mark.asyncio
    async def test_seed_skips_populated_database(self, session, store):
        await store.create_company("Existing")
        assert await seed_demo_data(session) == 0
