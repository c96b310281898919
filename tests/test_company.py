"""Tests for Company event-log queries."""

from app.core.company import utcnow
from app.core.stages import EventType
from tests.factories import NOW, days_ago, make_company, make_event


class TestHasEvent:

    def test_empty_log(self):
        company = make_company()
        assert not company.has_event(EventType.CONTACT_ATTEMPT)

    def test_finds_matching_type_only(self):
        company = make_company(events=[make_event(EventType.CONTACT_ATTEMPT)])
        assert company.has_event(EventType.CONTACT_ATTEMPT)
        assert not company.has_event(EventType.LPR_CONVERSATION)


class TestHasRecentEvent:

    def test_inside_window(self):
        company = make_company(events=[make_event(EventType.DEMO_CONDUCTED, days_ago(59))])
        assert company.has_recent_event(EventType.DEMO_CONDUCTED, 60, now=NOW)

    def test_boundary_is_inclusive(self):
        company = make_company(events=[make_event(EventType.DEMO_CONDUCTED, days_ago(60))])
        assert company.has_recent_event(EventType.DEMO_CONDUCTED, 60, now=NOW)

    def test_outside_window(self):
        company = make_company(events=[make_event(EventType.DEMO_CONDUCTED, days_ago(61))])
        assert not company.has_recent_event(EventType.DEMO_CONDUCTED, 60, now=NOW)

    def test_flips_with_time_alone(self):
        company = make_company(events=[make_event(EventType.DEMO_CONDUCTED, days_ago(30))])
        assert company.has_recent_event(EventType.DEMO_CONDUCTED, 60, now=NOW)
        assert not company.has_recent_event(
            EventType.DEMO_CONDUCTED, 60, now=NOW + (NOW - days_ago(31))
        )

    def test_any_fresh_event_counts(self):
        company = make_company(events=[
            make_event(EventType.DEMO_CONDUCTED, days_ago(90)),
            make_event(EventType.DEMO_CONDUCTED, days_ago(5)),
        ])
        assert company.has_recent_event(EventType.DEMO_CONDUCTED, 60, now=NOW)

    def test_defaults_to_wall_clock(self):
        company = make_company(events=[make_event(EventType.DEMO_CONDUCTED, days_ago(1, now=utcnow()))])
        assert company.has_recent_event(EventType.DEMO_CONDUCTED, 60)


class TestLastEventData:

    def test_none_without_event(self):
        assert make_company().last_event_data(EventType.DEMO_PLANNED) is None

    def test_log_order_decides_last(self):
        company = make_company(events=[
            make_event(EventType.DEMO_PLANNED, NOW, {"date": "2026-04-01"}),
            make_event(EventType.CONTACT_ATTEMPT, NOW),
            make_event(EventType.DEMO_PLANNED, NOW, {"date": "2026-04-08"}),
        ])
        assert company.last_event_data(EventType.DEMO_PLANNED) == {"date": "2026-04-08"}

    def test_empty_payload(self):
        company = make_company(events=[make_event(EventType.CP_SENT)])
        assert company.last_event_data(EventType.CP_SENT) == {}
