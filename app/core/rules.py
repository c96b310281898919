"""
Stage Transition Rules
======================
Pure decisions over (stage, event log):
- restrictions: actions forbidden on a stage (no skipping ahead)
- available actions: what the manager should do next
- exit conditions: may the company leave its current stage?
- instructions: guidance text for the manager

Every table covers all ten stages. No I/O happens here.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.core.company import Company
from app.core.stages import EventType, Stage


# A demo older than this no longer counts for leaving Demo Done
DEMO_FRESHNESS_DAYS = 60


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


# ── Restrictions ──────────────────────────────────────────────────────────────

RESTRICTIONS = {
    Stage.ICE: frozenset(),
    # No application, proposal or demo before talking to the decision maker
    Stage.TOUCHED: frozenset({
        EventType.APPLICATION_CREATED,
        EventType.CP_SENT,
        EventType.DEMO_PLANNED,
        EventType.DEMO_CONDUCTED,
    }),
    # No demo before discovery
    Stage.AWARE: frozenset({
        EventType.DEMO_PLANNED,
        EventType.DEMO_CONDUCTED,
    }),
    # No application or proposal before the demo
    Stage.INTERESTED: frozenset({
        EventType.APPLICATION_CREATED,
        EventType.CP_SENT,
    }),
    Stage.DEMO_PLANNED: frozenset({
        EventType.APPLICATION_CREATED,
        EventType.CP_SENT,
    }),
    Stage.DEMO_DONE: frozenset(),
    Stage.COMMITTED: frozenset(),
    Stage.CUSTOMER: frozenset(),
    Stage.ACTIVATED: frozenset(),
    Stage.NULL: frozenset(),
}


# ── Available actions ─────────────────────────────────────────────────────────

AVAILABLE_ACTIONS = {
    Stage.ICE: (EventType.CONTACT_ATTEMPT,),
    Stage.TOUCHED: (EventType.CONTACT_ATTEMPT, EventType.LPR_CONVERSATION),
    Stage.AWARE: (EventType.DISCOVERY_FILLED,),
    Stage.INTERESTED: (EventType.DEMO_PLANNED,),
    Stage.DEMO_PLANNED: (EventType.DEMO_CONDUCTED,),
    Stage.DEMO_DONE: (
        EventType.APPLICATION_CREATED,
        EventType.CP_SENT,
        EventType.INVOICE_ISSUED,
    ),
    Stage.COMMITTED: (EventType.PAYMENT_RECEIVED,),
    Stage.CUSTOMER: (EventType.CERTIFICATE_ISSUED,),
    Stage.ACTIVATED: (),
    Stage.NULL: (),
}


# ── Instructions ──────────────────────────────────────────────────────────────

INSTRUCTIONS = {
    Stage.ICE: (
        "New company. Get in touch.\n"
        "1. Press \"Call\" to register a contact attempt.\n"
        "2. Goal: reach the decision maker."
    ),
    Stage.TOUCHED: (
        "Contact made, but no conversation with the decision maker yet.\n"
        "1. Keep calling until you talk to the decision maker.\n"
        "2. After the conversation, leave a comment.\n"
        "Not allowed: creating an application, sending a proposal, planning a demo."
    ),
    Stage.AWARE: (
        "Talked to the decision maker. Run discovery.\n"
        "1. Fill in the discovery form (needs, budget, timeline).\n"
        "Not allowed: planning a demo before discovery is filled."
    ),
    Stage.INTERESTED: (
        "Discovery is filled. Schedule a demo.\n"
        "1. Agree on a demo date and time with the client.\n"
        "2. Press \"Plan demo\" and enter the date and time.\n"
        "Not allowed: creating an application, sending a proposal."
    ),
    Stage.DEMO_PLANNED: (
        "Demo is scheduled. Run it.\n"
        "1. Open the demo link at the agreed time.\n"
        "2. Following the link registers the demo as conducted.\n"
        "Not allowed: creating an application, sending a proposal."
    ),
    Stage.DEMO_DONE: (
        "Demo is done. Close the deal.\n"
        "1. Create an application and/or issue an invoice.\n"
        "2. Send the commercial proposal."
    ),
    Stage.COMMITTED: (
        "Invoice issued. Wait for payment.\n"
        "1. Follow up on the payment.\n"
        "2. Register the payment once it arrives."
    ),
    Stage.CUSTOMER: (
        "Payment received. Issue the certificate.\n"
        "1. Prepare and hand over the first certificate."
    ),
    Stage.ACTIVATED: (
        "Client activated. All stages complete.\n"
        "The company is fully onboarded."
    ),
    Stage.NULL: "Company is in Null status.",
}


# ── Exit conditions ───────────────────────────────────────────────────────────

def _requires(event_type: EventType, reason: str) -> Callable:
    def check(company: Company, now: Optional[datetime] = None) -> Decision:
        return ALLOW if company.has_event(event_type) else deny(reason)
    return check


def _exit_demo_done(company: Company, now: Optional[datetime] = None) -> Decision:
    # Staleness is reported first when both parts fail
    if not company.has_recent_event(EventType.DEMO_CONDUCTED, DEMO_FRESHNESS_DAYS, now=now):
        return deny(
            f"Demo was conducted more than {DEMO_FRESHNESS_DAYS} days ago or is missing"
        )
    if not (
        company.has_event(EventType.INVOICE_ISSUED)
        or company.has_event(EventType.APPLICATION_CREATED)
    ):
        return deny("An application and/or an issued invoice is required")
    return ALLOW


def _never(reason: str) -> Callable:
    def check(company: Company, now: Optional[datetime] = None) -> Decision:
        return deny(reason)
    return check


EXIT_CONDITIONS = {
    Stage.ICE: _requires(
        EventType.CONTACT_ATTEMPT, "At least one contact attempt is required"
    ),
    Stage.TOUCHED: _requires(
        EventType.LPR_CONVERSATION, "A conversation with the decision maker is required"
    ),
    Stage.AWARE: _requires(
        EventType.DISCOVERY_FILLED, "The discovery form must be filled"
    ),
    Stage.INTERESTED: _requires(
        EventType.DEMO_PLANNED, "A demo must be planned (date and time)"
    ),
    Stage.DEMO_PLANNED: _requires(
        EventType.DEMO_CONDUCTED, "The demo must be conducted (link followed)"
    ),
    Stage.DEMO_DONE: _exit_demo_done,
    Stage.COMMITTED: _requires(
        EventType.PAYMENT_RECEIVED, "Payment is required"
    ),
    Stage.CUSTOMER: _requires(
        EventType.CERTIFICATE_ISSUED, "A certificate must be issued"
    ),
    Stage.ACTIVATED: _never("Final stage"),
    Stage.NULL: _never("Company is in Null status"),
}


# ── Public API ────────────────────────────────────────────────────────────────

def restrictions_for(stage: Stage) -> frozenset:
    return RESTRICTIONS[stage]


def available_actions_for(stage: Stage) -> tuple:
    return AVAILABLE_ACTIONS[stage]


def instruction_for(stage: Stage) -> str:
    return INSTRUCTIONS[stage]


def can_perform_action(company: Company, action: EventType) -> Decision:
    """Is this action allowed on the company's current stage?"""
    if action in restrictions_for(company.stage):
        return deny(
            f'Action "{action.label}" is not allowed on stage '
            f"{company.stage.value} ({company.stage.label})"
        )
    return ALLOW


def can_advance(company: Company, now: Optional[datetime] = None) -> Decision:
    """Does the company meet the exit condition of its current stage?"""
    return EXIT_CONDITIONS[company.stage](company, now=now)
