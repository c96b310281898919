"""
Pipeline Stages
===============
Every company is in exactly ONE of these stages at any time.
Stages move strictly forward, one step at a time: C0 → C1 → ... → A1
"""

from enum import Enum
from typing import Optional


class UnknownCode(ValueError):
    """A code that is not part of a closed vocabulary"""

    kind = "code"

    def __init__(self, code):
        self.code = code
        super().__init__(f"Unknown {self.kind}: {code!r}")


class UnknownStage(UnknownCode):
    kind = "stage"


class UnknownAction(UnknownCode):
    kind = "action"


class Stage(str, Enum):
    ICE = "C0"              # New company, nobody called yet
    TOUCHED = "C1"          # Contact attempted
    AWARE = "C2"            # Talked to the decision maker
    INTERESTED = "W1"       # Discovery form filled
    DEMO_PLANNED = "W2"     # Demo date agreed
    DEMO_DONE = "W3"        # Demo conducted
    COMMITTED = "H1"        # Invoice / application issued
    CUSTOMER = "H2"         # Paid
    ACTIVATED = "A1"        # First certificate issued (final)
    NULL = "N0"             # Out of the pipeline

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]

    @property
    def order(self) -> int:
        return _STAGE_ORDER[self]

    def next(self) -> Optional["Stage"]:
        """Immediate successor on the pipeline, None for Activated and Null"""
        return _NEXT_STAGE[self]

    @property
    def is_terminal(self) -> bool:
        return self.next() is None

    @classmethod
    def parse(cls, code: str) -> "Stage":
        try:
            return cls(code)
        except ValueError:
            raise UnknownStage(code) from None


class EventType(str, Enum):
    CONTACT_ATTEMPT = "contact_attempt"
    LPR_CONVERSATION = "lpr_conversation"
    DISCOVERY_FILLED = "discovery_filled"
    DEMO_PLANNED = "demo_planned"
    DEMO_CONDUCTED = "demo_conducted"
    INVOICE_ISSUED = "invoice_issued"
    PAYMENT_RECEIVED = "payment_received"
    CERTIFICATE_ISSUED = "certificate_issued"
    APPLICATION_CREATED = "application_created"
    CP_SENT = "cp_sent"

    @property
    def label(self) -> str:
        return _EVENT_LABELS[self]

    @classmethod
    def parse(cls, code: str) -> "EventType":
        try:
            return cls(code)
        except ValueError:
            raise UnknownAction(code) from None


_STAGE_LABELS = {
    Stage.ICE: "Ice",
    Stage.TOUCHED: "Touched",
    Stage.AWARE: "Aware",
    Stage.INTERESTED: "Interested",
    Stage.DEMO_PLANNED: "Demo Planned",
    Stage.DEMO_DONE: "Demo Done",
    Stage.COMMITTED: "Committed",
    Stage.CUSTOMER: "Customer",
    Stage.ACTIVATED: "Activated",
    Stage.NULL: "Null",
}

# The one and only path through the pipeline
PIPELINE = (
    Stage.ICE,
    Stage.TOUCHED,
    Stage.AWARE,
    Stage.INTERESTED,
    Stage.DEMO_PLANNED,
    Stage.DEMO_DONE,
    Stage.COMMITTED,
    Stage.CUSTOMER,
    Stage.ACTIVATED,
)

_STAGE_ORDER = {stage: i for i, stage in enumerate(PIPELINE)}
_STAGE_ORDER[Stage.NULL] = -1

_NEXT_STAGE = {stage: nxt for stage, nxt in zip(PIPELINE, PIPELINE[1:])}
_NEXT_STAGE[Stage.ACTIVATED] = None
_NEXT_STAGE[Stage.NULL] = None

_EVENT_LABELS = {
    EventType.CONTACT_ATTEMPT: "Contact attempt",
    EventType.LPR_CONVERSATION: "Conversation with decision maker",
    EventType.DISCOVERY_FILLED: "Discovery form filled",
    EventType.DEMO_PLANNED: "Demo planned",
    EventType.DEMO_CONDUCTED: "Demo conducted",
    EventType.INVOICE_ISSUED: "Invoice issued",
    EventType.PAYMENT_RECEIVED: "Payment received",
    EventType.CERTIFICATE_ISSUED: "Certificate issued",
    EventType.APPLICATION_CREATED: "Application created",
    EventType.CP_SENT: "Commercial proposal sent",
}
