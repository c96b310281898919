"""
Company Store
=============
What the stage service needs from persistence.
The store serializes writes per company; the service never locks anything itself.
"""

from datetime import datetime
from typing import Optional, Protocol

from app.core.company import Company, Event, StageTransition
from app.core.stages import EventType, Stage


class CompanyStore(Protocol):

    async def load_company(self, company_id: int, for_update: bool = False) -> Optional[Company]:
        """Company with its event log (ascending), or None if it does not exist"""
        ...

    async def load_events(self, company_id: int) -> list[Event]:
        ...

    async def append_event(
        self,
        company_id: int,
        event_type: EventType,
        data: dict,
        created_at: Optional[datetime] = None,
    ) -> int:
        ...

    async def append_transition(self, company_id: int, from_stage: Stage, to_stage: Stage) -> None:
        ...

    async def update_stage(self, company_id: int, new_stage: Stage) -> None:
        ...

    async def create_company(self, name: str) -> int:
        ...

    async def list_companies(self) -> list[Company]:
        ...

    async def load_transitions(self, company_id: int) -> list[StageTransition]:
        ...
