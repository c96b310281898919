"""
Stage Service
=============
Record event → re-evaluate → maybe advance, as one logical operation.

Business rules live in app.core.rules; this module only sequences store
reads/writes around them. Run each call inside one transaction per company.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Union

from app.core import rules
from app.core.company import Company, utcnow
from app.core.rules import Decision
from app.core.stages import EventType, Stage
from app.core.store import CompanyStore


logger = logging.getLogger(__name__)


class CompanyNotFound(LookupError):
    def __init__(self, company_id: int):
        self.company_id = company_id
        super().__init__(f"Company {company_id} not found")


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str
    new_stage: Optional[Stage] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "new_stage": self.new_stage.value if self.new_stage else None,
        }


@dataclass(frozen=True)
class CompanyCard:
    """Everything a company page needs, in one read"""
    company: Company
    available_actions: tuple
    restrictions: frozenset
    instruction: str
    can_advance: Decision
    next_stage: Optional[Stage]
    events: list = field(default_factory=list)


class StageService:

    def __init__(self, store: CompanyStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def _load(self, company_id: int, for_update: bool = True) -> Company:
        company = await self.store.load_company(company_id, for_update=for_update)
        if company is None:
            raise CompanyNotFound(company_id)
        return company

    async def perform_action(
        self,
        company_id: int,
        action: Union[EventType, str],
        data: Optional[dict] = None,
    ) -> ActionResult:
        """
        Record an action for a company, then advance one stage if the
        exit condition of the current stage now holds.

        A refused action records nothing. An accepted action is a success
        whether or not the company advanced.
        """
        if not isinstance(action, EventType):
            action = EventType.parse(action)
        data = data or {}

        company = await self._load(company_id)

        # 1. Stage restrictions
        check = rules.can_perform_action(company, action)
        if not check.allowed:
            logger.info("Company %s: %s refused on %s: %s",
                        company_id, action.value, company.stage.value, check.reason)
            return ActionResult(False, check.reason)

        # 2. Record the fact
        event_id = await self.store.append_event(company_id, action, data)
        logger.info("Company %s: recorded %s (event %s)", company_id, action.value, event_id)

        # 3. Re-read the log so the new event is visible
        company = dataclasses.replace(company, events=await self.store.load_events(company_id))

        # 4. Auto-advance
        next_stage = company.stage.next()
        if next_stage is not None and rules.can_advance(company, now=self.clock()).allowed:
            await self._advance(company, next_stage)
            return ActionResult(
                True,
                f"Action performed. Company moved to stage "
                f"{next_stage.value} ({next_stage.label})",
                next_stage,
            )

        return ActionResult(True, "Action performed", company.stage)

    async def try_advance(self, company_id: int) -> ActionResult:
        """
        Move the company to the next stage by hand.

        Only ever targets stage.next(), and only if the exit condition of the
        current stage holds.
        """
        company = await self._load(company_id)

        if company.stage.is_terminal:
            return ActionResult(False, "Company is already at a terminal stage", company.stage)
        next_stage = company.stage.next()

        check = rules.can_advance(company, now=self.clock())
        if not check.allowed:
            logger.info("Company %s: advance from %s blocked: %s",
                        company_id, company.stage.value, check.reason)
            return ActionResult(False, check.reason, company.stage)

        await self._advance(company, next_stage)
        return ActionResult(
            True,
            f"Transition done: {company.stage.label} → {next_stage.label}",
            next_stage,
        )

    async def _advance(self, company: Company, next_stage: Stage) -> None:
        await self.store.append_transition(company.id, company.stage, next_stage)
        await self.store.update_stage(company.id, next_stage)
        logger.info("Company %s: %s → %s", company.id, company.stage.value, next_stage.value)

    async def get_company_card(self, company_id: int) -> Optional[CompanyCard]:
        company = await self.store.load_company(company_id)
        if company is None:
            return None

        stage = company.stage
        return CompanyCard(
            company=company,
            available_actions=rules.available_actions_for(stage),
            restrictions=rules.restrictions_for(stage),
            instruction=rules.instruction_for(stage),
            can_advance=rules.can_advance(company, now=self.clock()),
            next_stage=stage.next(),
            events=list(company.events),
        )

    async def create_company(self, name: str) -> int:
        company_id = await self.store.create_company(name)
        logger.info("Company %s created at %s", company_id, Stage.ICE.value)
        return company_id
