"""
CRM Stage Pipeline - API
========================
FastAPI application: company cards, actions, stage advances
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.company import Company, Event
from app.core.stage_service import CompanyNotFound, StageService
from app.core.stages import EventType, PIPELINE, Stage, UnknownCode
from app.db.database import get_session, init_db
from app.db.repository import SqlCompanyStore


settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        await init_db()
    yield


app = FastAPI(
    title="CRM Stage Pipeline",
    description="Event-driven sales pipeline with stage transition rules",
    version="1.0.0",
    lifespan=lifespan,
)


# ── Request/Response Models ───────────────────────────────────────────────────

class CompanyCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class ActionRequest(BaseModel):
    action: str
    data: dict[str, Union[str, int, float]] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def clean_data(cls, value):
        if not isinstance(value, dict):
            return value
        cleaned = {}
        for key, item in value.items():
            if isinstance(item, bool):
                raise ValueError(f"{key}: booleans are not accepted, use a string or a number")
            cleaned[key] = item.strip() if isinstance(item, str) else item
        return cleaned


class ActionResponse(BaseModel):
    success: bool
    message: str
    new_stage: Optional[str] = None


# ── Dependencies & errors ─────────────────────────────────────────────────────

def get_store(session: AsyncSession = Depends(get_session)) -> SqlCompanyStore:
    return SqlCompanyStore(session)


def get_stage_service(store: SqlCompanyStore = Depends(get_store)) -> StageService:
    return StageService(store)


@app.exception_handler(CompanyNotFound)
async def company_not_found_handler(request: Request, exc: CompanyNotFound):
    return JSONResponse(status_code=404, content={"detail": "Company not found"})


@app.exception_handler(UnknownCode)
async def unknown_code_handler(request: Request, exc: UnknownCode):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def _stage(stage: Optional[Stage]) -> Optional[dict]:
    if stage is None:
        return None
    return {"code": stage.value, "label": stage.label, "order": stage.order}


def _action(event_type: EventType) -> dict:
    return {"code": event_type.value, "label": event_type.label}


def _event(event: Event) -> dict:
    return {
        "id": event.id,
        "event_type": event.event_type.value,
        "label": event.event_type.label,
        "event_data": event.event_data,
        "created_at": event.created_at.isoformat(),
    }


def _company(company: Company) -> dict:
    return {
        "id": company.id,
        "name": company.name,
        "stage": _stage(company.stage),
        "created_at": company.created_at.isoformat(),
        "updated_at": company.updated_at.isoformat(),
    }


# ── Endpoints ─────────────────────────────────────────────────────────────────

@app.get("/")
async def root():
    return {
        "service": "CRM Stage Pipeline",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.get("/stages")
async def list_stages():
    """The pipeline vocabulary: stages in order, then Null, and all action types"""
    return {
        "stages": [
            {**_stage(stage), "next": stage.next().value if stage.next() else None}
            for stage in (*PIPELINE, Stage.NULL)
        ],
        "actions": [_action(event_type) for event_type in EventType],
    }


@app.get("/companies")
async def list_companies(store: SqlCompanyStore = Depends(get_store)):
    """All companies, most recently updated first"""
    companies = await store.list_companies()
    return {
        "count": len(companies),
        "companies": [_company(company) for company in companies],
    }


@app.post("/companies", status_code=201)
async def create_company(
    request: CompanyCreateRequest,
    service: StageService = Depends(get_stage_service),
):
    """New companies always start at C0 (Ice)"""
    company_id = await service.create_company(request.name)
    return {"id": company_id, "stage": Stage.ICE.value}


@app.get("/companies/{company_id}")
async def get_company_card(company_id: int, service: StageService = Depends(get_stage_service)):
    """Company card: stage, what to do next, what is forbidden, history"""
    card = await service.get_company_card(company_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Company not found")

    return {
        "company": _company(card.company),
        "available_actions": [_action(a) for a in card.available_actions],
        "restrictions": sorted(r.value for r in card.restrictions),
        "instruction": card.instruction,
        "can_advance": {
            "allowed": card.can_advance.allowed,
            "reason": card.can_advance.reason,
        },
        "next_stage": _stage(card.next_stage),
        "events": [_event(e) for e in card.events],
    }


@app.get("/companies/{company_id}/history")
async def get_company_history(company_id: int, store: SqlCompanyStore = Depends(get_store)):
    """Full audit trail: every action and every stage move"""
    company = await store.load_company(company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")

    transitions = await store.load_transitions(company_id)
    return {
        "company_id": company_id,
        "current_stage": company.stage.value,
        "events": [_event(e) for e in company.events],
        "transitions": [
            {
                "from_stage": t.from_stage.value,
                "to_stage": t.to_stage.value,
                "created_at": t.created_at.isoformat(),
            }
            for t in transitions
        ],
    }


@app.post("/companies/{company_id}/actions", response_model=ActionResponse)
async def perform_action(
    company_id: int,
    request: ActionRequest,
    service: StageService = Depends(get_stage_service),
):
    """Record an action; the company advances automatically when it qualifies"""
    action = EventType.parse(request.action.strip())
    result = await service.perform_action(company_id, action, request.data)
    return result.to_dict()


@app.post("/companies/{company_id}/advance", response_model=ActionResponse)
async def advance(company_id: int, service: StageService = Depends(get_stage_service)):
    """Manual move to the next stage (never more than one)"""
    result = await service.try_advance(company_id)
    return result.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
