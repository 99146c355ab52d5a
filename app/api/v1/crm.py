from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models import LEAD_STAGES
from app.schemas.crm import DuplicateCheckRequest, FunnelResponse, LeadCreate, LeadRead, LeadUpdate
from app.services import lead_service
from app.services.user_store import UserRecord

router = APIRouter(prefix="/crm", tags=["crm"])


@router.post("/leads", status_code=status.HTTP_201_CREATED, summary="Criar lead")
def create_lead(
    body: LeadCreate,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
) -> dict[str, Any]:
    lead = lead_service.create_lead(db, user.email, body)
    return {"success": True, "lead": LeadRead.model_validate(lead)}


@router.get("/leads", summary="Listar leads")
def list_leads(
    etapa: str | None = Query(None, description="Filtrar por etapa do funil"),
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
) -> dict[str, Any]:
    leads = lead_service.list_leads(db, user.email, etapa)
    return {"success": True, "leads": [LeadRead.model_validate(lead) for lead in leads], "total": len(leads)}


@router.post("/leads/check-duplicates", summary="Verificar leads ja salvos")
def check_duplicates(
    body: DuplicateCheckRequest,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
) -> dict[str, Any]:
    existing = lead_service.find_existing_keys(db, user.email, body.leads)
    return {"success": True, "existingLeads": existing, "total": len(existing)}


@router.patch("/leads/{lead_id}", summary="Atualizar lead")
def update_lead(
    lead_id: int,
    body: LeadUpdate,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
) -> dict[str, Any]:
    lead = lead_service.update_lead(db, user.email, lead_id, body)
    return {"success": True, "lead": LeadRead.model_validate(lead)}


@router.delete("/leads/{lead_id}", summary="Remover lead")
def delete_lead(
    lead_id: int,
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
) -> dict[str, Any]:
    lead_service.delete_lead(db, user.email, lead_id)
    return {"success": True, "message": "Lead removido"}


@router.get("/kanban", summary="Quadro kanban")
def kanban(
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
) -> dict[str, Any]:
    board = lead_service.kanban(db, user.email)
    return {
        "success": True,
        "stages": list(LEAD_STAGES),
        "kanban": {stage: [LeadRead.model_validate(lead) for lead in leads] for stage, leads in board.items()},
    }


@router.get("/funnel", response_model=FunnelResponse, summary="Funil de vendas")
def funnel(
    db: Session = Depends(get_db),
    user: UserRecord = Depends(get_current_user),
) -> FunnelResponse:
    return lead_service.funnel(db, user.email)
