from __future__ import annotations

from collections import Counter

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.models import LEAD_STAGES, Lead
from app.schemas.crm import FunnelResponse, FunnelStage, LeadCreate, LeadIdentity, LeadUpdate

logger = get_logger(__name__)


def lead_key(nome: str | None, empresa: str | None, telefone: str | None, email: str | None) -> str:
    return f"{nome or ''}_{empresa or ''}_{telefone or ''}_{email or ''}"


def create_lead(db: Session, user_email: str, payload: LeadCreate) -> Lead:
    lead = Lead(user_email=user_email, **payload.model_dump())
    db.add(lead)
    db.commit()
    db.refresh(lead)
    logger.info("crm.lead_created", lead_id=lead.id, fonte=lead.fonte)
    return lead


def list_leads(db: Session, user_email: str, etapa: str | None = None) -> list[Lead]:
    statement = select(Lead).where(Lead.user_email == user_email)
    if etapa:
        statement = statement.where(Lead.etapa == etapa)
    statement = statement.order_by(Lead.created_at.desc(), Lead.id.desc())
    return list(db.scalars(statement))


def _get_owned(db: Session, user_email: str, lead_id: int) -> Lead:
    lead = db.get(Lead, lead_id)
    if lead is None or lead.user_email != user_email:
        raise NotFoundError("Lead nao encontrado")
    return lead


def update_lead(db: Session, user_email: str, lead_id: int, payload: LeadUpdate) -> Lead:
    lead = _get_owned(db, user_email, lead_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in changes.items():
        setattr(lead, key, value)
    db.commit()
    db.refresh(lead)
    logger.info("crm.lead_updated", lead_id=lead.id, fields=sorted(changes))
    return lead


def delete_lead(db: Session, user_email: str, lead_id: int) -> None:
    lead = _get_owned(db, user_email, lead_id)
    db.delete(lead)
    db.commit()
    logger.info("crm.lead_deleted", lead_id=lead_id)


def find_existing_keys(db: Session, user_email: str, leads: list[LeadIdentity]) -> list[str]:
    if not leads:
        return []
    wanted = {lead_key(lead.nome, lead.empresa, lead.telefone, lead.email) for lead in leads}
    names = {lead.nome for lead in leads if lead.nome}

    statement = select(Lead.nome, Lead.empresa, Lead.telefone, Lead.email).where(Lead.user_email == user_email)
    if names:
        statement = statement.where(Lead.nome.in_(names))
    existing = {lead_key(*row) for row in db.execute(statement)}
    return sorted(wanted & existing)


def kanban(db: Session, user_email: str) -> dict[str, list[Lead]]:
    board: dict[str, list[Lead]] = {stage: [] for stage in LEAD_STAGES}
    for lead in list_leads(db, user_email):
        board.setdefault(lead.etapa, []).append(lead)
    return board


def funnel(db: Session, user_email: str) -> FunnelResponse:
    rows = db.execute(
        select(Lead.etapa, func.count(Lead.id)).where(Lead.user_email == user_email).group_by(Lead.etapa)
    ).all()
    counts: Counter[str] = Counter({stage: int(total) for stage, total in rows})
    total = sum(counts.values())

    def percent(value: int) -> float:
        return round(value * 100 / total, 2) if total else 0.0

    return FunnelResponse(
        total=total,
        stages=[FunnelStage(etapa=stage, total=counts[stage], percentual=percent(counts[stage])) for stage in LEAD_STAGES],
        conversion_rate=percent(counts["ganho"]),
    )
