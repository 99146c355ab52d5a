from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from app.models import SimpleUser
from app.services.auth_service import hash_password
from tests.conftest import auth_header

OWNER = "owner@test.com"
OTHER = "other@test.com"


@pytest.fixture
def crm_users(online_engine):
    with Session(online_engine) as session:
        session.add_all(
            [
                SimpleUser(email=OWNER, password=hash_password("secret1"), name="Owner"),
                SimpleUser(email=OTHER, password=hash_password("secret1"), name="Other"),
            ]
        )
        session.commit()
    return online_engine


def _create(client, email=OWNER, **fields):
    payload = {"nome": "Padaria Central", "empresa": "Padaria Central LTDA", "telefone": "1133334444", **fields}
    response = client.post("/api/crm/leads", json=payload, headers=auth_header(email))
    assert response.status_code == 201
    return response.json()["lead"]


def test_crm_is_unavailable_offline(client, offline_users):
    response = client.get("/api/crm/leads", headers=auth_header("test@test.com"))

    assert response.status_code == 503
    assert response.json()["error"] == "DATABASE_OFFLINE"


def test_crm_requires_login(client, crm_users):
    response = client.get("/api/crm/leads")

    assert response.status_code == 401


def test_create_and_list_leads(client, crm_users):
    lead = _create(client, cnpj="12.345.678/0001-90", fonte="google_maps", rating=4.5, dados_originais={"placeId": "x"})

    assert lead["etapa"] == "novo"
    assert lead["cnpj"] == "12345678000190"
    assert lead["dados_originais"] == {"placeId": "x"}

    body = client.get("/api/crm/leads", headers=auth_header(OWNER)).json()
    assert body["total"] == 1
    assert body["leads"][0]["id"] == lead["id"]


def test_leads_are_scoped_to_their_owner(client, crm_users):
    lead = _create(client)

    assert client.get("/api/crm/leads", headers=auth_header(OTHER)).json()["total"] == 0
    response = client.patch(f"/api/crm/leads/{lead['id']}", json={"etapa": "ganho"}, headers=auth_header(OTHER))
    assert response.status_code == 404
    assert response.json()["message"] == "Lead nao encontrado"


def test_create_rejects_unknown_stage(client, crm_users):
    response = client.post(
        "/api/crm/leads",
        json={"nome": "X", "etapa": "arquivado"},
        headers=auth_header(OWNER),
    )

    assert response.status_code == 400
    assert "Etapa invalida" in response.json()["message"]


def test_update_stage_and_notes(client, crm_users):
    lead = _create(client)

    response = client.patch(
        f"/api/crm/leads/{lead['id']}",
        json={"etapa": "proposta", "notas": "Enviar orcamento"},
        headers=auth_header(OWNER),
    )

    assert response.status_code == 200
    assert response.json()["lead"]["etapa"] == "proposta"
    assert response.json()["lead"]["notas"] == "Enviar orcamento"
    filtered = client.get("/api/crm/leads?etapa=proposta", headers=auth_header(OWNER)).json()
    assert [item["id"] for item in filtered["leads"]] == [lead["id"]]


def test_delete_lead(client, crm_users):
    lead = _create(client)

    response = client.delete(f"/api/crm/leads/{lead['id']}", headers=auth_header(OWNER))

    assert response.status_code == 200
    assert client.get("/api/crm/leads", headers=auth_header(OWNER)).json()["total"] == 0
    assert client.delete(f"/api/crm/leads/{lead['id']}", headers=auth_header(OWNER)).status_code == 404


def test_check_duplicates(client, crm_users):
    _create(client, nome="Loja A", empresa=None, telefone="1199990000", email="a@loja.com")
    _create(client, nome="Loja B", empresa="B LTDA", telefone=None)

    response = client.post(
        "/api/crm/leads/check-duplicates",
        json={
            "leads": [
                {"nome": "Loja A", "telefone": "1199990000", "email": "a@loja.com"},
                {"nome": "Loja B", "empresa": "B LTDA"},
                {"nome": "Loja C"},
            ]
        },
        headers=auth_header(OWNER),
    )

    assert response.status_code == 200
    assert response.json()["existingLeads"] == ["Loja A__1199990000_a@loja.com", "Loja B_B LTDA__"]
    assert response.json()["total"] == 2


def test_kanban_groups_by_stage(client, crm_users):
    first = _create(client, nome="Primeiro")
    _create(client, nome="Segundo")
    client.patch(f"/api/crm/leads/{first['id']}", json={"etapa": "contato"}, headers=auth_header(OWNER))

    body = client.get("/api/crm/kanban", headers=auth_header(OWNER)).json()

    assert body["stages"] == ["novo", "contato", "qualificado", "proposta", "negociacao", "ganho", "perdido"]
    assert set(body["kanban"]) == set(body["stages"])
    assert [lead["nome"] for lead in body["kanban"]["novo"]] == ["Segundo"]
    assert [lead["nome"] for lead in body["kanban"]["contato"]] == ["Primeiro"]
    assert body["kanban"]["ganho"] == []


def test_funnel(client, crm_users):
    for etapa in ("novo", "novo", "ganho", "perdido"):
        _create(client, etapa=etapa)

    body = client.get("/api/crm/funnel", headers=auth_header(OWNER)).json()

    assert body["total"] == 4
    stages = {stage["etapa"]: stage for stage in body["stages"]}
    assert stages["novo"] == {"etapa": "novo", "total": 2, "percentual": 50.0}
    assert stages["proposta"]["total"] == 0
    assert body["conversion_rate"] == 25.0


def test_empty_funnel(client, crm_users):
    body = client.get("/api/crm/funnel", headers=auth_header(OTHER)).json()

    assert body["total"] == 0
    assert body["conversion_rate"] == 0.0
    assert len(body["stages"]) == 7
