from __future__ import annotations

import os

os.environ.update(
    {
        "ENVIRONMENT": "test",
        "DATABASE_URL": "",
        "REDIS_URL": "",
        "RATE_LIMIT_ENABLED": "false",
        "MONITOR_ENABLED": "false",
        "AUTO_CREATE_TABLES": "false",
        "SECRET_KEY": "test-secret-key",
        "FRONTEND_DIST_PATH": "/nonexistent/dist",
        "APIFY_API_KEY": "",
        "STRIPE_SECRET_KEY": "",
        "STRIPE_WEBHOOK_SECRET": "",
        "RESEND_API_KEY": "",
        "SENDGRID_API_KEY": "",
        "SMTP_HOST": "",
        "ADMIN_EMAIL": "",
    }
)

from collections.abc import Iterator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Engine, create_engine, text  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_email_service, get_user_store  # noqa: E402
from app.core.cache import set_cache  # noqa: E402
from app.core.state import SystemState  # noqa: E402
from app.database import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.services.auth_service import create_access_token, hash_password  # noqa: E402
from app.services.email_service import EmailMessage, EmailResult, EmailService  # noqa: E402
from app.services.user_store import OfflineUserStore, reset_offline_user_store  # noqa: E402

REGISTRY_DDL = (
    """
    CREATE TABLE estabelecimento (
        cnpj_basico TEXT, cnpj_ordem TEXT, cnpj_dv TEXT, identificador_matriz_filial TEXT,
        nome_fantasia TEXT, situacao_cadastral TEXT, data_situacao_cadastral TEXT,
        motivo_situacao_cadastral TEXT, nome_cidade_exterior TEXT, pais TEXT,
        data_inicio_atividade TEXT, cnae_fiscal_principal TEXT, cnae_fiscal_secundaria TEXT,
        tipo_logradouro TEXT, logradouro TEXT, numero TEXT, complemento TEXT, bairro TEXT,
        cep TEXT, uf TEXT, municipio TEXT, ddd_1 TEXT, telefone_1 TEXT, ddd_2 TEXT,
        telefone_2 TEXT, ddd_fax TEXT, fax TEXT, correio_eletronico TEXT,
        situacao_especial TEXT, data_situacao_especial TEXT
    )
    """,
    """
    CREATE TABLE empresas (
        cnpj_basico TEXT PRIMARY KEY, razao_social TEXT, natureza_juridica TEXT,
        qualificacao_responsavel TEXT, capital_social NUMERIC, porte_empresa TEXT,
        ente_federativo_responsavel TEXT
    )
    """,
    """
    CREATE TABLE simples (
        cnpj_basico TEXT PRIMARY KEY, opcao_pelo_simples TEXT, data_opcao_simples TEXT,
        data_exclusao_simples TEXT, opcao_mei TEXT, data_opcao_mei TEXT, data_exclusao_mei TEXT
    )
    """,
    """
    CREATE TABLE socios (
        cnpj_basico TEXT, identificador_de_socio INTEGER, nome_socio TEXT, cnpj_cpf_do_socio TEXT,
        qualificacao_socio TEXT, data_entrada_sociedade TEXT, pais TEXT, representante_legal TEXT,
        nome_do_representante TEXT, qualificacao_representante_legal TEXT, faixa_etaria TEXT
    )
    """,
    "CREATE TABLE cnae (codigo TEXT PRIMARY KEY, descricao TEXT)",
    "CREATE TABLE municipio (codigo TEXT PRIMARY KEY, descricao TEXT)",
    "CREATE TABLE natureza_juridica (codigo TEXT PRIMARY KEY, descricao TEXT)",
    "CREATE TABLE qualificacao_socio (codigo TEXT PRIMARY KEY, descricao TEXT)",
    "CREATE TABLE motivo (codigo TEXT PRIMARY KEY, descricao TEXT)",
)


def make_sqlite_engine() -> Engine:
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def create_registry_schema(engine: Engine) -> None:
    with engine.begin() as connection:
        for ddl in REGISTRY_DDL:
            connection.execute(text(ddl))


def insert_company(
    engine: Engine,
    basico: str,
    *,
    ordem: str = "0001",
    dv: str = "00",
    razao_social: str = "EMPRESA TESTE LTDA",
    nome_fantasia: str | None = "TESTE",
    uf: str = "SP",
    cnae: str = "4781400",
    situacao: str = "02",
    matriz: str = "1",
    inicio: str = "20200101",
    capital: float | None = 10000,
    telefone: str | None = "33334444",
    email: str | None = None,
    socios: list[dict] | None = None,
) -> None:
    with engine.begin() as connection:
        connection.execute(
            text(
                """
                INSERT INTO estabelecimento (
                    cnpj_basico, cnpj_ordem, cnpj_dv, identificador_matriz_filial, nome_fantasia,
                    situacao_cadastral, data_inicio_atividade, cnae_fiscal_principal, uf, municipio,
                    ddd_1, telefone_1, correio_eletronico
                ) VALUES (
                    :basico, :ordem, :dv, :matriz, :nome_fantasia,
                    :situacao, :inicio, :cnae, :uf, '7107',
                    :ddd, :telefone, :email
                )
                """
            ),
            {
                "basico": basico,
                "ordem": ordem,
                "dv": dv,
                "matriz": matriz,
                "nome_fantasia": nome_fantasia,
                "situacao": situacao,
                "inicio": inicio,
                "cnae": cnae,
                "uf": uf,
                "ddd": "11" if telefone else None,
                "telefone": telefone,
                "email": email,
            },
        )
        connection.execute(
            text(
                "INSERT OR IGNORE INTO empresas (cnpj_basico, razao_social, natureza_juridica, capital_social, porte_empresa) "
                "VALUES (:basico, :razao, '2062', :capital, '01')"
            ),
            {"basico": basico, "razao": razao_social, "capital": capital},
        )
        for index, socio in enumerate(socios or [], start=1):
            connection.execute(
                text(
                    "INSERT INTO socios (cnpj_basico, identificador_de_socio, nome_socio, cnpj_cpf_do_socio, "
                    "qualificacao_socio, data_entrada_sociedade, faixa_etaria) "
                    "VALUES (:basico, 2, :nome, :cpf, :qualificacao, '20200101', '4')"
                ),
                {
                    "basico": basico,
                    "nome": socio.get("nome", f"SOCIO {index}"),
                    "cpf": socio.get("cpf", "***123456**"),
                    "qualificacao": socio.get("qualificacao", "49"),
                },
            )


class RecordingEmailService(EmailService):
    def __init__(self) -> None:
        super().__init__([], console_fallback=True)
        self.sent: list[EmailMessage] = []

    async def send_email(self, message: EmailMessage) -> EmailResult:
        self.sent.append(message)
        return EmailResult(True, "memory", message_id=f"memory-{len(self.sent)}")


@pytest.fixture(autouse=True)
def reset_app_state() -> Iterator[None]:
    app.state.system = SystemState(database_url="")
    app.state.monitor = None
    set_cache(None)
    reset_offline_user_store()
    yield
    app.dependency_overrides.clear()
    app.state.system.disconnect()
    app.state.system = SystemState(database_url="")
    set_cache(None)
    reset_offline_user_store()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def online_engine() -> Iterator[Engine]:
    engine = make_sqlite_engine()
    create_registry_schema(engine)
    Base.metadata.create_all(engine)
    app.state.system.attach_engine(engine)
    yield engine


@pytest.fixture
def email_outbox() -> RecordingEmailService:
    service = RecordingEmailService()
    app.dependency_overrides[get_email_service] = lambda: service
    return service


@pytest.fixture
def offline_users() -> OfflineUserStore:
    store = OfflineUserStore(
        seed=[{"id": 1, "email": "test@test.com", "password": hash_password("test123"), "name": "Test User"}]
    )
    app.dependency_overrides[get_user_store] = lambda: store
    return store


def auth_header(email: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': email})}"}
