from __future__ import annotations

import io
import re
from collections.abc import Iterable
from datetime import date

import pandas as pd

from app.schemas.company import CompanySchema

CSV_SEPARATOR = ";"
SHEET_NAME = "Empresas"

BASE_COLUMNS: list[tuple[str, str]] = [
    ("CNPJ", "cnpj"),
    ("CNPJ Básico", "cnpj_basico"),
    ("Razão Social", "razao_social"),
    ("Nome Fantasia", "nome_fantasia"),
    ("Matriz/Filial", "matriz_filial"),
    ("Situação Cadastral", "situacao_descricao"),
    ("Data Situação", "data_situacao"),
    ("Motivo Situação", "motivo_situacao"),
    ("Data Início Atividades", "data_inicio_atividades"),
    ("CNAE Principal", "cnae_principal"),
    ("CNAE Secundária", "cnae_secundaria"),
    ("Natureza Jurídica", "natureza_juridica"),
    ("Porte Empresa", "porte_empresa"),
    ("Capital Social", "capital_social"),
    ("Tipo Logradouro", "tipo_logradouro"),
    ("Logradouro", "logradouro"),
    ("Número", "numero"),
    ("Complemento", "complemento"),
    ("Bairro", "bairro"),
    ("CEP", "cep"),
    ("UF", "uf"),
    ("Município", "municipio"),
    ("DDD 1", "ddd1"),
    ("Telefone 1", "telefone1"),
    ("DDD 2", "ddd2"),
    ("Telefone 2", "telefone2"),
    ("Email", "email"),
    ("Situação Especial", "situacao_especial"),
    ("Data Situação Especial", "data_situacao_especial"),
    ("Opção Simples Nacional", "opcao_simples"),
    ("Data Opção Simples", "data_opcao_simples"),
    ("Opção MEI", "opcao_mei"),
    ("Data Opção MEI", "data_opcao_mei"),
]

SOCIO_COLUMNS: list[tuple[str, str]] = [
    ("Nome", "nome"),
    ("CPF/CNPJ", "cpf_cnpj"),
    ("Qualificação", "qualificacao"),
    ("Data Entrada", "data_entrada"),
    ("Faixa Etária", "faixa_etaria"),
    ("País", "pais"),
]

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

_CNPJ_MASK = re.compile(r"^(\d{2})(\d{3})(\d{3})(\d{4})(\d{2})$")


def format_cnpj(value: str | None) -> str:
    if not value:
        return ""
    digits = re.sub(r"\D", "", value)
    return _CNPJ_MASK.sub(r"\1.\2.\3/\4-\5", digits)


def companies_to_dataframe(companies: Iterable[CompanySchema]) -> pd.DataFrame:
    companies = list(companies)
    max_socios = max((len(company.socios) for company in companies), default=0)

    records: list[dict[str, object]] = []
    for company in companies:
        record: dict[str, object] = {label: getattr(company, attr) for label, attr in BASE_COLUMNS}
        record["CNPJ"] = format_cnpj(company.cnpj)
        for index in range(max_socios):
            socio = company.socios[index] if index < len(company.socios) else None
            for label, attr in SOCIO_COLUMNS:
                record[f"Sócio {index + 1} - {label}"] = getattr(socio, attr) if socio is not None else None
        records.append(record)

    columns = [label for label, _ in BASE_COLUMNS] + [
        f"Sócio {index + 1} - {label}" for index in range(max_socios) for label, _ in SOCIO_COLUMNS
    ]
    frame = pd.DataFrame.from_records(records, columns=columns)
    # Spreadsheet cells must not break rows.
    frame = frame.replace(r"[\r\n]+", " ", regex=True)
    return frame.fillna("")


def to_csv_bytes(frame: pd.DataFrame) -> bytes:
    return frame.to_csv(index=False, sep=CSV_SEPARATOR).encode("utf-8-sig")


def to_xlsx_bytes(frame: pd.DataFrame) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name=SHEET_NAME)
    return buffer.getvalue()


def export_filename(fmt: str, today: date | None = None) -> str:
    today = today or date.today()
    return f"empresas_detalhado_{today.isoformat()}.{fmt}"


def render_export(companies: Iterable[CompanySchema], fmt: str) -> bytes:
    frame = companies_to_dataframe(companies)
    if fmt == "xlsx":
        return to_xlsx_bytes(frame)
    return to_csv_bytes(frame)
