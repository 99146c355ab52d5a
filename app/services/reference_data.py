from __future__ import annotations

from typing import Any

BUSINESS_SEGMENTS: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "Vestuário e Moda",
        "icon": "👗",
        "color": "#FF6B6B",
        "description": "3,5M empresas",
        "cnaes": ["4781400", "1412601", "4782201"],
        "cnaeDescriptions": ["Comércio varejista de vestuário", "Confecção de peças", "Comércio de calçados"],
    },
    {
        "id": 2,
        "name": "Alimentação e Restaurantes",
        "icon": "🍽️",
        "color": "#4ECDC4",
        "description": "3,6M empresas",
        "cnaes": ["5611203", "5611201", "5620104", "5612100"],
        "cnaeDescriptions": [
            "Lanchonetes e similares",
            "Restaurantes",
            "Fornecimento domiciliar",
            "Serviços ambulantes",
        ],
    },
    {
        "id": 3,
        "name": "Beleza e Estética",
        "icon": "💄",
        "color": "#F7DC6F",
        "description": "2,5M empresas",
        "cnaes": ["9602501", "9602502", "4772500"],
        "cnaeDescriptions": ["Cabeleireiros e manicure", "Atividades de estética", "Comércio de cosméticos"],
    },
    {
        "id": 4,
        "name": "Comércio e Mercados",
        "icon": "🏪",
        "color": "#58D68D",
        "description": "2,5M empresas",
        "cnaes": ["4712100", "4711301", "4729699", "4723700"],
        "cnaeDescriptions": [
            "Minimercados e mercearias",
            "Hipermercados",
            "Produtos alimentícios",
            "Comércio de bebidas",
        ],
    },
    {
        "id": 5,
        "name": "Construção Civil",
        "icon": "🏗️",
        "color": "#F4D03F",
        "description": "2,3M empresas",
        "cnaes": ["4399103", "4321500", "4120400", "4330404", "4744099"],
        "cnaeDescriptions": [
            "Obras de alvenaria",
            "Instalação elétrica",
            "Construção de edifícios",
            "Pintura",
            "Materiais de construção",
        ],
    },
    {
        "id": 6,
        "name": "Transportes e Logística",
        "icon": "🚛",
        "color": "#F8C471",
        "description": "2,1M empresas",
        "cnaes": ["4930201", "4930202", "5320202", "5229099"],
        "cnaeDescriptions": [
            "Transporte municipal",
            "Transporte intermunicipal",
            "Entrega rápida",
            "Auxiliares de transporte",
        ],
    },
    {
        "id": 7,
        "name": "Serviços Profissionais",
        "icon": "💼",
        "color": "#D7DBDD",
        "description": "2,0M empresas",
        "cnaes": ["7319002", "8219999", "8211300", "8230001"],
        "cnaeDescriptions": [
            "Promoção de vendas",
            "Apoio administrativo",
            "Serviços de escritório",
            "Organização de eventos",
        ],
    },
    {
        "id": 8,
        "name": "Tecnologia e Informática",
        "icon": "💻",
        "color": "#5DADE2",
        "description": "0,8M empresas",
        "cnaes": ["9511800", "4751201", "6209100", "6201501"],
        "cnaeDescriptions": [
            "Reparação de computadores",
            "Equipamentos de informática",
            "Desenvolvimento de software",
            "Desenvolvimento de sites",
        ],
    },
    {
        "id": 9,
        "name": "Saúde e Farmácias",
        "icon": "💊",
        "color": "#A569BD",
        "description": "0,7M empresas",
        "cnaes": ["4771701", "8712300", "8630501", "8650099"],
        "cnaeDescriptions": [
            "Produtos farmacêuticos",
            "Assistência domiciliar",
            "Atividade médica ambulatorial",
            "Atividades de profissionais da área de saúde",
        ],
    },
    {
        "id": 10,
        "name": "Educação e Treinamento",
        "icon": "📚",
        "color": "#52BE80",
        "description": "1,2M empresas",
        "cnaes": ["8599699", "8599604", "8513900", "8520100"],
        "cnaeDescriptions": [
            "Outras atividades de ensino",
            "Treinamento profissional",
            "Ensino fundamental",
            "Educação infantil",
        ],
    },
    {
        "id": 11,
        "name": "Automóveis e Oficinas",
        "icon": "🚗",
        "color": "#EC7063",
        "description": "1,0M empresas",
        "cnaes": ["4520001", "4530703", "4511101", "4520008"],
        "cnaeDescriptions": [
            "Manutenção mecânica",
            "Peças e acessórios",
            "Comércio de automóveis",
            "Serviços de lanternagem",
        ],
    },
    {
        "id": 12,
        "name": "Organizações e Associações",
        "icon": "🏛️",
        "color": "#BB8FCE",
        "description": "4,2M empresas",
        "cnaes": ["9492800", "9430800", "9491000", "8112500"],
        "cnaeDescriptions": [
            "Organizações políticas",
            "Associações de direitos",
            "Organizações religiosas",
            "Condomínios prediais",
        ],
    },
    {
        "id": 13,
        "name": "Varejo Especializado",
        "icon": "🛍️",
        "color": "#7FB3D3",
        "description": "1,5M empresas",
        "cnaes": ["4789099", "4774100", "4754701", "4755502", "4744001"],
        "cnaeDescriptions": ["Outros produtos", "Artigos de óptica", "Móveis", "Armarinho", "Ferragens"],
    },
    {
        "id": 14,
        "name": "Alimentação - Produção",
        "icon": "🍰",
        "color": "#7DCEA0",
        "description": "0,4M empresas",
        "cnaes": ["1091102", "4722901", "1011201", "1012101"],
        "cnaeDescriptions": ["Padaria e confeitaria", "Açougues", "Abate de bovinos", "Frigoríficos"],
    },
    {
        "id": 15,
        "name": "Serviços Domésticos",
        "icon": "🏠",
        "color": "#F1948A",
        "description": "0,5M empresas",
        "cnaes": ["9700500", "8121400", "9601701", "8129900"],
        "cnaeDescriptions": [
            "Serviços domésticos",
            "Limpeza de prédios",
            "Reparação de calçados",
            "Outras atividades de limpeza",
        ],
    },
    {
        "id": 16,
        "name": "Comunicação e Mídia",
        "icon": "📱",
        "color": "#AED6F1",
        "description": "0,3M empresas",
        "cnaes": ["5320201", "7311400", "6020300", "7319004"],
        "cnaeDescriptions": [
            "Serviços de malote",
            "Agências de publicidade",
            "Programação de TV",
            "Locação de stands",
        ],
    },
    {
        "id": 17,
        "name": "Agricultura e Pecuária",
        "icon": "🌾",
        "color": "#82E0AA",
        "description": "0,2M empresas",
        "cnaes": ["0111301", "0151201", "0113001", "0161001"],
        "cnaeDescriptions": [
            "Cultivo de milho",
            "Criação de bovinos",
            "Cultivo de cana",
            "Atividades de apoio à agricultura",
        ],
    },
    {
        "id": 18,
        "name": "Energia e Utilities",
        "icon": "⚡",
        "color": "#F7DC6F",
        "description": "0,1M empresas",
        "cnaes": ["3511500", "3600601", "3514000", "4221901"],
        "cnaeDescriptions": [
            "Geração de energia",
            "Captação de água",
            "Distribuição de energia",
            "Obras de utilidade pública",
        ],
    },
    {
        "id": 19,
        "name": "Finanças e Seguros",
        "icon": "💰",
        "color": "#85C1E9",
        "description": "0,1M empresas",
        "cnaes": ["6422100", "6550200", "6420400", "6491800"],
        "cnaeDescriptions": [
            "Bancos múltiplos",
            "Seguros de vida",
            "Cooperativas de crédito",
            "Outras intermediações financeiras",
        ],
    },
    {
        "id": 20,
        "name": "Outros Setores",
        "icon": "📋",
        "color": "#BDC3C7",
        "description": "Demais atividades",
        "cnaes": ["8888888", "0000000"],
        "cnaeDescriptions": ["Atividade não informada", "Outros códigos"],
    },
]

UFS: list[dict[str, str]] = [
    {"code": "SP", "description": "São Paulo"},
    {"code": "MG", "description": "Minas Gerais"},
    {"code": "RJ", "description": "Rio de Janeiro"},
    {"code": "AC", "description": "Acre"},
    {"code": "AL", "description": "Alagoas"},
    {"code": "AP", "description": "Amapá"},
    {"code": "AM", "description": "Amazonas"},
    {"code": "BA", "description": "Bahia"},
    {"code": "CE", "description": "Ceará"},
    {"code": "DF", "description": "Distrito Federal"},
    {"code": "ES", "description": "Espírito Santo"},
    {"code": "GO", "description": "Goiás"},
    {"code": "MA", "description": "Maranhão"},
    {"code": "MT", "description": "Mato Grosso"},
    {"code": "MS", "description": "Mato Grosso do Sul"},
    {"code": "PA", "description": "Pará"},
    {"code": "PB", "description": "Paraíba"},
    {"code": "PR", "description": "Paraná"},
    {"code": "PE", "description": "Pernambuco"},
    {"code": "PI", "description": "Piauí"},
    {"code": "RN", "description": "Rio Grande do Norte"},
    {"code": "RR", "description": "Roraima"},
    {"code": "RO", "description": "Rondônia"},
    {"code": "RS", "description": "Rio Grande do Sul"},
    {"code": "SC", "description": "Santa Catarina"},
    {"code": "SE", "description": "Sergipe"},
    {"code": "TO", "description": "Tocantins"},
]

SITUACAO_CADASTRAL: list[dict[str, str]] = [
    {"code": "02", "description": "Ativa"},
    {"code": "08", "description": "Baixada"},
    {"code": "04", "description": "Inapta"},
]

MOTIVO_SITUACAO: list[dict[str, str]] = [
    {"code": "00", "description": "Sem Restrição"},
    {"code": "01", "description": "Extinção por Encerramento Liquidação Voluntária"},
    {"code": "02", "description": "Incorporação"},
    {"code": "03", "description": "Fusão"},
    {"code": "04", "description": "Cisão Total"},
    {"code": "05", "description": "Extinção de Filial"},
    {"code": "06", "description": "Caducidade"},
    {"code": "07", "description": "Falta de Pluralidade de Sócios"},
    {"code": "08", "description": "Omissa em Declarações"},
    {"code": "09", "description": "Falência"},
    {"code": "10", "description": "Concordata"},
    {"code": "11", "description": "Liquidação Judicial"},
    {"code": "12", "description": "Liquidação Extrajudicial"},
]

QUALIFICACAO_SOCIO: list[dict[str, str]] = [
    {"code": "05", "description": "Administrador"},
    {"code": "08", "description": "Conselheiro de Administração"},
    {"code": "10", "description": "Diretor"},
    {"code": "16", "description": "Presidente"},
    {"code": "17", "description": "Procurador"},
    {"code": "22", "description": "Sócio"},
    {"code": "49", "description": "Sócio-Administrador"},
    {"code": "54", "description": "Fundador"},
    {"code": "65", "description": "Titular Pessoa Física"},
]

NATUREZA_JURIDICA: list[dict[str, str]] = [
    {"code": "1015", "description": "Empresa Individual de Responsabilidade Limitada"},
    {"code": "2135", "description": "Sociedade Limitada"},
    {"code": "2062", "description": "Sociedade Empresária Limitada"},
    {"code": "2240", "description": "Sociedade Simples Limitada"},
    {"code": "1244", "description": "Empresário Individual"},
    {"code": "2054", "description": "Sociedade Anônima Aberta"},
    {"code": "2070", "description": "Sociedade Anônima Fechada"},
]

SITUACAO_DESCRICAO = {
    "01": "Nula",
    "02": "Ativa",
    "03": "Suspensa",
    "04": "Inapta",
    "08": "Baixada",
}

PORTE_DESCRICAO = {
    "00": "Não informado",
    "01": "Microempresa",
    "03": "Empresa de Pequeno Porte",
    "05": "Demais",
}

MATRIZ_FILIAL = {"1": "Matriz", "2": "Filial"}

# bcrypt hash of "test123"
_DEMO_PASSWORD_HASH = "$2a$12$2JX6er4t5NU5KozUwpyc0.u3QV/4jmNmp/lYwrgzCd6liXUDYgBli"

OFFLINE_USERS: list[dict[str, Any]] = [
    {
        "id": 1,
        "email": "test@test.com",
        "password": _DEMO_PASSWORD_HASH,
        "name": "Test User",
    },
    {
        "id": 2,
        "email": "carlos@ogservicos.com.br",
        "password": _DEMO_PASSWORD_HASH,
        "name": "Carlos OG Serviços",
    },
]


def get_segment(segment_id: int | None) -> dict[str, Any] | None:
    if segment_id is None:
        return None
    for segment in BUSINESS_SEGMENTS:
        if segment["id"] == segment_id:
            return segment
    return None


def build_filter_response(
    motivo_situacao: list[dict[str, str]] | None,
    qualificacao_socio: list[dict[str, str]] | None,
    natureza_juridica: list[dict[str, str]] | None,
) -> dict[str, Any]:
    filter_data: dict[str, Any] = {
        "businessSegments": BUSINESS_SEGMENTS,
        "ufs": UFS,
        "situacaoCadastral": SITUACAO_CADASTRAL,
    }

    # Lists with a single option are omitted.
    if motivo_situacao and len(motivo_situacao) > 1:
        filter_data["motivoSituacao"] = motivo_situacao
    if qualificacao_socio and len(qualificacao_socio) > 1:
        filter_data["qualificacaoSocio"] = qualificacao_socio
    if natureza_juridica and len(natureza_juridica) > 1:
        filter_data["naturezaJuridica"] = natureza_juridica

    return filter_data


def static_filter_response() -> dict[str, Any]:
    return build_filter_response(MOTIVO_SITUACAO, QUALIFICACAO_SOCIO, NATUREZA_JURIDICA)
