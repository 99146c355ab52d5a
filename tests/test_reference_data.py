from __future__ import annotations

from app.services.reference_data import (
    BUSINESS_SEGMENTS,
    MOTIVO_SITUACAO,
    NATUREZA_JURIDICA,
    QUALIFICACAO_SOCIO,
    UFS,
    build_filter_response,
    get_segment,
    static_filter_response,
)


def test_segments_have_cnaes_with_matching_descriptions():
    assert len(BUSINESS_SEGMENTS) == 20
    assert [segment["id"] for segment in BUSINESS_SEGMENTS] == list(range(1, 21))
    for segment in BUSINESS_SEGMENTS:
        assert segment["cnaes"]
        assert len(segment["cnaes"]) == len(segment["cnaeDescriptions"])


def test_ufs_cover_every_state():
    codes = {uf["code"] for uf in UFS}
    assert len(codes) == 27
    assert {"SP", "DF", "TO"} <= codes


def test_get_segment():
    assert get_segment(1)["name"] == "Vestuário e Moda"
    assert get_segment(99) is None
    assert get_segment(None) is None


def test_filter_response_skips_single_option_lists():
    data = build_filter_response(
        [{"code": "00", "description": "Sem Restrição"}],
        QUALIFICACAO_SOCIO,
        [],
    )

    assert set(data) == {"businessSegments", "ufs", "situacaoCadastral", "qualificacaoSocio"}


def test_static_filter_response_includes_all_lists():
    data = static_filter_response()

    assert data["motivoSituacao"] == MOTIVO_SITUACAO
    assert data["naturezaJuridica"] == NATUREZA_JURIDICA
    assert data["situacaoCadastral"][0] == {"code": "02", "description": "Ativa"}
