import uuid

import pytest

from core.actor import ActorContext, Role
from services.stages import (
    FINAL_STAGE,
    STAGES,
    TIMED_STAGES,
    AttachmentKind,
    get_stage,
    matches_kind,
)


def test_six_ordered_stages_with_terminal_last():
    assert [s.id for s in STAGES] == [1, 2, 3, 4, 5, 6]
    assert FINAL_STAGE == 6
    assert get_stage(6).is_terminal
    assert all(not s.is_terminal for s in TIMED_STAGES)
    assert len(TIMED_STAGES) == 5


def test_stage_fields():
    assert get_stage(1).campo_data == "data_chegada"
    assert get_stage(2).campo_data == "data_inicio"
    assert get_stage(5).campo_obs == "observacao_documentacao"
    assert get_stage(5).campo_url == "url_nota_fiscal"
    assert get_stage(5).campo_xml == "url_xml"
    assert get_stage(5).required_attachment == AttachmentKind.PDF
    assert {get_stage(i).required_attachment for i in range(1, 5)} == {AttachmentKind.IMAGE}
    assert get_stage(6).required_attachment is None


def test_unknown_stage():
    with pytest.raises(KeyError):
        get_stage(7)


@pytest.mark.parametrize(
    "kind, filename, content_type, expected",
    [
        (AttachmentKind.IMAGE, "chegada.jpg", "image/jpeg", True),
        (AttachmentKind.IMAGE, "camera.HEIC", "application/octet-stream", True),
        (AttachmentKind.IMAGE, "nota.pdf", "application/pdf", False),
        (AttachmentKind.PDF, "nota.pdf", "application/pdf", True),
        (AttachmentKind.PDF, "NOTA.PDF", None, True),
        (AttachmentKind.PDF, "foto.png", "image/png", False),
        (AttachmentKind.XML, "nfe.xml", "text/xml; charset=utf-8", True),
        (AttachmentKind.XML, "nfe.txt", "text/plain", False),
    ],
)
def test_matches_kind(kind, filename, content_type, expected):
    assert matches_kind(kind, filename, content_type) is expected


def test_role_parse_is_case_insensitive():
    assert Role.parse("ARMAZEM") is Role.ARMAZEM
    assert Role.parse(Role.CLIENTE) is Role.CLIENTE
    with pytest.raises(ValueError):
        Role.parse("OPERATOR")


def test_actor_visibility_rules():
    armazem_id, cliente_id = uuid.uuid4(), uuid.uuid4()
    other = uuid.uuid4()

    assert ActorContext(None, Role.ADMIN).can_view(cliente_id, armazem_id)
    assert ActorContext(None, Role.LOGISTICA).can_view(cliente_id, armazem_id)
    assert ActorContext(None, Role.ARMAZEM, armazem_id).can_view(cliente_id, armazem_id)
    assert not ActorContext(None, Role.ARMAZEM, other).can_view(cliente_id, armazem_id)
    assert ActorContext(None, Role.CLIENTE, cliente_id).can_view(cliente_id, armazem_id)
    assert not ActorContext(None, Role.CLIENTE, None).can_view(cliente_id, armazem_id)
    rep = ActorContext(None, Role.REPRESENTANTE, other, frozenset({cliente_id}))
    assert rep.can_view(cliente_id, armazem_id)
    assert not rep.can_view(other, armazem_id)


def test_only_linked_warehouse_is_operator():
    armazem_id = uuid.uuid4()
    assert ActorContext(None, Role.ARMAZEM, armazem_id).is_warehouse_operator_for(armazem_id)
    assert not ActorContext(None, Role.ARMAZEM, None).is_warehouse_operator_for(armazem_id)
    assert not ActorContext(None, Role.ADMIN, armazem_id).is_warehouse_operator_for(armazem_id)
