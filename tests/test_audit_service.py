import re
from datetime import datetime, timedelta

from models.audit_log import AuditLog
from services.audit_service import AuditService


def test_generate_reference_format_is_enterprise_safe():
    ref = AuditService.generate_reference(datetime(2026, 2, 23, 12, 0, 0))
    assert re.fullmatch(r"AUD-20260223-[A-F0-9]{8}", ref)


def test_generate_reference_uniqueness():
    ref1 = AuditService.generate_reference()
    ref2 = AuditService.generate_reference()
    assert ref1 != ref2


def test_safe_level_defaults_to_info_for_unknown_values():
    assert AuditService._safe_level("random") == "INFO"
    assert AuditService._safe_level("error") == "ERROR"


def test_build_log_captures_actor_and_entity(seed):
    entry = AuditService.build_log(
        action="carregamento.advance_stage",
        level="warn",
        category=" Carregamento ",
        actor=seed.operador,
        entity_type="carregamento",
        entity_id=seed.carregamento.id,
        metadata={"from_stage": 1, "to_stage": 2},
    )
    assert entry.id is None
    assert entry.level == "WARN"
    assert entry.category == "carregamento"
    assert entry.actor_role == "armazem"
    assert entry.actor_email == "armazem@nexor.test"
    assert entry.metadata_dict == {"from_stage": 1, "to_stage": 2}


def test_list_logs_filters_and_prune(db_session, seed, monkeypatch):
    recent = AuditService.build_log(action="carregamento.advance_stage", actor=seed.operador,
                                    entity_id=seed.carregamento.id)
    old = AuditService.build_log(action="carregamento.advance_stage", actor=seed.admin, level="error")
    old.event_time = datetime.utcnow() - timedelta(days=400)
    db_session.add_all([recent, old])
    db_session.commit()

    total, logs = AuditService.list_logs(db_session, limit=10, offset=0, entity_id=seed.carregamento.id)
    assert total == 1
    assert logs[0].id == recent.id

    total, _ = AuditService.list_logs(db_session, limit=10, offset=0, level="error")
    assert total == 1
    total, _ = AuditService.list_logs(db_session, limit=10, offset=0, actor_email="ARMAZEM@")
    assert total == 1

    monkeypatch.setenv("AUDIT_LOG_RETENTION_DAYS", "180")
    assert AuditService.prune_old_logs(db_session) == 1
    assert db_session.query(AuditLog).count() == 1
