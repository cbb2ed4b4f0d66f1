import os
import sys
import uuid
from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from main import app
from core.actor import ActorContext, Role
from core.database import Base, get_db
from core.security import get_current_actor
from models.agendamento import Agendamento
from models.carregamento import Carregamento, CarregamentoStatus
from models.parties import Armazem, Cliente, Representante
from services.storage_service import LocalStorageService, get_storage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\n%%EOF"
XML_BYTES = b"<?xml version=\"1.0\"?><nfeProc><NFe/></nfeProc>"


def make_actor(role: Role, linked=None, represented=()) -> ActorContext:
    return ActorContext(
        user_id=uuid.uuid4(),
        role=role,
        linked_entity_id=linked,
        represented_client_ids=frozenset(represented),
        email=f"{role.value}@nexor.test",
    )


@pytest.fixture(scope="function")
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage(tmp_path):
    return LocalStorageService(
        root=tmp_path / "storage",
        base_url="http://testserver",
        secret_key="test-secret",
    )


@pytest.fixture
def seed(db_session):
    """Two warehouses, two clients (one with a representative) and one loading at stage 1."""
    representante = Representante(nome="Marina Costa")
    armazem = Armazem(nome="Armazém Paranaguá", cidade="Paranaguá", estado="PR")
    outro_armazem = Armazem(nome="Armazém Santos", cidade="Santos", estado="SP")
    db_session.add_all([representante, armazem, outro_armazem])
    db_session.flush()

    cliente = Cliente(nome="Agro Sul Fertilizantes", representante_id=representante.id)
    outro_cliente = Cliente(nome="Cooperativa Norte")
    db_session.add_all([cliente, outro_cliente])
    db_session.flush()

    agendamento = Agendamento(
        cliente_id=cliente.id,
        armazem_id=armazem.id,
        data_retirada=date(2026, 3, 10),
        horario="08:00",
        quantidade=32.5,
        placa_caminhao="ABC1D23",
        motorista_nome="João Pereira",
        motorista_documento="12345678900",
    )
    outro_agendamento = Agendamento(
        cliente_id=outro_cliente.id,
        armazem_id=outro_armazem.id,
        data_retirada=date(2026, 3, 20),
        horario="14:30",
        quantidade=18,
        placa_caminhao="XYZ9K87",
        motorista_nome="Carlos Lima",
    )
    db_session.add_all([agendamento, outro_agendamento])
    db_session.flush()

    carregamento = Carregamento(
        cliente_id=cliente.id,
        armazem_id=armazem.id,
        agendamento_id=agendamento.id,
        etapa_atual=1,
        status=CarregamentoStatus.AGUARDANDO,
    )
    outro_carregamento = Carregamento(
        cliente_id=outro_cliente.id,
        armazem_id=outro_armazem.id,
        agendamento_id=outro_agendamento.id,
        etapa_atual=3,
        status=CarregamentoStatus.EM_ANDAMENTO,
    )
    db_session.add_all([carregamento, outro_carregamento])
    db_session.commit()

    return SimpleNamespace(
        armazem=armazem,
        outro_armazem=outro_armazem,
        cliente=cliente,
        outro_cliente=outro_cliente,
        representante=representante,
        carregamento=carregamento,
        outro_carregamento=outro_carregamento,
        operador=make_actor(Role.ARMAZEM, armazem.id),
        outro_operador=make_actor(Role.ARMAZEM, outro_armazem.id),
        cliente_actor=make_actor(Role.CLIENTE, cliente.id),
        representante_actor=make_actor(Role.REPRESENTANTE, representante.id, [cliente.id]),
        admin=make_actor(Role.ADMIN),
        logistica=make_actor(Role.LOGISTICA),
    )


@pytest.fixture
def client(db_session, storage):
    """TestClient whose acting user is switched with ``client.act_as(actor)``."""
    current = {"actor": make_actor(Role.ADMIN)}

    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_current_actor] = lambda: current["actor"]

    with TestClient(app) as test_client:
        test_client.act_as = lambda actor: current.update(actor=actor)
        yield test_client

    app.dependency_overrides.clear()
