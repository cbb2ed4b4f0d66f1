"""
Seed demo accounts and one scheduled loading per warehouse.

Usage: DATABASE_URL=sqlite:///./nexor.db python seed_users.py
"""
import uuid
from datetime import date, timedelta

from core.database import SessionLocal, engine, Base
from services.auth_service import AuthService
from models.parties import Armazem, Cliente, Representante
from models.agendamento import Agendamento
from models.carregamento import Carregamento, CarregamentoStatus, FotoCarregamento  # noqa: F401
from models.user import User
from models.audit_log import AuditLog  # noqa: F401


def _ensure_user(db, email: str, username: str, password: str, role: str, **links) -> None:
    if db.query(User).filter(User.email == email).first():
        return
    db.add(User(
        id=uuid.uuid4(),
        email=email,
        username=username,
        hashed_password=AuthService.get_password_hash(password),
        role=role,
        is_active=True,
        **links
    ))
    print(f"✅ Created {role}: {email}")


def seed_demo_data():
    print("📋 Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        armazem = db.query(Armazem).filter(Armazem.nome == "Armazém Paranaguá").first()
        if not armazem:
            armazem = Armazem(nome="Armazém Paranaguá", cidade="Paranaguá", estado="PR")
            representante = Representante(nome="Marina Costa", email="marina@nexor.local")
            db.add_all([armazem, representante])
            db.flush()

            cliente = Cliente(
                nome="Agro Sul Fertilizantes",
                cnpj_cpf="12345678000199",
                email="compras@agrosul.local",
                representante_id=representante.id,
            )
            db.add(cliente)
            db.flush()

            agendamento = Agendamento(
                cliente_id=cliente.id,
                armazem_id=armazem.id,
                data_retirada=date.today() + timedelta(days=1),
                horario="08:00",
                quantidade=32.5,
                placa_caminhao="ABC1D23",
                motorista_nome="João Pereira",
                motorista_documento="12345678900",
            )
            db.add(agendamento)
            db.flush()

            db.add(Carregamento(
                cliente_id=cliente.id,
                armazem_id=armazem.id,
                agendamento_id=agendamento.id,
                etapa_atual=1,
                status=CarregamentoStatus.AGUARDANDO,
            ))

            _ensure_user(db, "armazem@nexor.local", "armazem_pgua", "Armazem123!", "armazem", armazem_id=armazem.id)
            _ensure_user(db, "cliente@nexor.local", "agrosul", "Cliente123!", "cliente", cliente_id=cliente.id)
            _ensure_user(
                db, "representante@nexor.local", "marina", "Represent123!", "representante",
                representante_id=representante.id,
            )
            print("✅ Created demo warehouse, client and loading")

        _ensure_user(db, "admin@nexor.local", "admin", "Admin123!", "admin")
        _ensure_user(db, "logistica@nexor.local", "logistica", "Logistica123!", "logistica")

        db.commit()
    except Exception as e:
        print(f"❌ Error seeding demo data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_demo_data()
