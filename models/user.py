from sqlalchemy import Column, String, Boolean, ForeignKey, Uuid
import uuid
from core.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)  # type: ignore
    username = Column(String, unique=True, index=True, nullable=False)  # type: ignore
    email = Column(String, unique=True, index=True, nullable=False)  # type: ignore
    is_active = Column(Boolean, default=True)  # type: ignore
    hashed_password = Column(String, nullable=False)  # type: ignore
    role = Column(String(20), default="cliente", nullable=False)  # type: ignore  # admin, logistica, armazem, cliente, representante

    # Linked entity, populated according to role
    armazem_id = Column(Uuid, ForeignKey("armazens.id"), nullable=True)  # type: ignore
    cliente_id = Column(Uuid, ForeignKey("clientes.id"), nullable=True)  # type: ignore
    representante_id = Column(Uuid, ForeignKey("representantes.id"), nullable=True)  # type: ignore
