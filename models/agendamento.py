"""
Pickup schedule (agendamento) that originates a loading record.
"""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
import uuid

from sqlalchemy import Date, DateTime, Float, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from core.database import Base
from models.parties import Cliente


class Agendamento(Base):
    __tablename__ = "agendamentos"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cliente_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("clientes.id"), nullable=False, index=True)
    armazem_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("armazens.id"), nullable=False, index=True)

    data_retirada: Mapped[date] = mapped_column(Date, nullable=False)
    horario: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    quantidade: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    placa_caminhao: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    motorista_nome: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    motorista_documento: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    cliente: Mapped[Cliente] = relationship(Cliente, lazy="joined")
