"""
Loading record (carregamento) for the six-stage truck loading workflow.
"""
from __future__ import annotations
from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional
import uuid

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from core.database import Base
from models.agendamento import Agendamento


class CarregamentoStatus(str, PyEnum):
    AGUARDANDO = "aguardando"
    EM_ANDAMENTO = "em_andamento"
    FINALIZADO = "finalizado"


class Carregamento(Base):
    __tablename__ = "carregamentos"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    cliente_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("clientes.id"), nullable=False, index=True)
    armazem_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("armazens.id"), nullable=False, index=True)
    agendamento_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("agendamentos.id"), nullable=False, index=True)

    etapa_atual: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[CarregamentoStatus] = mapped_column(
        Enum(CarregamentoStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CarregamentoStatus.AGUARDANDO
    )
    numero_nf: Mapped[Optional[str]] = mapped_column(String(44), nullable=True)

    data_chegada: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    data_inicio: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    data_carregando: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    data_finalizacao: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    data_documentacao: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    observacao_chegada: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    observacao_inicio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    observacao_carregando: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    observacao_finalizacao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    observacao_documentacao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    url_nota_fiscal: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    url_xml: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    agendamento: Mapped[Agendamento] = relationship(Agendamento, lazy="joined")
    fotos: Mapped[List["FotoCarregamento"]] = relationship(
        "FotoCarregamento",
        back_populates="carregamento",
        order_by="FotoCarregamento.created_at",
    )


class FotoCarregamento(Base):
    __tablename__ = "fotos_carregamento"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    carregamento_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("carregamentos.id"), nullable=False, index=True)
    etapa: Mapped[int] = mapped_column(Integer, nullable=False)
    # Storage reference, e.g. "http://host/files/carregamento-fotos/carregamentos/<id>/etapa1_...jpg"
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    legenda: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    carregamento: Mapped[Carregamento] = relationship(Carregamento, back_populates="fotos")
