"""
API endpoints for the loading (carregamento) workflow.
"""
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from core.actor import ActorContext
from core.database import get_db
from core.security import get_current_actor
from models.carregamento import Carregamento, CarregamentoStatus
from schemas.audit_log import AuditLogResponse
from schemas.carregamento import (
    CarregamentoDetailResponse,
    CarregamentoListItem,
    CarregamentoResponse,
    DocumentLinks,
)
from services.audit_service import AuditService
from services.carregamento_service import Attachment, CarregamentoService
from services.stages import FINAL_STAGE
from services.storage_service import LocalStorageService, get_storage

router = APIRouter(prefix="/api/carregamentos", tags=["carregamentos"])


def _list_item(record: Carregamento, fotos_total: int) -> CarregamentoListItem:
    agendamento = record.agendamento
    cliente = agendamento.cliente if agendamento else None
    return CarregamentoListItem(
        id=record.id,
        cliente=(cliente.nome if cliente else None) or "N/A",
        quantidade=(agendamento.quantidade if agendamento else None) or 0,
        placa=(agendamento.placa_caminhao if agendamento else None) or "N/A",
        motorista=(agendamento.motorista_nome if agendamento else None) or "N/A",
        data_retirada=agendamento.data_retirada if agendamento else None,
        horario=(agendamento.horario if agendamento else None) or "00:00",
        status=record.status,
        etapa_atual=record.etapa_atual,
        fotos_total=fotos_total,
        numero_nf=record.numero_nf,
    )


async def _read_upload(upload: Optional[UploadFile]) -> Optional[Attachment]:
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return Attachment(filename=upload.filename, content_type=upload.content_type, data=data)


@router.get("/", response_model=list[CarregamentoListItem])
def list_carregamentos(
    search: Optional[str] = None,
    status: Optional[List[CarregamentoStatus]] = Query(None),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor)
):
    rows = CarregamentoService.list_carregamentos(
        db, actor, search=search, statuses=status, date_from=date_from, date_to=date_to
    )
    return [_list_item(record, fotos_total) for record, fotos_total in rows]


@router.get("/{carregamento_id}", response_model=CarregamentoDetailResponse)
def get_carregamento(
    carregamento_id: UUID,
    etapa: Optional[int] = Query(None, ge=1, le=FINAL_STAGE),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
    storage: LocalStorageService = Depends(get_storage)
):
    return CarregamentoService.get_carregamento_detail(carregamento_id, db, actor, storage, selected_stage=etapa)


@router.get("/{carregamento_id}/documentos", response_model=DocumentLinks)
def get_documentos(
    carregamento_id: UUID,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
    storage: LocalStorageService = Depends(get_storage)
):
    record = CarregamentoService.get_carregamento(carregamento_id, db, actor)
    return CarregamentoService.document_links(record, storage)


@router.post("/{carregamento_id}/etapas/{etapa}/avancar", response_model=CarregamentoResponse)
async def advance_stage(
    carregamento_id: UUID,
    etapa: int,
    arquivo: Optional[UploadFile] = File(None),
    xml: Optional[UploadFile] = File(None),
    observacao: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor),
    storage: LocalStorageService = Depends(get_storage)
):
    record = CarregamentoService.get_carregamento(carregamento_id, db, actor)
    return CarregamentoService.advance_stage(
        record,
        actor,
        etapa,
        db,
        storage,
        attachment=await _read_upload(arquivo),
        xml=await _read_upload(xml),
        observacao=observacao,
    )


@router.get("/{carregamento_id}/historico", response_model=list[AuditLogResponse])
def get_historico(
    carregamento_id: UUID,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_current_actor)
):
    """Stage transitions of a visible record, oldest first."""
    record = CarregamentoService.get_carregamento(carregamento_id, db, actor)
    return AuditService.entity_history(db, "carregamento", record.id)
