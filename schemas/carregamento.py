"""
Pydantic schemas for the loading workflow.
"""
from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from models.carregamento import CarregamentoStatus
from services.carregamento_service import StageView


class AgendamentoSummary(BaseModel):
    id: UUID
    data_retirada: date
    horario: Optional[str]
    quantidade: float
    placa_caminhao: Optional[str]
    motorista_nome: Optional[str]
    motorista_documento: Optional[str]
    model_config = ConfigDict(from_attributes=True)


class CarregamentoListItem(BaseModel):
    id: UUID
    cliente: str
    quantidade: float
    placa: str
    motorista: str
    data_retirada: Optional[date]
    horario: str
    status: CarregamentoStatus
    etapa_atual: int
    fotos_total: int
    numero_nf: Optional[str]


class StageState(BaseModel):
    id: int
    nome: str
    view: StageView
    completed: bool
    data: Optional[datetime]
    observacao: Optional[str]
    fotos: List[str]
    url_nota_fiscal: Optional[str]
    url_xml: Optional[str]


class CarregamentoStatistics(BaseModel):
    elapsed_since_start_min: Optional[int]
    elapsed_since_start: Optional[str]
    total_process_duration_min: Optional[int]
    total_process_duration: Optional[str]
    per_stage_durations_min: List[int]
    stage_durations: Dict[int, str]
    average_stage_duration_min: Optional[float]
    average_stage_duration: Optional[str]


class CarregamentoResponse(BaseModel):
    id: UUID
    cliente_id: UUID
    armazem_id: UUID
    agendamento_id: UUID
    etapa_atual: int
    status: CarregamentoStatus
    numero_nf: Optional[str]

    data_chegada: Optional[datetime]
    data_inicio: Optional[datetime]
    data_carregando: Optional[datetime]
    data_finalizacao: Optional[datetime]
    data_documentacao: Optional[datetime]

    observacao_chegada: Optional[str]
    observacao_inicio: Optional[str]
    observacao_carregando: Optional[str]
    observacao_finalizacao: Optional[str]
    observacao_documentacao: Optional[str]

    # Storage references of the private stage 5 documents. Download links come
    # from the detail view or /documentos, which sign them.
    ref_nota_fiscal: Optional[str] = Field(validation_alias=AliasChoices("url_nota_fiscal", "ref_nota_fiscal"))
    ref_xml: Optional[str] = Field(validation_alias=AliasChoices("url_xml", "ref_xml"))

    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CarregamentoDetailResponse(BaseModel):
    carregamento: CarregamentoResponse
    agendamento: AgendamentoSummary
    cliente_nome: Optional[str]
    selected_stage: int
    selected_view: StageView
    can_advance: bool
    etapas: List[StageState]
    statistics: CarregamentoStatistics


class DocumentLinks(BaseModel):
    nota_fiscal: Optional[str]
    xml: Optional[str]
