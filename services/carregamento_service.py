"""
Service layer for the six-stage loading (carregamento) workflow.
"""
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import false, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.actor import ActorContext, Role
from models.agendamento import Agendamento
from models.carregamento import Carregamento, CarregamentoStatus, FotoCarregamento
from models.parties import Cliente
from services.audit_service import AuditService
from services.exceptions import (
    FetchError,
    PermissionDenied,
    PersistenceError,
    UploadError,
    ValidationError,
)
from services.stages import (
    FINAL_STAGE,
    STAGES,
    AttachmentKind,
    StageDefinition,
    get_stage,
    matches_kind,
)
from services.statistics import build_statistics
from services.storage_service import (
    BUCKET_DOCUMENTOS,
    BUCKET_FOTOS,
    LocalStorageService,
    StoredFile,
    build_object_path,
)

log = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))


@dataclass(frozen=True)
class Attachment:
    filename: str
    content_type: Optional[str]
    data: bytes


class StageView(str, PyEnum):
    COMPLETED = "completed"
    EDITABLE = "editable"
    AWAITING_WAREHOUSE = "awaiting_warehouse"
    AWAITING_PREVIOUS = "awaiting_previous"
    PROCESS_FINISHED = "process_finished"


def is_finished(record: Carregamento) -> bool:
    return record.status == CarregamentoStatus.FINALIZADO or record.etapa_atual >= FINAL_STAGE


class CarregamentoService:
    @staticmethod
    def _scoped_query(db: Session, actor: ActorContext):
        query = db.query(Carregamento)
        if actor.role in (Role.ADMIN, Role.LOGISTICA):
            return query
        if actor.role == Role.ARMAZEM:
            if actor.linked_entity_id is None:
                return query.filter(false())
            return query.filter(Carregamento.armazem_id == actor.linked_entity_id)
        if actor.role == Role.CLIENTE:
            if actor.linked_entity_id is None:
                return query.filter(false())
            return query.filter(Carregamento.cliente_id == actor.linked_entity_id)
        if actor.role == Role.REPRESENTANTE:
            if not actor.represented_client_ids:
                return query.filter(false())
            return query.filter(Carregamento.cliente_id.in_(actor.represented_client_ids))
        raise ValueError(f"Unhandled role: {actor.role!r}")

    @staticmethod
    def get_carregamento(record_id: UUID, db: Session, actor: ActorContext) -> Carregamento:
        record = CarregamentoService._scoped_query(db, actor).filter(Carregamento.id == record_id).first()
        if not record:
            # Invisible records are reported exactly like missing ones
            raise FetchError("Carregamento not found")
        return record

    @staticmethod
    def list_carregamentos(
        db: Session,
        actor: ActorContext,
        search: Optional[str] = None,
        statuses: Optional[Iterable[CarregamentoStatus]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Tuple[Carregamento, int]]:
        """Role-scoped list with the photo count of each record."""
        query = (
            CarregamentoService._scoped_query(db, actor)
            .join(Agendamento, Carregamento.agendamento_id == Agendamento.id)
            .join(Cliente, Agendamento.cliente_id == Cliente.id)
        )

        term = (search or "").strip()
        if term:
            pattern = f"%{term}%"
            query = query.filter(or_(
                Cliente.nome.ilike(pattern),
                Agendamento.motorista_nome.ilike(pattern),
                Agendamento.placa_caminhao.ilike(pattern),
            ))
        statuses = list(statuses or [])
        if statuses:
            query = query.filter(Carregamento.status.in_(statuses))
        if date_from is not None:
            query = query.filter(Agendamento.data_retirada >= date_from)
        if date_to is not None:
            query = query.filter(Agendamento.data_retirada <= date_to)

        records = query.order_by(
            Carregamento.data_chegada.desc().nulls_last(),
            Carregamento.created_at.desc(),
        ).all()
        if not records:
            return []

        counts = dict(
            db.query(FotoCarregamento.carregamento_id, func.count(FotoCarregamento.id))
            .filter(FotoCarregamento.carregamento_id.in_([r.id for r in records]))
            .group_by(FotoCarregamento.carregamento_id)
            .all()
        )
        return [(record, counts.get(record.id, 0)) for record in records]

    @staticmethod
    def validate_advance(
        record: Carregamento,
        actor: ActorContext,
        selected_stage: int,
        attachment: Optional[Attachment],
        xml: Optional[Attachment] = None,
        max_bytes: int = MAX_UPLOAD_BYTES,
    ) -> StageDefinition:
        """Check every precondition of an advance. Raises, never mutates."""
        if is_finished(record):
            raise ValidationError("This loading process is already finished")

        if not actor.is_warehouse_operator_for(record.armazem_id):
            raise PermissionDenied("Only the warehouse assigned to this loading can advance its stages")

        if selected_stage != record.etapa_atual:
            raise ValidationError(
                f"Stage {selected_stage} is not the current stage ({record.etapa_atual})"
            )

        stage = get_stage(record.etapa_atual)

        if attachment is None or not attachment.data:
            if stage.required_attachment == AttachmentKind.PDF:
                raise ValidationError("Missing required invoice PDF")
            raise ValidationError("Missing required photo")
        if not matches_kind(stage.required_attachment, attachment.filename, attachment.content_type):
            if stage.required_attachment == AttachmentKind.PDF:
                raise ValidationError("The invoice must be a PDF file")
            raise ValidationError("The stage attachment must be an image")

        if xml is not None:
            if stage.campo_xml is None:
                raise ValidationError("An XML file is only accepted at the documentation stage")
            if not xml.data:
                raise ValidationError("The XML file is empty")
            if not matches_kind(AttachmentKind.XML, xml.filename, xml.content_type):
                raise ValidationError("The fiscal document must be an XML file")

        for item in (attachment, xml):
            if item is not None and len(item.data) > max_bytes:
                raise ValidationError(f"File too large. Maximum {max_bytes // (1024 * 1024)}MB.")

        return stage

    @staticmethod
    def _upload_attachments(
        record: Carregamento,
        stage: StageDefinition,
        attachment: Attachment,
        xml: Optional[Attachment],
        storage: LocalStorageService,
        at_time: datetime,
    ) -> Tuple[Optional[StoredFile], Optional[StoredFile], Optional[StoredFile]]:
        if stage.required_attachment == AttachmentKind.IMAGE:
            path = build_object_path(record.id, stage.id, "etapa", attachment.filename, at_time)
            photo = storage.upload(attachment.data, BUCKET_FOTOS, path, attachment.content_type)
            return photo, None, None

        pdf_path = build_object_path(record.id, stage.id, "nf_etapa", attachment.filename, at_time)
        pdf = storage.upload(attachment.data, BUCKET_DOCUMENTOS, pdf_path, attachment.content_type)
        xml_file = None
        if xml is not None:
            xml_path = build_object_path(record.id, stage.id, "xml_etapa", xml.filename, at_time)
            try:
                xml_file = storage.upload(xml.data, BUCKET_DOCUMENTOS, xml_path, xml.content_type)
            except UploadError:
                log.warning("Orphaned upload %s/%s after XML upload failure", pdf.bucket, pdf.path)
                raise
        return None, pdf, xml_file

    @staticmethod
    def advance_stage(
        record: Carregamento,
        actor: ActorContext,
        selected_stage: int,
        db: Session,
        storage: LocalStorageService,
        attachment: Optional[Attachment] = None,
        xml: Optional[Attachment] = None,
        observacao: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Carregamento:
        """Complete the current stage and move the record to the next one.

        Upload first, then write every stage field in one conditional update
        guarded by the expected stage. A failed upload leaves the record
        untouched; a failed update leaves an orphaned file behind.
        """
        try:
            stage = CarregamentoService.validate_advance(record, actor, selected_stage, attachment, xml)
        except ValidationError as exc:
            log.warning(
                "Rejected advance of carregamento %s stage %s by %s: %s",
                record.id, selected_stage, actor.user_id, exc.message,
            )
            raise

        at_time = now or datetime.utcnow()
        photo, pdf, xml_file = CarregamentoService._upload_attachments(
            record, stage, attachment, xml, storage, at_time
        )
        uploaded = [f for f in (photo, pdf, xml_file) if f is not None]

        next_stage = stage.id + 1
        values = {
            stage.campo_data: at_time,
            "etapa_atual": next_stage,
            "updated_at": at_time,
        }
        note = (observacao or "").strip()
        if note:
            values[stage.campo_obs] = note
        if pdf is not None:
            values[stage.campo_url] = pdf.url
        if xml_file is not None:
            values[stage.campo_xml] = xml_file.url
        if next_stage == FINAL_STAGE:
            values["status"] = CarregamentoStatus.FINALIZADO

        try:
            updated = (
                db.query(Carregamento)
                .filter(
                    Carregamento.id == record.id,
                    Carregamento.etapa_atual == stage.id,
                    Carregamento.status != CarregamentoStatus.FINALIZADO,
                )
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                raise PersistenceError(
                    "This loading was updated by another operation. Reload and try again."
                )
            if photo is not None:
                db.add(FotoCarregamento(carregamento_id=record.id, etapa=stage.id, url=photo.url, legenda=""))
            db.add(AuditService.build_log(
                action="carregamento.advance_stage",
                message=f"Stage {stage.id} ({stage.nome}) completed",
                actor=actor,
                entity_type="carregamento",
                entity_id=record.id,
                metadata={
                    "from_stage": stage.id,
                    "to_stage": next_stage,
                    "files": [f"{f.bucket}/{f.path}" for f in uploaded],
                },
            ))
            db.commit()
        except PersistenceError:
            db.rollback()
            CarregamentoService._log_orphans(record, uploaded)
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            log.error("Failed to persist stage %s of carregamento %s", stage.id, record.id, exc_info=True)
            CarregamentoService._log_orphans(record, uploaded)
            raise PersistenceError("Could not save the stage. Please try again.") from exc

        db.refresh(record)
        log.info(
            "Carregamento %s advanced from stage %s to %s by %s",
            record.id, stage.id, next_stage, actor.user_id,
        )
        return record

    @staticmethod
    def _log_orphans(record: Carregamento, uploaded: List[StoredFile]) -> None:
        for stored in uploaded:
            log.warning("Orphaned upload %s/%s for carregamento %s", stored.bucket, stored.path, record.id)

    @staticmethod
    def stage_view(record: Carregamento, actor: ActorContext, selected_stage: int) -> StageView:
        if is_finished(record):
            return StageView.PROCESS_FINISHED
        if selected_stage < record.etapa_atual:
            return StageView.COMPLETED
        if selected_stage == record.etapa_atual:
            if actor.is_warehouse_operator_for(record.armazem_id):
                return StageView.EDITABLE
            return StageView.AWAITING_WAREHOUSE
        return StageView.AWAITING_PREVIOUS

    @staticmethod
    def photos_by_stage(record: Carregamento) -> Dict[int, List[FotoCarregamento]]:
        grouped: Dict[int, List[FotoCarregamento]] = {}
        for foto in record.fotos:
            grouped.setdefault(foto.etapa, []).append(foto)
        return grouped

    @staticmethod
    def describe_stages(record: Carregamento, actor: ActorContext, storage: LocalStorageService) -> List[dict]:
        """Per-stage display state. Data is only exposed for completed stages.

        Stage 5 documents live in a private bucket, so their links are signed.
        """
        photos = CarregamentoService.photos_by_stage(record)
        finished = is_finished(record)
        stages = []
        for stage in STAGES:
            view = CarregamentoService.stage_view(record, actor, stage.id)
            entry = {
                "id": stage.id,
                "nome": stage.nome,
                "view": view,
                "completed": stage.id < record.etapa_atual,
                "data": None,
                "observacao": None,
                "fotos": [],
                "url_nota_fiscal": None,
                "url_xml": None,
            }
            show_data = not stage.is_terminal and (
                view == StageView.COMPLETED or (finished and stage.id < FINAL_STAGE)
            )
            if show_data:
                entry["data"] = getattr(record, stage.campo_data)
                entry["observacao"] = getattr(record, stage.campo_obs)
                entry["fotos"] = [foto.url for foto in photos.get(stage.id, [])]
                if stage.campo_url:
                    links = CarregamentoService.document_links(record, storage)
                    entry["url_nota_fiscal"] = links["nota_fiscal"]
                    entry["url_xml"] = links["xml"]
            stages.append(entry)
        return stages

    @staticmethod
    def get_carregamento_detail(
        record_id: UUID,
        db: Session,
        actor: ActorContext,
        storage: LocalStorageService,
        selected_stage: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        record = CarregamentoService.get_carregamento(record_id, db, actor)
        selected = selected_stage or record.etapa_atual
        view = CarregamentoService.stage_view(record, actor, selected)
        agendamento = record.agendamento
        return {
            "carregamento": record,
            "agendamento": agendamento,
            "cliente_nome": agendamento.cliente.nome if agendamento and agendamento.cliente else None,
            "selected_stage": selected,
            "selected_view": view,
            "can_advance": view == StageView.EDITABLE,
            "etapas": CarregamentoService.describe_stages(record, actor, storage),
            "statistics": build_statistics(record, now),
        }

    @staticmethod
    def document_links(record: Carregamento, storage: LocalStorageService) -> dict:
        """Signed, time-limited download links for the stage 5 documents."""
        links = {"nota_fiscal": None, "xml": None}
        if record.url_nota_fiscal:
            links["nota_fiscal"] = storage.signed_url(record.url_nota_fiscal)
        if record.url_xml:
            links["xml"] = storage.signed_url(record.url_xml)
        return links


__all__ = [
    "Attachment",
    "CarregamentoService",
    "StageView",
    "is_finished",
]
