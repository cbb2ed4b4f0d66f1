"""
Static definition of the six loading stages and their attachment rules.
"""
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional, Tuple


class AttachmentKind:
    IMAGE = "image"
    PDF = "pdf"
    XML = "xml"


IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".bmp"}
PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}
XML_CONTENT_TYPES = {"application/xml", "text/xml"}


@dataclass(frozen=True)
class StageDefinition:
    id: int
    nome: str
    campo_data: Optional[str] = None
    campo_obs: Optional[str] = None
    required_attachment: Optional[str] = None
    # Record column that stores the required attachment. Stages 1-4 keep
    # their photos in fotos_carregamento instead.
    campo_url: Optional[str] = None
    campo_xml: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.campo_data is None


STAGES: Tuple[StageDefinition, ...] = (
    StageDefinition(1, "Chegada", "data_chegada", "observacao_chegada", AttachmentKind.IMAGE),
    StageDefinition(2, "Início Carregamento", "data_inicio", "observacao_inicio", AttachmentKind.IMAGE),
    StageDefinition(3, "Carregando", "data_carregando", "observacao_carregando", AttachmentKind.IMAGE),
    StageDefinition(4, "Carregamento Finalizado", "data_finalizacao", "observacao_finalizacao", AttachmentKind.IMAGE),
    StageDefinition(
        5,
        "Documentação",
        "data_documentacao",
        "observacao_documentacao",
        AttachmentKind.PDF,
        campo_url="url_nota_fiscal",
        campo_xml="url_xml",
    ),
    StageDefinition(6, "Finalizado"),
)

FIRST_STAGE = STAGES[0].id
FINAL_STAGE = STAGES[-1].id
# Stages that record a timestamp when completed
TIMED_STAGES = tuple(s for s in STAGES if not s.is_terminal)


def get_stage(stage_id: int) -> StageDefinition:
    for stage in STAGES:
        if stage.id == stage_id:
            return stage
    raise KeyError(f"Unknown stage: {stage_id}")


def _extension(filename: Optional[str]) -> str:
    return PurePosixPath(filename or "").suffix.lower()


def matches_kind(kind: str, filename: Optional[str], content_type: Optional[str]) -> bool:
    """Check an upload against an attachment kind by MIME type, then by extension."""
    content_type = (content_type or "").split(";")[0].strip().lower()
    ext = _extension(filename)

    if kind == AttachmentKind.IMAGE:
        return content_type.startswith("image/") or ext in IMAGE_EXTENSIONS
    if kind == AttachmentKind.PDF:
        return content_type in PDF_CONTENT_TYPES or ext == ".pdf"
    if kind == AttachmentKind.XML:
        return content_type in XML_CONTENT_TYPES or ext == ".xml"
    raise ValueError(f"Unknown attachment kind: {kind}")
