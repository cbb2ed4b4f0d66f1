"""
Timing statistics derived from the stage timestamps of a loading record.

All functions are pure: they read attributes from the record and never
touch the database. Durations are whole minutes.
"""
from datetime import datetime
from typing import Dict, List, Optional

from models.carregamento import CarregamentoStatus
from services.stages import TIMED_STAGES


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def _stage_timestamps(record) -> List[Optional[datetime]]:
    return [getattr(record, stage.campo_data, None) for stage in TIMED_STAGES]


def _is_finished(record) -> bool:
    status = getattr(record, "status", None)
    value = status.value if hasattr(status, "value") else status
    return value == CarregamentoStatus.FINALIZADO.value


def elapsed_since_start(record, now: Optional[datetime] = None) -> Optional[int]:
    start = getattr(record, "data_chegada", None)
    if start is None:
        return None
    return minutes_between(start, now or datetime.utcnow())


def total_process_duration(record) -> Optional[int]:
    """Arrival to documentation, only for finished records."""
    if not _is_finished(record):
        return None
    start = getattr(record, "data_chegada", None)
    end = getattr(record, "data_documentacao", None)
    if start is None or end is None:
        return None
    return minutes_between(start, end)


def stage_durations_by_stage(record) -> Dict[int, int]:
    """Minutes from stage N to stage N+1, keyed by N.

    Pairs where either endpoint is missing are left out.
    """
    stamps = _stage_timestamps(record)
    durations: Dict[int, int] = {}
    for index in range(len(stamps) - 1):
        start, end = stamps[index], stamps[index + 1]
        if start is None or end is None:
            continue
        durations[TIMED_STAGES[index].id] = minutes_between(start, end)
    return durations


def per_stage_durations(record) -> List[int]:
    return list(stage_durations_by_stage(record).values())


def average_stage_duration(record) -> Optional[float]:
    durations = per_stage_durations(record)
    if not durations:
        return None
    return sum(durations) / len(durations)


def format_duration(minutes) -> str:
    """Render minutes as "45min", "2h" or "2h 15min". ``None`` renders as "-"."""
    if minutes is None:
        return "-"
    total = int(round(minutes))
    if total < 60:
        return f"{total}min"
    hours, rest = divmod(total, 60)
    if rest:
        return f"{hours}h {rest}min"
    return f"{hours}h"


def build_statistics(record, now: Optional[datetime] = None) -> dict:
    elapsed = elapsed_since_start(record, now)
    total = total_process_duration(record)
    average = average_stage_duration(record)
    by_stage = stage_durations_by_stage(record)
    return {
        "elapsed_since_start_min": elapsed,
        "elapsed_since_start": format_duration(elapsed) if elapsed is not None else None,
        "total_process_duration_min": total,
        "total_process_duration": format_duration(total) if total is not None else None,
        "per_stage_durations_min": list(by_stage.values()),
        "stage_durations": {stage_id: format_duration(value) for stage_id, value in by_stage.items()},
        "average_stage_duration_min": average,
        "average_stage_duration": format_duration(average) if average is not None else None,
    }
