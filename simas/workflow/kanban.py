import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional, Union

from simas.workflow.constants import (
    AGENDAMENTO_CONCLUIDO,
    STATUS_ACATADO,
    STATUS_AGUARDANDO,
    STATUS_DECLINADO,
)

logger = logging.getLogger("simas.workflow")


class KanbanBucket(str, Enum):
    AGUARDANDO = "aguardando"
    PRONTO = "pronto_para_executar"
    CONCLUIDO = "concluido"
    DECLINADO = "declinado"


BUCKET_TITLES = {
    KanbanBucket.AGUARDANDO: "Aguardando / Futuro",
    KanbanBucket.PRONTO: "Pronto para Executar",
    KanbanBucket.CONCLUIDO: "Concluído",
    KanbanBucket.DECLINADO: "Declinado / Cancelado",
}


def today_utc() -> date:
    return datetime.utcnow().date()


def _as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def is_future(data_agendamento: Union[date, datetime, str, None], today: date) -> bool:
    scheduled = _as_date(data_agendamento)
    return scheduled is not None and scheduled > today


def bucket_predicates(
    status_pedido: Optional[str],
    status_agendamento: Optional[str],
    data_agendamento: Union[date, datetime, str, None],
    today: Optional[date] = None,
) -> dict[KanbanBucket, bool]:
    today = today or today_utc()
    acatado_aberto = status_pedido == STATUS_ACATADO and status_agendamento != AGENDAMENTO_CONCLUIDO
    futuro = is_future(data_agendamento, today)
    return {
        KanbanBucket.AGUARDANDO: status_pedido == STATUS_AGUARDANDO or (acatado_aberto and futuro),
        KanbanBucket.PRONTO: acatado_aberto and not futuro,
        KanbanBucket.CONCLUIDO: status_pedido == STATUS_ACATADO and status_agendamento == AGENDAMENTO_CONCLUIDO,
        KanbanBucket.DECLINADO: status_pedido == STATUS_DECLINADO,
    }


def classify(
    status_pedido: Optional[str],
    status_agendamento: Optional[str],
    data_agendamento: Union[date, datetime, str, None],
    today: Optional[date] = None,
) -> KanbanBucket:
    predicates = bucket_predicates(status_pedido, status_agendamento, data_agendamento, today)
    matches = [bucket for bucket, matched in predicates.items() if matched]
    if len(matches) != 1:
        raise ValueError(f"Estado de atendimento invalido: STATUS_PEDIDO={status_pedido!r}")
    return matches[0]


def classify_atendimento(atendimento: Any, today: Optional[date] = None) -> KanbanBucket:
    return classify(
        atendimento.STATUS_PEDIDO,
        atendimento.STATUS_AGENDAMENTO,
        atendimento.DATA_AGENDAMENTO,
        today,
    )


def build_board(atendimentos: Iterable[Any], today: Optional[date] = None) -> dict[KanbanBucket, list[Any]]:
    today = today or today_utc()
    board: dict[KanbanBucket, list[Any]] = {bucket: [] for bucket in KanbanBucket}
    for atendimento in atendimentos:
        try:
            bucket = classify_atendimento(atendimento, today)
        except ValueError:
            logger.warning("atendimento fora do quadro id=%s", atendimento.ID_ATENDIMENTO)
            continue
        board[bucket].append(atendimento)
    return board
