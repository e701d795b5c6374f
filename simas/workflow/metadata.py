"""Derivacao dos metadados de agendamento de um Atendimento.

``derive_metadata`` e uma funcao pura: dado o status do pedido, o tipo do
pedido e a data de agendamento, devolve a acao pendente, a entidade alvo
dessa acao e o status do agendamento. Deve ser reexecutada sempre que um
desses tres campos mudar; os campos derivados nunca sao aceitos do usuario.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union

from simas.workflow.constants import (
    AGENDAMENTO_CONCLUIDO,
    AGENDAMENTO_NA,
    AGENDAMENTO_PENDENTE,
    STATUS_ACATADO,
    STATUS_AGUARDANDO,
)


class TipoAcao(str, Enum):
    CRIAR = "CRIAR"
    EDITAR = "EDITAR"
    INATIVAR = "INATIVAR"
    NENHUMA = "NENHUMA"


class EntidadeAlvo(str, Enum):
    ATENDIMENTO = "Atendimento"
    CONTRATO = "Contrato"
    PROTOCOLO = "Protocolo"
    ALOCACAO = "Alocacao"
    NOMEACAO = "Nomeacao"
    SERVIDOR = "Servidor"
    NENHUMA = "NENHUMA"


class StatusAgendamento(str, Enum):
    PENDENTE = AGENDAMENTO_PENDENTE
    CONCLUIDO = AGENDAMENTO_CONCLUIDO
    NA = AGENDAMENTO_NA


ACOES_POR_TIPO_PEDIDO: dict[str, tuple[TipoAcao, EntidadeAlvo]] = {
    "Contratação": (TipoAcao.CRIAR, EntidadeAlvo.CONTRATO),
    "Promoção (Contratado)": (TipoAcao.EDITAR, EntidadeAlvo.CONTRATO),
    "Mudança (Contratado)": (TipoAcao.EDITAR, EntidadeAlvo.CONTRATO),
    "Demissão": (TipoAcao.CRIAR, EntidadeAlvo.PROTOCOLO),
    "Alocação de Servidor": (TipoAcao.CRIAR, EntidadeAlvo.ALOCACAO),
    "Mudança de Alocação (Servidor)": (TipoAcao.EDITAR, EntidadeAlvo.ALOCACAO),
    "Nomeação de Cargo Comissionado": (TipoAcao.CRIAR, EntidadeAlvo.NOMEACAO),
    "Exoneração de Cargo Comissionado": (TipoAcao.INATIVAR, EntidadeAlvo.SERVIDOR),
    "Exoneração do Serviço Público": (TipoAcao.INATIVAR, EntidadeAlvo.SERVIDOR),
}

SEM_ACAO = (TipoAcao.NENHUMA, EntidadeAlvo.NENHUMA)
REVISAO_AGENDADA = (TipoAcao.CRIAR, EntidadeAlvo.ATENDIMENTO)


@dataclass(frozen=True)
class AtendimentoMetadata:
    tipo_de_acao: TipoAcao
    entidade_alvo: EntidadeAlvo
    status_agendamento: StatusAgendamento

    @property
    def acao(self) -> tuple[TipoAcao, EntidadeAlvo]:
        return self.tipo_de_acao, self.entidade_alvo

    def as_dict(self) -> dict[str, str]:
        return {
            "TIPO_DE_ACAO": self.tipo_de_acao.value,
            "ENTIDADE_ALVO": self.entidade_alvo.value,
            "STATUS_AGENDAMENTO": self.status_agendamento.value,
        }


def _has_date(value: Union[date, datetime, str, None]) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def derive_metadata(
    status_pedido: Optional[str],
    tipo_pedido: Optional[str],
    data_agendamento: Union[date, datetime, str, None],
) -> AtendimentoMetadata:
    if not _has_date(data_agendamento):
        return AtendimentoMetadata(TipoAcao.NENHUMA, EntidadeAlvo.NENHUMA, StatusAgendamento.NA)

    if status_pedido == STATUS_AGUARDANDO:
        tipo_acao, entidade = REVISAO_AGENDADA
    elif status_pedido == STATUS_ACATADO:
        tipo_acao, entidade = ACOES_POR_TIPO_PEDIDO.get(tipo_pedido or "", SEM_ACAO)
    else:
        tipo_acao, entidade = SEM_ACAO
    return AtendimentoMetadata(tipo_acao, entidade, StatusAgendamento.PENDENTE)


def derive_metadata_from(record: Mapping[str, Any]) -> AtendimentoMetadata:
    return derive_metadata(
        record.get("STATUS_PEDIDO"),
        record.get("TIPO_PEDIDO"),
        record.get("DATA_AGENDAMENTO"),
    )


def derivable_actions() -> set[tuple[TipoAcao, EntidadeAlvo]]:
    """Todos os pares (acao, entidade) que ``derive_metadata`` pode produzir."""
    return {SEM_ACAO, REVISAO_AGENDADA, *ACOES_POR_TIPO_PEDIDO.values()}
