"""Execucao da acao agendada de um Atendimento.

O efeito sobre a entidade alvo e a marcacao ``STATUS_AGENDAMENTO =
Concluído`` acontecem na mesma transacao: ou os dois sao confirmados, ou
nenhum e.
"""

import logging
from datetime import date
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from simas.audit.service import AcaoAuditoria, model_to_dict, record_event
from simas.core.errors import (
    ConflitoError,
    OperationResult,
    RegraNegocioError,
    SimasError,
    ValidacaoError,
)
from simas.core.security import SessionContext
from simas.db import models
from simas.services.crud import commit, create_record, flush, update_record
from simas.services.entities import ENTITY_CONFIGS
from simas.services.pessoal import (
    arquivar_contrato,
    find_contrato_ativo,
    find_servidor_ativo,
    inativar_servidor,
)
from simas.workflow.constants import (
    AGENDAMENTO_CONCLUIDO,
    AGENDAMENTO_NA,
    STATUS_AGUARDANDO,
    STATUS_DECLINADO,
)
from simas.workflow.kanban import is_future, today_utc
from simas.workflow.metadata import EntidadeAlvo, TipoAcao, derivable_actions
from simas.workflow.service import ensure_action_permission, get_atendimento, insert_atendimento

logger = logging.getLogger("simas.workflow.executor")

Handler = Callable[[Session, SessionContext, models.Atendimento, dict[str, Any]], Optional[dict[str, Any]]]


def _pick(dados: dict[str, Any], *keys: str) -> dict[str, Any]:
    return {key: dados.get(key) for key in keys if dados.get(key) not in (None, "")}


def _require(dados: dict[str, Any], *keys: str) -> None:
    missing = [key for key in keys if dados.get(key) in (None, "")]
    if missing:
        raise ValidacaoError(f"Campos obrigatorios ausentes: {', '.join(missing)}.")


def _servidor_do_atendimento(db: Session, atendimento: models.Atendimento) -> models.Servidor:
    servidor = find_servidor_ativo(db, atendimento.CPF)
    if servidor is None:
        raise RegraNegocioError("A pessoa do atendimento nao e servidor ativo.")
    return servidor


def _contrato_do_atendimento(db: Session, atendimento: models.Atendimento) -> models.Contrato:
    contrato = find_contrato_ativo(db, atendimento.CPF)
    if contrato is None:
        raise RegraNegocioError("A pessoa do atendimento nao possui contrato ativo.")
    return contrato


def _sem_efeito(db, session, atendimento, dados):
    return None


def _criar_revisao(db, session, atendimento, dados):
    novo = insert_atendimento(
        db,
        session,
        {
            "CPF": atendimento.CPF,
            "REMETENTE": atendimento.REMETENTE,
            "TIPO_PEDIDO": atendimento.TIPO_PEDIDO,
            "DESCRICAO": dados.get("DESCRICAO") or f"Revisao do atendimento {atendimento.ID_ATENDIMENTO}",
            "STATUS_PEDIDO": STATUS_AGUARDANDO,
        },
    )
    return {"ID_ATENDIMENTO": novo.ID_ATENDIMENTO}


def _criar_contrato(db, session, atendimento, dados):
    values = _pick(dados, "ID_VAGA", "ID_FUNCAO", "DATA_DO_CONTRATO")
    values.setdefault("ID_VAGA", atendimento.ID_VAGA)
    values.setdefault("DATA_DO_CONTRATO", date.today())
    values["CPF"] = atendimento.CPF
    _require(values, "ID_VAGA")
    contrato = create_record(db, session, ENTITY_CONFIGS["Contrato"], values)
    return {"ID_CONTRATO": contrato.ID_CONTRATO}


def _substituir_contrato(db, session, atendimento, dados):
    atual = _contrato_do_atendimento(db, atendimento)
    vaga_atual, funcao_atual = atual.ID_VAGA, atual.ID_FUNCAO
    historico = arquivar_contrato(db, session, atual, dados.get("MOTIVO") or atendimento.TIPO_PEDIDO)

    values = _pick(dados, "ID_VAGA", "ID_FUNCAO", "DATA_DO_CONTRATO")
    values.setdefault("ID_VAGA", vaga_atual)
    values.setdefault("ID_FUNCAO", funcao_atual)
    values.setdefault("DATA_DO_CONTRATO", date.today())
    values["CPF"] = atendimento.CPF
    novo = create_record(db, session, ENTITY_CONFIGS["Contrato"], values)
    return {
        "ID_CONTRATO": novo.ID_CONTRATO,
        "ID_HISTORICO_CONTRATO": historico.ID_HISTORICO_CONTRATO,
    }


def _criar_protocolo(db, session, atendimento, dados):
    contrato = _contrato_do_atendimento(db, atendimento)
    values = _pick(dados, "TIPO_DE_PROTOCOLO", "INICIO_PRAZO", "TERMINO_PRAZO")
    values.setdefault("TIPO_DE_PROTOCOLO", atendimento.TIPO_PEDIDO)
    values.setdefault("INICIO_PRAZO", date.today())
    values.update({"CPF": atendimento.CPF, "ID_CONTRATO": contrato.ID_CONTRATO})
    protocolo = create_record(db, session, ENTITY_CONFIGS["Protocolo"], values)
    return {"ID_PROTOCOLO": protocolo.ID_PROTOCOLO}


def _nova_alocacao(db, session, atendimento, dados):
    # alocacoes nunca sao editadas: cada mudanca gera uma linha nova
    servidor = _servidor_do_atendimento(db, atendimento)
    values = _pick(dados, "ID_LOTACAO", "ID_FUNCAO", "DATA_INICIO")
    _require(values, "ID_LOTACAO")
    values.setdefault("DATA_INICIO", date.today())
    values["MATRICULA"] = servidor.MATRICULA
    alocacao = create_record(db, session, ENTITY_CONFIGS["Alocacao"], values)
    return {"ID_ALOCACAO": alocacao.ID_ALOCACAO}


def _criar_nomeacao(db, session, atendimento, dados):
    servidor = _servidor_do_atendimento(db, atendimento)
    values = _pick(dados, "ID_CARGO_COMISSIONADO", "DATA_DA_NOMEACAO", "PAGINA_DO")
    _require(values, "ID_CARGO_COMISSIONADO")
    values.setdefault("DATA_DA_NOMEACAO", date.today())
    values.update({"MATRICULA": servidor.MATRICULA, "STATUS": "Ativo"})
    nomeacao = create_record(db, session, ENTITY_CONFIGS["Nomeacao"], values)
    return {"ID_NOMEACAO": nomeacao.ID_NOMEACAO}


def _inativar_servidor(db, session, atendimento, dados):
    servidor = _servidor_do_atendimento(db, atendimento)
    inativo = inativar_servidor(db, session, servidor.MATRICULA, dados.get("MOTIVO") or atendimento.TIPO_PEDIDO)
    return {"ID_INATIVO": inativo.ID_INATIVO, "MATRICULA": servidor.MATRICULA}


def _editar_no_lugar(entidade: EntidadeAlvo) -> Handler:
    config = ENTITY_CONFIGS[entidade.value]

    def _handler(db, session, atendimento, dados):
        _require(dados, config.pk)
        campos = {key: value for key, value in dados.items() if key != config.pk}
        item = update_record(db, session, config, dados[config.pk], campos)
        return {config.pk: getattr(item, config.pk)}

    return _handler


HANDLERS: dict[tuple[TipoAcao, EntidadeAlvo], Handler] = {
    (TipoAcao.NENHUMA, EntidadeAlvo.NENHUMA): _sem_efeito,
    (TipoAcao.CRIAR, EntidadeAlvo.ATENDIMENTO): _criar_revisao,
    (TipoAcao.CRIAR, EntidadeAlvo.CONTRATO): _criar_contrato,
    (TipoAcao.EDITAR, EntidadeAlvo.CONTRATO): _substituir_contrato,
    (TipoAcao.CRIAR, EntidadeAlvo.PROTOCOLO): _criar_protocolo,
    (TipoAcao.CRIAR, EntidadeAlvo.ALOCACAO): _nova_alocacao,
    (TipoAcao.EDITAR, EntidadeAlvo.ALOCACAO): _nova_alocacao,
    (TipoAcao.CRIAR, EntidadeAlvo.NOMEACAO): _criar_nomeacao,
    (TipoAcao.INATIVAR, EntidadeAlvo.SERVIDOR): _inativar_servidor,
    (TipoAcao.EDITAR, EntidadeAlvo.PROTOCOLO): _editar_no_lugar(EntidadeAlvo.PROTOCOLO),
    (TipoAcao.EDITAR, EntidadeAlvo.NOMEACAO): _editar_no_lugar(EntidadeAlvo.NOMEACAO),
    (TipoAcao.EDITAR, EntidadeAlvo.SERVIDOR): _editar_no_lugar(EntidadeAlvo.SERVIDOR),
}


def missing_handlers() -> set[tuple[TipoAcao, EntidadeAlvo]]:
    return derivable_actions() - set(HANDLERS)


if missing_handlers():
    raise RuntimeError(f"Acoes sem executor: {sorted(missing_handlers())}")


def _ensure_executable(
    session: SessionContext, atendimento: models.Atendimento, versao: Optional[int], today: date
) -> None:
    ensure_action_permission(session, atendimento)
    if versao is not None and versao != atendimento.VERSAO:
        raise ConflitoError("O atendimento foi alterado por outro usuario. Recarregue e tente novamente.")
    if atendimento.STATUS_AGENDAMENTO == AGENDAMENTO_CONCLUIDO:
        raise ConflitoError("A acao deste atendimento ja foi executada.")
    if atendimento.STATUS_PEDIDO == STATUS_DECLINADO:
        raise RegraNegocioError("Atendimento declinado nao possui acao a executar.")
    if atendimento.STATUS_AGENDAMENTO == AGENDAMENTO_NA:
        raise RegraNegocioError("Atendimento sem acao agendada.")
    if is_future(atendimento.DATA_AGENDAMENTO, today):
        raise RegraNegocioError("A acao esta agendada para uma data futura.")


def execute_action(
    db: Session,
    session: SessionContext,
    id_atendimento: str,
    dados: Optional[dict[str, Any]] = None,
    versao: Optional[int] = None,
    today: Optional[date] = None,
) -> OperationResult:
    dados = dados or {}
    try:
        atendimento = get_atendimento(db, id_atendimento)
        _ensure_executable(session, atendimento, versao, today or today_utc())

        acao = (TipoAcao(atendimento.TIPO_DE_ACAO), EntidadeAlvo(atendimento.ENTIDADE_ALVO))
        antigo = model_to_dict(atendimento)
        resultado = HANDLERS[acao](db, session, atendimento, dados)

        atendimento.STATUS_AGENDAMENTO = AGENDAMENTO_CONCLUIDO
        flush(db)
        record_event(
            db, session, AcaoAuditoria.EDITAR, "Atendimento", id_atendimento,
            valor_antigo=antigo, valor_novo=model_to_dict(atendimento),
        )
        commit(db)
    except SimasError as exc:
        db.rollback()
        logger.warning("execucao falhou atendimento=%s erro=%s", id_atendimento, exc.message)
        return OperationResult.from_error(exc)

    logger.info(
        "acao executada atendimento=%s acao=%s/%s usuario=%s",
        id_atendimento,
        acao[0].value,
        acao[1].value,
        session.usuario,
    )
    return OperationResult.ok("Acao executada com sucesso.", resultado)
