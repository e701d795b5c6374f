"""Cadastro e atualizacao de Atendimentos.

Os campos ``TIPO_DE_ACAO``, ``ENTIDADE_ALVO`` e ``STATUS_AGENDAMENTO`` sao
sempre recalculados por :func:`derive_metadata`; valores enviados pelo
cliente para esses campos sao descartados.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from simas.audit.service import AcaoAuditoria, model_to_dict, record_event
from simas.core.authorization import (
    PAPEL_COORDENACAO,
    allowed_justificativas,
    allowed_remetentes,
    allowed_tipos_pedido,
    can_access_entity,
)
from simas.core.errors import (
    ConflitoError,
    NaoEncontradoError,
    PermissaoError,
    RegraNegocioError,
    ValidacaoError,
)
from simas.core.security import SessionContext
from simas.db import models
from simas.services.crud import commit, ensure_vaga_livre, flush, reservas_ativas
from simas.services.entities import sanitize_data
from simas.services.pessoal import find_contrato_ativo, find_servidor_ativo
from simas.services.validation import generate_legacy_id, normalize_cpf, validate_cpf
from simas.workflow.constants import (
    AGENDAMENTO_CONCLUIDO,
    RESERVA_DE_VAGA,
    STATUS_ACATADO,
    STATUS_AGUARDANDO,
    STATUS_DECLINADO,
    STATUS_PEDIDO,
    TIPOS_REQUEREM_CONTRATO,
    TIPOS_REQUEREM_SERVIDOR,
)
from simas.workflow.kanban import classify_atendimento
from simas.workflow.metadata import EntidadeAlvo, derive_metadata

logger = logging.getLogger("simas.workflow")

CAMPOS_PROTEGIDOS = {
    "ID_ATENDIMENTO",
    "DATA_ENTRADA",
    "TIPO_DE_ACAO",
    "ENTIDADE_ALVO",
    "STATUS_AGENDAMENTO",
    "CHAVE_IDEMPOTENCIA",
}

TRANSICOES_PERMITIDAS = {
    STATUS_AGUARDANDO: {STATUS_AGUARDANDO, STATUS_ACATADO, STATUS_DECLINADO},
    STATUS_ACATADO: {STATUS_ACATADO, STATUS_DECLINADO},
    STATUS_DECLINADO: {STATUS_DECLINADO},
}


def get_atendimento(db: Session, id_atendimento: str) -> models.Atendimento:
    atendimento = (
        db.query(models.Atendimento)
        .filter(models.Atendimento.ID_ATENDIMENTO == id_atendimento)
        .first()
    )
    if not atendimento:
        raise NaoEncontradoError("Atendimento nao encontrado.")
    return atendimento


def ensure_action_permission(session: SessionContext, atendimento: models.Atendimento) -> None:
    if atendimento.TIPO_PEDIDO not in allowed_tipos_pedido(session.papel):
        raise PermissaoError(f"Seu perfil nao pode tratar pedidos do tipo '{atendimento.TIPO_PEDIDO}'.")
    entidade = atendimento.ENTIDADE_ALVO
    if entidade and entidade != EntidadeAlvo.NENHUMA.value and not can_access_entity(session, entidade):
        raise PermissaoError(f"Seu perfil nao possui acesso a {entidade}.")


def find_by_chave(db: Session, chave: Optional[str]) -> Optional[models.Atendimento]:
    if not chave:
        return None
    return (
        db.query(models.Atendimento)
        .filter(models.Atendimento.CHAVE_IDEMPOTENCIA == chave)
        .first()
    )


def apply_metadata(atendimento: models.Atendimento) -> None:
    metadata = derive_metadata(
        atendimento.STATUS_PEDIDO,
        atendimento.TIPO_PEDIDO,
        atendimento.DATA_AGENDAMENTO,
    )
    for key, value in metadata.as_dict().items():
        setattr(atendimento, key, value)


def _validate_options(session: SessionContext, values: dict[str, Any]) -> None:
    tipo = values.get("TIPO_PEDIDO")
    if not tipo:
        raise ValidacaoError("Selecione o tipo de pedido.")
    if tipo not in allowed_tipos_pedido(session.papel):
        raise ValidacaoError(f"Tipo de pedido '{tipo}' nao permitido para o perfil {session.papel}.")

    remetente = values.get("REMETENTE")
    if remetente and remetente not in allowed_remetentes(session.papel):
        raise ValidacaoError(f"Remetente '{remetente}' nao permitido para o perfil {session.papel}.")

    status_pedido = values.get("STATUS_PEDIDO")
    if status_pedido not in STATUS_PEDIDO:
        raise ValidacaoError(f"Status de pedido invalido: '{status_pedido}'.")

    if status_pedido == STATUS_DECLINADO:
        justificativa = values.get("JUSTIFICATIVA")
        if not justificativa:
            raise ValidacaoError("Informe a justificativa para declinar o pedido.")
        if justificativa not in allowed_justificativas(session.papel):
            raise ValidacaoError(f"Justificativa '{justificativa}' nao permitida para o perfil {session.papel}.")


def _check_business_rules(db: Session, values: dict[str, Any]) -> None:
    tipo = values.get("TIPO_PEDIDO")
    cpf = values.get("CPF")
    if tipo in TIPOS_REQUEREM_CONTRATO and find_contrato_ativo(db, cpf) is None:
        raise RegraNegocioError(f"Nao e possivel registrar '{tipo}': a pessoa nao possui contrato ativo.")
    if tipo in TIPOS_REQUEREM_SERVIDOR and find_servidor_ativo(db, cpf) is None:
        raise RegraNegocioError(f"Nao e possivel registrar '{tipo}': a pessoa nao e servidor ativo.")


def insert_atendimento(db: Session, session: SessionContext, values: dict[str, Any]) -> models.Atendimento:
    """Grava um Atendimento ja validado e registra a auditoria (sem commit)."""
    atendimento = models.Atendimento(**values)
    atendimento.ID_ATENDIMENTO = generate_legacy_id("ATD")
    atendimento.DATA_ENTRADA = datetime.utcnow()
    if not atendimento.RESPONSAVEL:
        atendimento.RESPONSAVEL = session.usuario
    if atendimento.STATUS_PEDIDO != STATUS_AGUARDANDO and not atendimento.DATA_ATENDIMENTO:
        atendimento.DATA_ATENDIMENTO = datetime.utcnow()
    apply_metadata(atendimento)
    db.add(atendimento)
    flush(db)
    record_event(
        db, session, AcaoAuditoria.CRIAR, "Atendimento", atendimento.ID_ATENDIMENTO,
        valor_novo=model_to_dict(atendimento),
    )
    return atendimento


def create_atendimento(
    db: Session,
    session: SessionContext,
    data: dict[str, Any],
    chave_idempotencia: Optional[str] = None,
) -> tuple[models.Atendimento, bool]:
    """Cria um Atendimento.

    Retorna ``(atendimento, criado)``. Quando a chave de idempotencia ja foi
    usada o atendimento existente e devolvido com ``criado=False``.
    """
    chave = chave_idempotencia or (data or {}).get("CHAVE_IDEMPOTENCIA")
    existente = find_by_chave(db, chave)
    if existente is not None:
        logger.info("atendimento repetido chave=%s id=%s", chave, existente.ID_ATENDIMENTO)
        return existente, False

    values = sanitize_data(models.Atendimento, data)
    for key in CAMPOS_PROTEGIDOS:
        values.pop(key, None)
    values.setdefault("STATUS_PEDIDO", STATUS_AGUARDANDO)
    if not values["STATUS_PEDIDO"]:
        values["STATUS_PEDIDO"] = STATUS_AGUARDANDO

    if not validate_cpf(values.get("CPF")):
        raise ValidacaoError("CPF invalido.")
    values["CPF"] = normalize_cpf(values["CPF"])
    if not db.query(models.Pessoa).filter(models.Pessoa.CPF == values["CPF"]).first():
        raise NaoEncontradoError("Pessoa nao cadastrada. Cadastre a pessoa antes do atendimento.")

    _validate_options(session, values)
    if values["TIPO_PEDIDO"] == RESERVA_DE_VAGA:
        ensure_vaga_livre(db, values.get("ID_VAGA"))
    else:
        values["ID_VAGA"] = None
    _check_business_rules(db, values)

    values["CHAVE_IDEMPOTENCIA"] = chave
    atendimento = insert_atendimento(db, session, values)
    commit(db)
    logger.info(
        "atendimento criado id=%s tipo=%s status=%s acao=%s/%s",
        atendimento.ID_ATENDIMENTO,
        atendimento.TIPO_PEDIDO,
        atendimento.STATUS_PEDIDO,
        atendimento.TIPO_DE_ACAO,
        atendimento.ENTIDADE_ALVO,
    )
    return atendimento, True


def update_atendimento(
    db: Session,
    session: SessionContext,
    id_atendimento: str,
    data: dict[str, Any],
    versao: Optional[int] = None,
) -> models.Atendimento:
    atendimento = get_atendimento(db, id_atendimento)
    if atendimento.STATUS_AGENDAMENTO == AGENDAMENTO_CONCLUIDO:
        raise RegraNegocioError("Atendimento concluido nao pode ser alterado.")
    if versao is not None and versao != atendimento.VERSAO:
        raise ConflitoError("O atendimento foi alterado por outro usuario. Recarregue e tente novamente.")

    antigo = model_to_dict(atendimento)
    changes = sanitize_data(models.Atendimento, data)
    for key in CAMPOS_PROTEGIDOS | {"CPF"}:
        changes.pop(key, None)

    merged = {**antigo, **changes}
    if not merged.get("STATUS_PEDIDO"):
        merged["STATUS_PEDIDO"] = atendimento.STATUS_PEDIDO
        changes["STATUS_PEDIDO"] = atendimento.STATUS_PEDIDO
    novo_status = merged["STATUS_PEDIDO"]
    if novo_status not in TRANSICOES_PERMITIDAS.get(atendimento.STATUS_PEDIDO, set()):
        raise RegraNegocioError(
            f"Transicao de status nao permitida: {atendimento.STATUS_PEDIDO} -> {novo_status}."
        )

    _validate_options(session, merged)
    if merged.get("TIPO_PEDIDO") == RESERVA_DE_VAGA:
        if merged.get("ID_VAGA") != atendimento.ID_VAGA:
            ensure_vaga_livre(db, merged.get("ID_VAGA"), exceto=id_atendimento)
        elif not merged.get("ID_VAGA"):
            raise ValidacaoError("Selecione uma vaga.")
    else:
        changes["ID_VAGA"] = None
    if changes.get("TIPO_PEDIDO") and changes["TIPO_PEDIDO"] != atendimento.TIPO_PEDIDO:
        _check_business_rules(db, merged)

    for key, value in changes.items():
        setattr(atendimento, key, value)
    if atendimento.STATUS_PEDIDO != STATUS_AGUARDANDO and not atendimento.DATA_ATENDIMENTO:
        atendimento.DATA_ATENDIMENTO = datetime.utcnow()
    apply_metadata(atendimento)
    flush(db)
    record_event(
        db, session, AcaoAuditoria.EDITAR, "Atendimento", id_atendimento,
        valor_antigo=antigo, valor_novo=model_to_dict(atendimento),
    )
    commit(db)
    logger.info(
        "atendimento atualizado id=%s status=%s acao=%s/%s agendamento=%s",
        id_atendimento,
        atendimento.STATUS_PEDIDO,
        atendimento.TIPO_DE_ACAO,
        atendimento.ENTIDADE_ALVO,
        atendimento.STATUS_AGENDAMENTO,
    )
    return atendimento


def list_atendimentos(
    db: Session,
    session: SessionContext,
    status_pedido: Optional[str] = None,
    cpf: Optional[str] = None,
    limit: int = 500,
) -> list[models.Atendimento]:
    query = db.query(models.Atendimento)
    if session.papel != PAPEL_COORDENACAO:
        query = query.filter(models.Atendimento.TIPO_PEDIDO.in_(allowed_tipos_pedido(session.papel)))
    if status_pedido:
        query = query.filter(models.Atendimento.STATUS_PEDIDO == status_pedido)
    if cpf:
        query = query.filter(models.Atendimento.CPF == normalize_cpf(cpf))
    return query.order_by(models.Atendimento.DATA_ENTRADA.desc()).limit(limit).all()


def serialize_atendimento(atendimento: models.Atendimento, today=None) -> dict[str, Any]:
    payload = model_to_dict(atendimento)
    payload["VERSAO"] = atendimento.VERSAO
    try:
        payload["BUCKET"] = classify_atendimento(atendimento, today).value
    except ValueError:
        payload["BUCKET"] = None
    return payload


def _lookup(db: Session, model: type, order_by) -> list[dict[str, Any]]:
    return [model_to_dict(item) for item in db.query(model).order_by(order_by).all()]


def vagas_livres(db: Session, cpf: Optional[str] = None) -> list[models.Vaga]:
    """Vagas desbloqueadas, sem contrato e sem reserva de outra pessoa."""
    ocupadas = select(models.Contrato.ID_VAGA)
    return (
        db.query(models.Vaga)
        .filter(
            models.Vaga.BLOQUEADA.is_(False),
            ~models.Vaga.ID_VAGA.in_(ocupadas),
            ~models.Vaga.ID_VAGA.in_(reservas_ativas(exceto_cpf=cpf)),
        )
        .order_by(models.Vaga.ID_VAGA.asc())
        .all()
    )


def build_action_context(db: Session, session: SessionContext, id_atendimento: str) -> dict[str, Any]:
    """Dados que a tela de execucao precisa para montar o formulario da acao."""
    atendimento = get_atendimento(db, id_atendimento)
    ensure_action_permission(session, atendimento)
    entidade = atendimento.ENTIDADE_ALVO
    contexto: dict[str, Any] = {
        "atendimento": serialize_atendimento(atendimento),
        "acao": {"TIPO_DE_ACAO": atendimento.TIPO_DE_ACAO, "ENTIDADE_ALVO": entidade},
        "opcoes": {},
    }

    contrato = find_contrato_ativo(db, atendimento.CPF)
    servidor = find_servidor_ativo(db, atendimento.CPF)
    if entidade == EntidadeAlvo.CONTRATO.value:
        contexto["opcoes"]["vagas"] = [model_to_dict(vaga) for vaga in vagas_livres(db, atendimento.CPF)]
        contexto["opcoes"]["funcoes"] = _lookup(db, models.Funcao, models.Funcao.FUNCAO)
        contexto["contrato_atual"] = model_to_dict(contrato)
    elif entidade == EntidadeAlvo.ALOCACAO.value:
        contexto["opcoes"]["lotacoes"] = _lookup(db, models.Lotacao, models.Lotacao.LOTACAO)
        contexto["opcoes"]["funcoes"] = _lookup(db, models.Funcao, models.Funcao.FUNCAO)
        contexto["servidor"] = model_to_dict(servidor)
    elif entidade == EntidadeAlvo.NOMEACAO.value:
        contexto["opcoes"]["cargos_comissionados"] = _lookup(
            db, models.CargoComissionado, models.CargoComissionado.NOME
        )
        contexto["servidor"] = model_to_dict(servidor)
    elif entidade == EntidadeAlvo.SERVIDOR.value:
        contexto["servidor"] = model_to_dict(servidor)
    elif entidade == EntidadeAlvo.PROTOCOLO.value:
        contexto["contrato_atual"] = model_to_dict(contrato)
    return contexto
