"""Operacoes genericas de cadastro com registro de auditoria.

As funcoes deste modulo apenas fazem ``flush``; quem chama decide quando a
transacao e confirmada (rota HTTP, executor de acoes ou restauracao).
"""

from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from simas.audit.service import AcaoAuditoria, model_to_dict, record_event
from simas.core.errors import ConflitoError, NaoEncontradoError, RegraNegocioError, ValidacaoError
from simas.core.security import SessionContext
from simas.db import models
from simas.services.entities import EntityConfig, get_by_pk, sanitize_data
from simas.services.validation import generate_legacy_id, normalize_cpf, validate_cpf
from simas.workflow.constants import AGENDAMENTO_CONCLUIDO, RESERVA_DE_VAGA, STATUS_DECLINADO

WORKFLOW_ONLY_ENTITIES = {"Atendimento"}
MENSAGEM_VERSAO = "O registro foi alterado por outro usuario. Recarregue e tente novamente."


def commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflitoError(integrity_message(exc))
    except StaleDataError:
        db.rollback()
        raise ConflitoError(MENSAGEM_VERSAO)


def flush(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflitoError(integrity_message(exc))
    except StaleDataError:
        db.rollback()
        raise ConflitoError(MENSAGEM_VERSAO)


def integrity_message(exc: IntegrityError) -> str:
    text = str(getattr(exc, "orig", exc)).lower()
    if "foreign key" in text:
        return "Operacao invalida: o registro depende de outro dado inexistente ou ainda e referenciado."
    if "unique" in text or "duplicate" in text:
        return "Ja existe um registro com o mesmo identificador."
    return "Violacao de integridade no banco de dados."


def _reserva_em_andamento():
    return (
        models.Atendimento.TIPO_PEDIDO == RESERVA_DE_VAGA,
        models.Atendimento.ID_VAGA.is_not(None),
        models.Atendimento.STATUS_PEDIDO != STATUS_DECLINADO,
        models.Atendimento.STATUS_AGENDAMENTO != AGENDAMENTO_CONCLUIDO,
    )


def reservas_ativas(exceto_cpf: Optional[str] = None):
    """IDs de vaga presas por uma Reserva de Vaga ainda em andamento."""
    query = select(models.Atendimento.ID_VAGA).where(*_reserva_em_andamento())
    if exceto_cpf:
        query = query.where(models.Atendimento.CPF != exceto_cpf)
    return query


def find_reserva(db: Session, id_vaga: str, exceto: Optional[str] = None) -> Optional[models.Atendimento]:
    query = db.query(models.Atendimento).filter(*_reserva_em_andamento(), models.Atendimento.ID_VAGA == id_vaga)
    if exceto:
        query = query.filter(models.Atendimento.ID_ATENDIMENTO != exceto)
    return query.order_by(models.Atendimento.DATA_ENTRADA.asc()).first()


def ensure_vaga_livre(
    db: Session,
    id_vaga: Optional[str],
    cpf: Optional[str] = None,
    exceto: Optional[str] = None,
) -> models.Vaga:
    """Garante que a vaga existe, nao esta bloqueada, ocupada ou reservada.

    Uma vaga reservada so e aceita para o mesmo CPF da reserva (``cpf``).
    """
    if not id_vaga:
        raise ValidacaoError("Selecione uma vaga.")
    vaga = db.query(models.Vaga).filter(models.Vaga.ID_VAGA == id_vaga).first()
    if not vaga:
        raise NaoEncontradoError("Vaga nao encontrada.")
    if vaga.BLOQUEADA:
        raise RegraNegocioError("Vaga bloqueada.")
    ocupada = db.query(models.Contrato).filter(models.Contrato.ID_VAGA == id_vaga).first()
    if ocupada:
        raise RegraNegocioError("Vaga ja ocupada.")
    reserva = find_reserva(db, id_vaga, exceto=exceto)
    if reserva is not None and (not cpf or normalize_cpf(cpf) != reserva.CPF):
        raise RegraNegocioError(f"Vaga reservada pelo atendimento {reserva.ID_ATENDIMENTO}.")
    return vaga


def _prepare_create(db: Session, config: EntityConfig, clean: dict[str, Any]) -> None:
    if config.name == "Pessoa":
        if not validate_cpf(clean.get("CPF")):
            raise ValidacaoError("CPF invalido.")
        clean["CPF"] = normalize_cpf(clean["CPF"])
    elif config.name == "Contrato":
        ensure_vaga_livre(db, clean.get("ID_VAGA"), cpf=clean.get("CPF"))

    if not clean.get(config.pk):
        if config.manual_pk:
            raise ValidacaoError(f"Campo {config.pk} obrigatorio.")
        clean[config.pk] = generate_legacy_id(config.prefix)


def fetch_records(db: Session, config: EntityConfig, busca: Optional[str] = None, limit: int = 500) -> list:
    query = db.query(config.model)
    if busca and config.search_fields:
        term = f"%{busca.strip()}%"
        query = query.filter(or_(*[getattr(config.model, field).ilike(term) for field in config.search_fields]))
    return query.limit(limit).all()


def create_record(db: Session, session: SessionContext, config: EntityConfig, data: dict[str, Any]):
    if config.read_only or config.name in WORKFLOW_ONLY_ENTITIES:
        raise ValidacaoError(f"{config.name} nao pode ser criado diretamente.")
    clean = sanitize_data(config.model, data)
    _prepare_create(db, config, clean)
    if get_by_pk(db, config, clean[config.pk]) is not None:
        raise ConflitoError("Ja existe um registro com o mesmo identificador.")

    item = config.model(**clean)
    db.add(item)
    flush(db)
    record_event(db, session, AcaoAuditoria.CRIAR, config.name, clean[config.pk], valor_novo=model_to_dict(item))
    return item


def update_record(db: Session, session: SessionContext, config: EntityConfig, pk_value: Any, data: dict[str, Any]):
    if config.read_only or config.name in WORKFLOW_ONLY_ENTITIES:
        raise ValidacaoError(f"{config.name} nao pode ser editado diretamente.")
    item = get_by_pk(db, config, pk_value)
    if item is None:
        raise NaoEncontradoError("Registro nao encontrado.")

    antigo = model_to_dict(item)
    clean = sanitize_data(config.model, data)
    clean.pop(config.pk, None)
    if config.name == "Contrato" and clean.get("ID_VAGA") and clean["ID_VAGA"] != item.ID_VAGA:
        ensure_vaga_livre(db, clean["ID_VAGA"], cpf=clean.get("CPF") or item.CPF)
    for key, value in clean.items():
        setattr(item, key, value)
    flush(db)
    record_event(
        db, session, AcaoAuditoria.EDITAR, config.name, pk_value,
        valor_antigo=antigo, valor_novo=model_to_dict(item),
    )
    return item


def delete_record(db: Session, session: SessionContext, config: EntityConfig, pk_value: Any) -> None:
    if config.read_only or config.name in WORKFLOW_ONLY_ENTITIES:
        raise ValidacaoError(f"{config.name} nao pode ser excluido.")
    item = get_by_pk(db, config, pk_value)
    if item is None:
        raise NaoEncontradoError("Registro nao encontrado.")
    antigo = model_to_dict(item)
    db.delete(item)
    flush(db)
    record_event(db, session, AcaoAuditoria.EXCLUIR, config.name, pk_value, valor_antigo=antigo)
