import logging
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy.orm import Session

from simas.core.security import SessionContext
from simas.db import models

logger = logging.getLogger("simas.audit")


class AcaoAuditoria(str, Enum):
    CRIAR = "CRIAR"
    EDITAR = "EDITAR"
    EXCLUIR = "EXCLUIR"
    ARQUIVAR = "ARQUIVAR"
    INATIVAR = "INATIVAR"
    RESTAURAR = "RESTAURAR"


def model_to_dict(model: Any) -> Optional[dict]:
    if model is None:
        return None
    version_column = model.__mapper__.version_id_col
    payload = {}
    for column in model.__table__.columns:
        if version_column is not None and column.name == version_column.name:
            continue
        value = getattr(model, column.name)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        payload[column.name] = value
    return payload


def new_log_id() -> str:
    return f"LOG{uuid.uuid4().hex[:16].upper()}"


def record_event(
    db: Session,
    session: SessionContext,
    acao: AcaoAuditoria,
    tabela: str,
    id_registro: Any,
    valor_antigo: Optional[dict] = None,
    valor_novo: Optional[dict] = None,
    id_log_origem: Optional[str] = None,
) -> models.Auditoria:
    """Adiciona um registro de auditoria na transacao corrente (sem commit)."""
    event = models.Auditoria(
        ID_LOG=new_log_id(),
        DATA_HORA=datetime.utcnow(),
        USUARIO=session.usuario,
        ACAO=AcaoAuditoria(acao).value,
        TABELA_AFETADA=tabela,
        ID_REGISTRO_AFETADO=str(id_registro),
        VALOR_ANTIGO=valor_antigo,
        VALOR_NOVO=valor_novo,
        ID_LOG_ORIGEM=id_log_origem,
    )
    db.add(event)
    logger.info(
        "audit acao=%s tabela=%s registro=%s usuario=%s",
        event.ACAO,
        tabela,
        event.ID_REGISTRO_AFETADO,
        session.usuario,
    )
    return event


def get_event(db: Session, id_log: str) -> Optional[models.Auditoria]:
    return db.query(models.Auditoria).filter(models.Auditoria.ID_LOG == id_log).first()


def list_events(
    db: Session,
    usuario: Optional[str] = None,
    acao: Optional[str] = None,
    tabela: Optional[str] = None,
    id_registro: Optional[str] = None,
    limit: int = 500,
) -> list[models.Auditoria]:
    query = db.query(models.Auditoria)
    if usuario:
        query = query.filter(models.Auditoria.USUARIO == usuario)
    if acao:
        query = query.filter(models.Auditoria.ACAO == acao)
    if tabela:
        query = query.filter(models.Auditoria.TABELA_AFETADA == tabela)
    if id_registro:
        query = query.filter(models.Auditoria.ID_REGISTRO_AFETADO == id_registro)
    return query.order_by(models.Auditoria.DATA_HORA.desc()).limit(limit).all()


def serialize_event(event: models.Auditoria) -> dict:
    return {
        "ID_LOG": event.ID_LOG,
        "DATA_HORA": event.DATA_HORA,
        "USUARIO": event.USUARIO,
        "ACAO": event.ACAO,
        "TABELA_AFETADA": event.TABELA_AFETADA,
        "ID_REGISTRO_AFETADO": event.ID_REGISTRO_AFETADO,
        "VALOR_ANTIGO": event.VALOR_ANTIGO,
        "VALOR_NOVO": event.VALOR_NOVO,
        "ID_LOG_ORIGEM": event.ID_LOG_ORIGEM,
    }
