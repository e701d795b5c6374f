"""Desfaz uma operacao registrada na auditoria.

A restauracao nunca altera o log original. Quando da certo, grava um novo
registro ``RESTAURAR`` apontando para o log desfeito em ``ID_LOG_ORIGEM``.
Quando falha, a transacao e descartada e nenhum log e gravado.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from simas.audit.service import AcaoAuditoria, get_event, model_to_dict, record_event
from simas.core.errors import (
    ConflitoError,
    NaoEncontradoError,
    OperationResult,
    RestauracaoError,
    SimasError,
)
from simas.core.security import SessionContext
from simas.db import models
from simas.services.crud import commit, flush
from simas.services.entities import EntityConfig, get_by_pk, get_entity_config, sanitize_data

logger = logging.getLogger("simas.audit.restore")


@dataclass(frozen=True)
class Arquivo:
    model: type
    pk: str
    chave_original: str
    ordem: str


ARQUIVOS = {
    "Contrato": Arquivo(models.ContratoHistorico, "ID_HISTORICO_CONTRATO", "ID_CONTRATO", "DATA_ARQUIVAMENTO"),
    "Alocacao": Arquivo(models.AlocacaoHistorico, "ID_HISTORICO_ALOCACAO", "ID_ALOCACAO", "DATA_ARQUIVAMENTO"),
    "Servidor": Arquivo(models.Inativo, "ID_INATIVO", "MATRICULA_ORIGINAL", "DATA_INATIVACAO"),
}


def already_restored(db: Session, id_log: str) -> bool:
    return (
        db.query(models.Auditoria)
        .filter(
            models.Auditoria.ACAO == AcaoAuditoria.RESTAURAR.value,
            models.Auditoria.ID_LOG_ORIGEM == id_log,
        )
        .first()
        is not None
    )


def _recreate(db: Session, config: EntityConfig, snapshot: Optional[dict[str, Any]], id_registro: str):
    if not snapshot:
        raise RestauracaoError("O log nao possui os dados anteriores do registro.")
    if get_by_pk(db, config, id_registro) is not None:
        raise ConflitoError(f"Ja existe um registro {id_registro} em {config.name}.")
    # chaves antigas que nao sao mais colunas sao descartadas
    item = config.model(**sanitize_data(config.model, snapshot))
    db.add(item)
    return item


def _undo_criar(db, config, event):
    item = get_by_pk(db, config, event.ID_REGISTRO_AFETADO)
    if item is None:
        raise RestauracaoError("O registro criado nao existe mais.")
    antigo = model_to_dict(item)
    db.delete(item)
    flush(db)
    return antigo, None


def _undo_excluir(db, config, event):
    item = _recreate(db, config, event.VALOR_ANTIGO, event.ID_REGISTRO_AFETADO)
    flush(db)
    return None, model_to_dict(item)


def _find_archived(db: Session, arquivo: Arquivo, event: models.Auditoria):
    snapshot = event.VALOR_NOVO or {}
    if snapshot.get(arquivo.pk):
        return db.query(arquivo.model).filter(getattr(arquivo.model, arquivo.pk) == snapshot[arquivo.pk]).first()
    # logs sem a copia arquivada: usa o arquivamento mais recente do registro
    return (
        db.query(arquivo.model)
        .filter(getattr(arquivo.model, arquivo.chave_original) == event.ID_REGISTRO_AFETADO)
        .order_by(getattr(arquivo.model, arquivo.ordem).desc())
        .first()
    )


def _undo_arquivamento(db, config, event):
    arquivo = ARQUIVOS.get(config.name)
    if arquivo is None:
        raise RestauracaoError(f"{config.name} nao possui tabela de arquivo.")
    arquivado = _find_archived(db, arquivo, event)
    if arquivado is None:
        raise RestauracaoError("O registro arquivado nao foi encontrado.")
    antigo = model_to_dict(arquivado)
    item = _recreate(db, config, event.VALOR_ANTIGO, event.ID_REGISTRO_AFETADO)
    db.delete(arquivado)
    flush(db)
    return antigo, model_to_dict(item)


def _undo_editar(db, config, event):
    item = get_by_pk(db, config, event.ID_REGISTRO_AFETADO)
    if item is None:
        raise RestauracaoError("O registro editado nao existe mais.")
    valor_antigo = event.VALOR_ANTIGO or {}
    valor_novo = event.VALOR_NOVO or {}
    atual = model_to_dict(item)

    alterados = [
        key for key in valor_antigo
        if key in atual and key != config.pk and valor_antigo.get(key) != valor_novo.get(key)
    ]
    divergentes = [key for key in alterados if atual.get(key) != valor_novo.get(key)]
    if divergentes:
        raise ConflitoError(
            f"O registro foi alterado depois deste log ({', '.join(sorted(divergentes))}). "
            "Restaure os logs mais recentes primeiro."
        )

    for key, value in sanitize_data(config.model, {key: valor_antigo[key] for key in alterados}).items():
        setattr(item, key, value)
    flush(db)
    return atual, model_to_dict(item)


UNDO = {
    AcaoAuditoria.CRIAR.value: _undo_criar,
    AcaoAuditoria.EXCLUIR.value: _undo_excluir,
    AcaoAuditoria.ARQUIVAR.value: _undo_arquivamento,
    AcaoAuditoria.INATIVAR.value: _undo_arquivamento,
    AcaoAuditoria.EDITAR.value: _undo_editar,
}


def restore_event(db: Session, session: SessionContext, id_log: str) -> OperationResult:
    try:
        event = get_event(db, id_log)
        if event is None:
            raise NaoEncontradoError("Log de auditoria nao encontrado.")
        if event.ACAO == AcaoAuditoria.RESTAURAR.value:
            raise RestauracaoError("Registros de restauracao nao podem ser restaurados.")
        if already_restored(db, id_log):
            raise ConflitoError("Este log ja foi restaurado.")
        undo = UNDO.get(event.ACAO)
        if undo is None:
            raise RestauracaoError(f"Acao '{event.ACAO}' nao pode ser restaurada.")

        config = get_entity_config(event.TABELA_AFETADA)
        antes, depois = undo(db, config, event)
        record_event(
            db, session, AcaoAuditoria.RESTAURAR, config.name, event.ID_REGISTRO_AFETADO,
            valor_antigo=antes, valor_novo=depois, id_log_origem=id_log,
        )
        commit(db)
    except SimasError as exc:
        db.rollback()
        logger.warning("restauracao falhou log=%s erro=%s", id_log, exc.message)
        return OperationResult.from_error(exc)

    logger.info(
        "log restaurado log=%s acao=%s tabela=%s registro=%s usuario=%s",
        id_log,
        event.ACAO,
        config.name,
        event.ID_REGISTRO_AFETADO,
        session.usuario,
    )
    return OperationResult.ok(f"Operacao {event.ACAO} em {config.name} desfeita com sucesso.")
