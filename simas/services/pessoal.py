"""Movimentacoes de pessoal que tiram um registro da tabela viva.

Inativar um servidor e arquivar um contrato ou alocacao copiam o registro
para a tabela de historico correspondente e removem o original. O log de
auditoria guarda o registro original em ``VALOR_ANTIGO`` e a copia
arquivada em ``VALOR_NOVO``, o que permite a restauracao posterior.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from simas.audit.service import AcaoAuditoria, model_to_dict, record_event
from simas.core.errors import NaoEncontradoError
from simas.core.security import SessionContext
from simas.db import models
from simas.services.crud import flush, update_record
from simas.services.entities import ENTITY_CONFIGS
from simas.services.validation import format_cpf, generate_legacy_id

logger = logging.getLogger("simas.pessoal")


def find_contrato_ativo(db: Session, cpf: str) -> Optional[models.Contrato]:
    return (
        db.query(models.Contrato)
        .filter(models.Contrato.CPF == cpf)
        .order_by(models.Contrato.DATA_DO_CONTRATO.desc())
        .first()
    )


def find_servidor_ativo(db: Session, cpf: str) -> Optional[models.Servidor]:
    return (
        db.query(models.Servidor)
        .filter(models.Servidor.CPF == cpf)
        .order_by(models.Servidor.DATA_MATRICULA.desc())
        .first()
    )


def arquivar_contrato(
    db: Session, session: SessionContext, contrato: models.Contrato, motivo: Optional[str]
) -> models.ContratoHistorico:
    antigo = model_to_dict(contrato)
    historico = models.ContratoHistorico(
        ID_HISTORICO_CONTRATO=generate_legacy_id("HCT"),
        ID_CONTRATO=contrato.ID_CONTRATO,
        ID_VAGA=contrato.ID_VAGA,
        CPF=contrato.CPF,
        DATA_DO_CONTRATO=contrato.DATA_DO_CONTRATO,
        ID_FUNCAO=contrato.ID_FUNCAO,
        DATA_ARQUIVAMENTO=datetime.utcnow(),
        MOTIVO_ARQUIVAMENTO=motivo,
    )
    db.add(historico)
    db.delete(contrato)
    flush(db)
    record_event(
        db, session, AcaoAuditoria.ARQUIVAR, "Contrato", contrato.ID_CONTRATO,
        valor_antigo=antigo, valor_novo=model_to_dict(historico),
    )
    logger.info("contrato arquivado id=%s motivo=%s", contrato.ID_CONTRATO, motivo)
    return historico


def arquivar_contrato_por_cpf(
    db: Session, session: SessionContext, cpf: str, motivo: Optional[str]
) -> models.ContratoHistorico:
    contrato = find_contrato_ativo(db, cpf)
    if not contrato:
        raise NaoEncontradoError(f"O CPF {format_cpf(cpf)} nao possui um contrato ativo.")
    return arquivar_contrato(db, session, contrato, motivo)


def arquivar_alocacao(
    db: Session, session: SessionContext, alocacao: models.Alocacao
) -> models.AlocacaoHistorico:
    antigo = model_to_dict(alocacao)
    historico = models.AlocacaoHistorico(
        ID_HISTORICO_ALOCACAO=generate_legacy_id("HAL"),
        ID_ALOCACAO=alocacao.ID_ALOCACAO,
        MATRICULA=alocacao.MATRICULA,
        ID_LOTACAO=alocacao.ID_LOTACAO,
        ID_FUNCAO=alocacao.ID_FUNCAO,
        DATA_INICIO=alocacao.DATA_INICIO,
        DATA_ARQUIVAMENTO=datetime.utcnow(),
    )
    db.add(historico)
    db.delete(alocacao)
    flush(db)
    record_event(
        db, session, AcaoAuditoria.ARQUIVAR, "Alocacao", alocacao.ID_ALOCACAO,
        valor_antigo=antigo, valor_novo=model_to_dict(historico),
    )
    return historico


def inativar_servidor(
    db: Session, session: SessionContext, matricula: str, motivo: Optional[str]
) -> models.Inativo:
    servidor = db.query(models.Servidor).filter(models.Servidor.MATRICULA == matricula).first()
    if not servidor:
        raise NaoEncontradoError("Servidor nao encontrado.")

    alocacoes = db.query(models.Alocacao).filter(models.Alocacao.MATRICULA == matricula).all()
    for alocacao in alocacoes:
        arquivar_alocacao(db, session, alocacao)

    nomeacoes = (
        db.query(models.Nomeacao)
        .filter(models.Nomeacao.MATRICULA == matricula, models.Nomeacao.STATUS == "Ativo")
        .all()
    )
    for nomeacao in nomeacoes:
        update_record(db, session, ENTITY_CONFIGS["Nomeacao"], nomeacao.ID_NOMEACAO, {"STATUS": "Inativo"})

    antigo = model_to_dict(servidor)
    inativo = models.Inativo(
        ID_INATIVO=generate_legacy_id("INA"),
        MATRICULA_ORIGINAL=servidor.MATRICULA,
        CPF=servidor.CPF,
        ID_CARGO=servidor.ID_CARGO,
        DATA_MATRICULA=servidor.DATA_MATRICULA,
        VINCULO_ANTERIOR=servidor.VINCULO,
        PREFIXO_ANTERIOR=servidor.PREFIXO_MATRICULA,
        DATA_INATIVACAO=datetime.utcnow(),
        MOTIVO_INATIVACAO=motivo,
    )
    db.add(inativo)
    db.delete(servidor)
    flush(db)
    record_event(
        db, session, AcaoAuditoria.INATIVAR, "Servidor", matricula,
        valor_antigo=antigo, valor_novo=model_to_dict(inativo),
    )
    logger.info("servidor inativado matricula=%s motivo=%s", matricula, motivo)
    return inativo
