import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, model_validator
from sqlalchemy.orm import Session

from simas.core.authorization import ensure_entity_access
from simas.core.errors import NaoEncontradoError
from simas.core.security import SessionContext, get_session
from simas.db import models
from simas.db.session import get_db
from simas.services import pessoal
from simas.services.crud import commit, update_record
from simas.services.entities import ENTITY_CONFIGS, get_by_pk
from simas.services.validation import normalize_cpf

logger = logging.getLogger("simas.pessoal")

router = APIRouter(tags=["Pessoal"])


class InativarServidorRequest(BaseModel):
    MATRICULA: str
    MOTIVO: str | None = None


class ArquivarContratoRequest(BaseModel):
    ID_CONTRATO: str | None = None
    CPF: str | None = None
    MOTIVO: str | None = None

    @model_validator(mode="after")
    def _check_target(self):
        if not self.ID_CONTRATO and not self.CPF:
            raise ValueError("Informe ID_CONTRATO ou CPF")
        return self


@router.post("/Servidor/inativar")
def inativar_servidor(
    payload: InativarServidorRequest,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    ensure_entity_access(session, "Servidor")
    inativo = pessoal.inativar_servidor(db, session, payload.MATRICULA, payload.MOTIVO)
    commit(db)
    return {
        "success": True,
        "message": f"Servidor {payload.MATRICULA} inativado.",
        "data": {"ID_INATIVO": inativo.ID_INATIVO},
    }


@router.post("/Contrato/arquivar")
def arquivar_contrato(
    payload: ArquivarContratoRequest,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    ensure_entity_access(session, "Contrato")
    if payload.ID_CONTRATO:
        contrato = get_by_pk(db, ENTITY_CONFIGS["Contrato"], payload.ID_CONTRATO)
        if contrato is None:
            raise NaoEncontradoError("Contrato nao encontrado.")
        historico = pessoal.arquivar_contrato(db, session, contrato, payload.MOTIVO)
    else:
        historico = pessoal.arquivar_contrato_por_cpf(db, session, normalize_cpf(payload.CPF), payload.MOTIVO)
    commit(db)
    return {
        "success": True,
        "message": f"Contrato {historico.ID_CONTRATO} arquivado.",
        "data": {"ID_HISTORICO_CONTRATO": historico.ID_HISTORICO_CONTRATO},
    }


@router.post("/Vaga/{id_vaga}/toggle-lock")
def toggle_vaga_lock(
    id_vaga: str,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    ensure_entity_access(session, "Vaga")
    vaga = db.query(models.Vaga).filter(models.Vaga.ID_VAGA == id_vaga).first()
    if vaga is None:
        raise NaoEncontradoError("Vaga nao encontrada.")
    vaga = update_record(db, session, ENTITY_CONFIGS["Vaga"], id_vaga, {"BLOQUEADA": not vaga.BLOQUEADA})
    commit(db)
    logger.info("vaga %s bloqueada=%s usuario=%s", id_vaga, vaga.BLOQUEADA, session.usuario)
    return {
        "success": True,
        "message": "Vaga bloqueada." if vaga.BLOQUEADA else "Vaga desbloqueada.",
        "data": {"ID_VAGA": id_vaga, "BLOQUEADA": vaga.BLOQUEADA},
    }
