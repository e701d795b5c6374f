from typing import Any

from fastapi import APIRouter, Depends, Header, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from simas.core.authorization import (
    allowed_justificativas,
    allowed_remetentes,
    allowed_tipos_pedido,
    ensure_entity_access,
)
from simas.core.security import SessionContext, get_session
from simas.db.session import get_db
from simas.workflow import executor, service
from simas.workflow.kanban import BUCKET_TITLES, build_board, today_utc

router = APIRouter(tags=["Atendimentos"])


class AtendimentoCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    CPF: str
    TIPO_PEDIDO: str
    REMETENTE: str | None = None
    RESPONSAVEL: str | None = None
    DESCRICAO: str | None = None
    STATUS_PEDIDO: str | None = None
    JUSTIFICATIVA: str | None = None
    DATA_AGENDAMENTO: str | None = None
    ID_VAGA: str | None = None
    CHAVE_IDEMPOTENCIA: str | None = None


class AtendimentoUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    TIPO_PEDIDO: str | None = None
    REMETENTE: str | None = None
    RESPONSAVEL: str | None = None
    DESCRICAO: str | None = None
    STATUS_PEDIDO: str | None = None
    JUSTIFICATIVA: str | None = None
    DATA_AGENDAMENTO: str | None = None
    ID_VAGA: str | None = None
    VERSAO: int | None = None


class ExecucaoRequest(BaseModel):
    dados: dict[str, Any] = Field(default_factory=dict)
    VERSAO: int | None = None


def _require_access(session: SessionContext = Depends(get_session)) -> SessionContext:
    ensure_entity_access(session, "Atendimento")
    return session


@router.get("/Atendimento")
def list_atendimentos(
    status_pedido: str | None = Query(default=None),
    cpf: str | None = Query(default=None),
    session: SessionContext = Depends(_require_access),
    db: Session = Depends(get_db),
):
    today = today_utc()
    items = service.list_atendimentos(db, session, status_pedido=status_pedido, cpf=cpf)
    return {"items": [service.serialize_atendimento(item, today) for item in items]}


@router.get("/Atendimento/opcoes")
def get_opcoes(session: SessionContext = Depends(_require_access)):
    return {
        "tipos_pedido": allowed_tipos_pedido(session.papel),
        "justificativas": allowed_justificativas(session.papel),
        "remetentes": allowed_remetentes(session.papel),
    }


@router.get("/Atendimento/kanban")
def get_kanban(
    session: SessionContext = Depends(_require_access),
    db: Session = Depends(get_db),
):
    today = today_utc()
    board = build_board(service.list_atendimentos(db, session), today)
    return {
        "columns": [
            {
                "id": bucket.value,
                "title": BUCKET_TITLES[bucket],
                "items": [service.serialize_atendimento(item, today) for item in items],
            }
            for bucket, items in board.items()
        ]
    }


@router.get("/Atendimento/{id_atendimento}/contexto")
def get_contexto(
    id_atendimento: str,
    session: SessionContext = Depends(_require_access),
    db: Session = Depends(get_db),
):
    return service.build_action_context(db, session, id_atendimento)


@router.post("/Atendimento")
def create_atendimento(
    payload: AtendimentoCreate,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    session: SessionContext = Depends(_require_access),
    db: Session = Depends(get_db),
):
    atendimento, criado = service.create_atendimento(
        db, session, payload.model_dump(exclude_none=True), chave_idempotencia=idempotency_key
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED if criado else status.HTTP_200_OK,
        content={
            "success": True,
            "message": "Atendimento registrado." if criado else "Atendimento ja registrado com esta chave.",
            "data": service.serialize_atendimento(atendimento),
        },
    )


@router.put("/Atendimento/{id_atendimento}")
def update_atendimento(
    id_atendimento: str,
    payload: AtendimentoUpdate,
    session: SessionContext = Depends(_require_access),
    db: Session = Depends(get_db),
):
    data = payload.model_dump(exclude_unset=True)
    versao = data.pop("VERSAO", None)
    atendimento = service.update_atendimento(db, session, id_atendimento, data, versao=versao)
    return {
        "success": True,
        "message": "Atendimento atualizado.",
        "data": service.serialize_atendimento(atendimento),
    }


@router.post("/Atendimento/{id_atendimento}/executar")
def execute_atendimento(
    id_atendimento: str,
    payload: ExecucaoRequest,
    session: SessionContext = Depends(_require_access),
    db: Session = Depends(get_db),
):
    result = executor.execute_action(db, session, id_atendimento, payload.dados, versao=payload.VERSAO)
    return JSONResponse(status_code=result.status_code, content=result.as_response())
