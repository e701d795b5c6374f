from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from simas.audit.restore import restore_event
from simas.audit.service import list_events, serialize_event
from simas.core.authorization import ensure_audit_access
from simas.core.security import SessionContext, get_session
from simas.db.session import get_db

router = APIRouter(tags=["Auditoria"])


@router.get("/Auditoria")
def get_auditoria(
    usuario: str | None = Query(default=None),
    acao: str | None = Query(default=None),
    tabela: str | None = Query(default=None),
    id_registro: str | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    ensure_audit_access(session)
    events = list_events(db, usuario=usuario, acao=acao, tabela=tabela, id_registro=id_registro, limit=limit)
    return {"items": [serialize_event(event) for event in events]}


@router.post("/Auditoria/{id_log}/restore")
def restore_auditoria(
    id_log: str,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    ensure_audit_access(session)
    result = restore_event(db, session, id_log)
    return JSONResponse(status_code=result.status_code, content=result.as_response())
