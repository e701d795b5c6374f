import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from simas.core.authorization import can_view_report
from simas.core.security import SessionContext, get_session
from simas.db.session import get_db
from simas.reports.service import REPORTS

logger = logging.getLogger("simas.reports")

router = APIRouter(tags=["Reports"])


@router.get("/reports/{report_id}")
def get_report(
    report_id: str,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    builder = REPORTS.get(report_id)
    if builder is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Relatorio nao encontrado")
    if not can_view_report(session, report_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Relatorio nao permitido para o perfil")
    try:
        return {"success": True, "data": builder(db, session)}
    except Exception:
        logger.exception("Erro ao gerar relatorio %s", report_id)
        return JSONResponse(status_code=500, content={"success": False, "message": "Erro ao gerar relatorio."})
