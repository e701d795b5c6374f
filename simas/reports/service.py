from collections import Counter
from datetime import date
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from simas.core.security import SessionContext
from simas.db import models
from simas.workflow.kanban import BUCKET_TITLES, build_board, today_utc
from simas.workflow.service import list_atendimentos


def painel_atendimentos(db: Session, session: SessionContext, today: Optional[date] = None) -> dict[str, Any]:
    today = today or today_utc()
    atendimentos = list_atendimentos(db, session, limit=100000)
    board = build_board(atendimentos, today)
    por_tipo = Counter(item.TIPO_PEDIDO for item in atendimentos)
    return {
        "total": len(atendimentos),
        "por_coluna": [
            {"id": bucket.value, "title": BUCKET_TITLES[bucket], "total": len(items)}
            for bucket, items in board.items()
        ],
        "por_tipo_pedido": [
            {"TIPO_PEDIDO": tipo, "total": total} for tipo, total in por_tipo.most_common()
        ],
    }


def atividade_usuarios(db: Session) -> dict[str, Any]:
    rows = (
        db.query(models.Auditoria.USUARIO, models.Auditoria.ACAO, func.count(models.Auditoria.ID_LOG))
        .group_by(models.Auditoria.USUARIO, models.Auditoria.ACAO)
        .order_by(models.Auditoria.USUARIO.asc(), models.Auditoria.ACAO.asc())
        .all()
    )
    usuarios: dict[str, dict[str, Any]] = {}
    for usuario, acao, total in rows:
        entry = usuarios.setdefault(usuario, {"USUARIO": usuario, "total": 0, "por_acao": {}})
        entry["por_acao"][acao] = total
        entry["total"] += total
    return {"usuarios": sorted(usuarios.values(), key=lambda item: item["total"], reverse=True)}


REPORTS = {
    "painelAtendimentos": lambda db, session: painel_atendimentos(db, session),
    "atividadeUsuarios": lambda db, session: atividade_usuarios(db),
}
