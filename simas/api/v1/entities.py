"""CRUD generico das tabelas cadastrais.

Este router precisa ser incluido por ultimo: as rotas ``/{entity}`` casam
com qualquer caminho de um segmento.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from simas.audit.service import model_to_dict
from simas.core.authorization import ensure_audit_access, ensure_entity_access
from simas.core.errors import NaoEncontradoError
from simas.core.security import SessionContext, get_session
from simas.db.session import get_db
from simas.services import crud
from simas.services.entities import EntityConfig, get_by_pk, get_entity_config

router = APIRouter(tags=["Entidades"])


def _config_for(entity: str, session: SessionContext) -> EntityConfig:
    config = get_entity_config(entity)
    ensure_entity_access(session, config.name)
    if config.name == "Auditoria":
        ensure_audit_access(session)
    return config


@router.get("/{entity}")
def list_records(
    entity: str,
    busca: str | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    config = _config_for(entity, session)
    items = crud.fetch_records(db, config, busca=busca, limit=limit)
    return {"items": [model_to_dict(item) for item in items]}


@router.get("/{entity}/{pk}")
def get_record(
    entity: str,
    pk: str,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    config = _config_for(entity, session)
    item = get_by_pk(db, config, pk)
    if item is None:
        raise NaoEncontradoError("Registro nao encontrado.")
    return model_to_dict(item)


@router.post("/{entity}")
def create_record(
    entity: str,
    payload: dict[str, Any] = Body(...),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    config = _config_for(entity, session)
    item = crud.create_record(db, session, config, payload)
    crud.commit(db)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": f"{config.name} criado.",
            "data": {config.pk: getattr(item, config.pk)},
        },
    )


@router.put("/{entity}/{pk}")
def update_record(
    entity: str,
    pk: str,
    payload: dict[str, Any] = Body(...),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    config = _config_for(entity, session)
    crud.update_record(db, session, config, pk, payload)
    crud.commit(db)
    return {"success": True, "message": f"{config.name} atualizado."}


@router.delete("/{entity}/{pk}")
def delete_record(
    entity: str,
    pk: str,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
):
    config = _config_for(entity, session)
    crud.delete_record(db, session, config, pk)
    crud.commit(db)
    return {"success": True, "message": f"{config.name} excluido."}
