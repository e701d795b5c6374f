from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from simas.core.authorization import PERMISSOES_POR_PAPEL, REPORT_PERMISSIONS, allowed_tipos_pedido
from simas.core.security import SessionContext, create_access_token, get_session, verify_password
from simas.db import models
from simas.db.session import get_db

router = APIRouter(tags=["Auth"])


class LoginRequest(BaseModel):
    usuario: str
    senha: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    papel: str
    is_gerente: bool = False


def _authenticate(db: Session, usuario: str, senha: str) -> models.Usuario:
    normalized = usuario.strip().lower()
    user = db.query(models.Usuario).filter(func.lower(models.Usuario.usuario) == normalized).first()
    if not user or not verify_password(senha, user.senha):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuario ou senha invalidos"
        )
    if not user.ativo:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Usuario inativo")
    return user


def _token_response(user: models.Usuario) -> dict:
    # o papel no token e apenas informativo; as rotas consultam o banco
    token = create_access_token({"sub": user.usuario, "papel": user.papel})
    return {
        "access_token": token,
        "token_type": "bearer",
        "papel": user.papel,
        "is_gerente": bool(user.is_gerente),
    }


@router.post("/auth/login", response_model=LoginResponse, summary="Login JSON (frontend)")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """
    Uso tipico via frontend:
    - POST /api/auth/login
    - body: {"usuario": "...", "senha": "..."}
    """
    return _token_response(_authenticate(db, payload.usuario, payload.senha))


@router.post(
    "/auth/token",
    response_model=LoginResponse,
    summary="Login para Swagger (OAuth2PasswordBearer)",
)
def login_swagger(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    return _token_response(_authenticate(db, form_data.username, form_data.password))


@router.get("/auth/me")
def me(session: SessionContext = Depends(get_session)):
    return {
        "usuario": session.usuario,
        "nome": session.nome,
        "papel": session.papel,
        "is_gerente": session.is_gerente,
        "permissoes": PERMISSOES_POR_PAPEL.get(session.papel, []),
        "relatorios": REPORT_PERMISSIONS.get(session.papel, []),
        "tipos_pedido": allowed_tipos_pedido(session.papel),
    }
