import os

from simas.core.authorization import PAPEL_COORDENACAO
from simas.core.security import get_password_hash
from simas.db import models
from simas.db.init_db import init_schema
from simas.db.session import SessionLocal, engine


def main() -> None:
    usuario = os.getenv("SIMAS_ADMIN_USUARIO")
    senha = os.getenv("SIMAS_ADMIN_SENHA")
    if not usuario or not senha:
        raise SystemExit("SIMAS_ADMIN_USUARIO e SIMAS_ADMIN_SENHA precisam estar definidos.")
    usuario = usuario.strip().lower()

    init_schema(engine)
    db = SessionLocal()
    try:
        user = db.query(models.Usuario).filter(models.Usuario.usuario == usuario).first()
        if not user:
            user = models.Usuario(usuario=usuario, nome="Coordenacao", papel=PAPEL_COORDENACAO)
            db.add(user)
        user.senha = get_password_hash(senha)
        user.papel = PAPEL_COORDENACAO
        user.is_gerente = True
        user.ativo = True
        db.commit()
        print(f"Usuario {user.usuario} ativo como {user.papel}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
