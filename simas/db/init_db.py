import logging
import os
from typing import Optional

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from simas.core.authorization import PAPEL_COORDENACAO, PAPEL_GDEP, PAPEL_GGT, PAPEL_GPRGP
from simas.core.config import settings
from simas.core.security import get_password_hash
from simas.db import models
from simas.db.session import SessionLocal

logger = logging.getLogger("simas.db")

RESET_DEFAULT_PASSWORDS = os.getenv("RESET_DEFAULT_PASSWORDS", "").strip().lower() in {"1", "true", "yes"}

DEFAULT_USERS = [
    ("admin", "Coordenacao", PAPEL_COORDENACAO, True),
    ("ggt", "Gerencia GGT", PAPEL_GGT, True),
    ("gprgp", "Gerencia GPRGP", PAPEL_GPRGP, True),
    ("gdep", "Gerencia GDEP", PAPEL_GDEP, True),
]

DEFAULT_FUNCOES = [("FUN00000001", "Agente Administrativo"), ("FUN00000002", "Assistente Social")]
DEFAULT_LOTACOES = [("LOT00000001", "Secretaria de Administracao")]
DEFAULT_CARGOS = [("CRG00000001", "Analista", "Superior")]

# valor para linhas antigas quando a coluna e criada depois
VALORES_INICIAIS = {"VERSAO": 1}


def _ensure_missing_columns(engine) -> None:
    if engine.dialect.name != "sqlite":
        return
    inspector = inspect(engine)
    preparer = engine.dialect.identifier_preparer
    existing_tables = set(inspector.get_table_names())
    for table_name, table in models.Base.metadata.tables.items():
        if table_name not in existing_tables:
            continue
        existing_columns = {col["name"] for col in inspector.get_columns(table_name)}
        for column in table.columns:
            if column.name in existing_columns:
                continue
            col_type = column.type.compile(dialect=engine.dialect)
            with engine.begin() as connection:
                connection.execute(
                    text(
                        f"ALTER TABLE {preparer.quote(table_name)} "
                        f"ADD COLUMN {preparer.quote(column.name)} {col_type}"
                    )
                )
            logger.info("coluna adicionada %s.%s", table_name, column.name)
            if column.name in VALORES_INICIAIS:
                column_name = preparer.quote(column.name)
                with engine.begin() as connection:
                    connection.execute(
                        text(
                            f"UPDATE {preparer.quote(table_name)} SET {column_name} = :valor "
                            f"WHERE {column_name} IS NULL"
                        ),
                        {"valor": VALORES_INICIAIS[column.name]},
                    )


def init_schema(engine) -> None:
    models.Base.metadata.create_all(bind=engine)
    _ensure_missing_columns(engine)


def _seed_users(db: Session) -> None:
    for usuario, nome, papel, is_gerente in DEFAULT_USERS:
        user = db.query(models.Usuario).filter(models.Usuario.usuario == usuario).first()
        if not user:
            db.add(
                models.Usuario(
                    usuario=usuario,
                    nome=nome,
                    senha=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
                    papel=papel,
                    is_gerente=is_gerente,
                    ativo=True,
                )
            )
        elif RESET_DEFAULT_PASSWORDS or not user.senha:
            user.senha = get_password_hash(settings.DEFAULT_ADMIN_PASSWORD)


def _seed_lookups(db: Session) -> None:
    if db.query(models.Funcao).count() == 0:
        db.add_all([models.Funcao(ID_FUNCAO=pk, FUNCAO=nome) for pk, nome in DEFAULT_FUNCOES])
    if db.query(models.Lotacao).count() == 0:
        db.add_all([models.Lotacao(ID_LOTACAO=pk, LOTACAO=nome) for pk, nome in DEFAULT_LOTACOES])
    if db.query(models.Cargo).count() == 0:
        db.add_all(
            [
                models.Cargo(ID_CARGO=pk, NOME_CARGO=nome, ESCOLARIDADE_CARGO=escolaridade)
                for pk, nome, escolaridade in DEFAULT_CARGOS
            ]
        )


def seed_initial_data(db: Optional[Session] = None) -> None:
    owns_session = db is None
    db = db or SessionLocal()
    try:
        _seed_users(db)
        _seed_lookups(db)
        db.commit()
        logger.info("seed ok: usuarios %s", ", ".join(user[0] for user in DEFAULT_USERS))
    finally:
        if owns_session:
            db.close()
