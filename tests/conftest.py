from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from simas.core.authorization import PAPEL_COORDENACAO, PAPEL_GDEP, PAPEL_GGT, PAPEL_GPRGP
from simas.core.security import SessionContext, create_access_token, get_password_hash
from simas.db import models
from simas.db.session import enable_sqlite_foreign_keys, get_db

CPF_CONTRATADO = "52998224725"
CPF_SERVIDOR = "11144477735"
CPF_SEM_VINCULO = "12345678909"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    models.Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture()
def coordenacao():
    return SessionContext(usuario="admin", papel=PAPEL_COORDENACAO, is_gerente=True)


@pytest.fixture()
def ggt():
    return SessionContext(usuario="ggt", papel=PAPEL_GGT)


@pytest.fixture()
def gprgp():
    return SessionContext(usuario="gprgp", papel=PAPEL_GPRGP)


@pytest.fixture()
def cadastro(db_session):
    """Pessoas, um contratado em VAG1, um servidor MAT1 e tabelas de apoio."""
    db = db_session
    db.add_all(
        [
            models.Pessoa(CPF=CPF_CONTRATADO, NOME="Maria Contratada"),
            models.Pessoa(CPF=CPF_SERVIDOR, NOME="Joao Servidor"),
            models.Pessoa(CPF=CPF_SEM_VINCULO, NOME="Ana Sem Vinculo"),
            models.Lotacao(ID_LOTACAO="LOT1", LOTACAO="Secretaria"),
            models.Lotacao(ID_LOTACAO="LOT2", LOTACAO="Gabinete"),
            models.Funcao(ID_FUNCAO="FUN1", FUNCAO="Agente"),
            models.Funcao(ID_FUNCAO="FUN2", FUNCAO="Assistente"),
            models.Cargo(ID_CARGO="CRG1", NOME_CARGO="Analista", SALARIO=3500.0),
            models.CargoComissionado(ID_CARGO_COMISSIONADO="CCM1", NOME="Diretor"),
        ]
    )
    db.flush()
    db.add_all(
        [
            models.Vaga(ID_VAGA="VAG1", ID_LOTACAO="LOT1", ID_CARGO="CRG1"),
            models.Vaga(ID_VAGA="VAG2", ID_LOTACAO="LOT1", ID_CARGO="CRG1"),
            models.Vaga(ID_VAGA="VAG3", ID_LOTACAO="LOT2", ID_CARGO="CRG1", BLOQUEADA=True),
            models.Servidor(
                MATRICULA="MAT1",
                PREFIXO_MATRICULA="10",
                CPF=CPF_SERVIDOR,
                ID_CARGO="CRG1",
                DATA_MATRICULA=date(2020, 3, 1),
                VINCULO="Efetivo",
            ),
        ]
    )
    db.flush()
    db.add_all(
        [
            models.Contrato(
                ID_CONTRATO="CTT1", ID_VAGA="VAG1", CPF=CPF_CONTRATADO,
                DATA_DO_CONTRATO=date(2023, 1, 2), ID_FUNCAO="FUN1",
            ),
            models.Alocacao(
                ID_ALOCACAO="ALC1", MATRICULA="MAT1", ID_LOTACAO="LOT1",
                ID_FUNCAO="FUN1", DATA_INICIO=date(2020, 3, 1),
            ),
            models.Nomeacao(
                ID_NOMEACAO="NOM1", MATRICULA="MAT1", ID_CARGO_COMISSIONADO="CCM1",
                DATA_DA_NOMEACAO=date(2021, 5, 1), STATUS="Ativo",
            ),
        ]
    )
    db.commit()
    return db


@pytest.fixture()
def usuarios(db_session):
    senha = get_password_hash("senha123")
    db_session.add_all(
        [
            models.Usuario(usuario="admin", nome="Coordenacao", senha=senha, papel=PAPEL_COORDENACAO, is_gerente=True),
            models.Usuario(usuario="ggt", nome="GGT", senha=senha, papel=PAPEL_GGT),
            models.Usuario(usuario="gprgp", nome="GPRGP", senha=senha, papel=PAPEL_GPRGP),
            models.Usuario(usuario="gdep", nome="GDEP", senha=senha, papel=PAPEL_GDEP),
            models.Usuario(usuario="inativo", nome="Inativo", senha=senha, papel=PAPEL_GGT, ativo=False),
        ]
    )
    db_session.commit()
    return {
        usuario: {"Authorization": f"Bearer {create_access_token({'sub': usuario})}"}
        for usuario in ("admin", "ggt", "gprgp", "gdep", "inativo")
    }


@pytest.fixture()
def client(engine, usuarios, cadastro):
    from simas.main import app

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
