from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Usuario(Base):
    __tablename__ = "usuarios"

    usuario = Column(String, primary_key=True)
    nome = Column(String, nullable=True)
    senha = Column(String, nullable=False)
    papel = Column(String, nullable=False)
    is_gerente = Column(Boolean, default=False, nullable=False)
    ativo = Column(Boolean, default=True, nullable=False)
    criado_em = Column(DateTime, default=datetime.utcnow, nullable=False)


class Pessoa(Base):
    __tablename__ = "Pessoa"

    CPF = Column(String, primary_key=True)
    NOME = Column(String, nullable=False)
    SEXO = Column(String, nullable=True)
    DATA_DE_NASCIMENTO = Column(Date, nullable=True)
    EMAIL = Column(String, nullable=True)
    TELEFONE = Column(String, nullable=True)
    ESCOLARIDADE = Column(String, nullable=True)
    FORMACAO = Column(String, nullable=True)
    BAIRRO = Column(String, nullable=True)

    contratos = relationship("Contrato", back_populates="pessoa")
    servidores = relationship("Servidor", back_populates="pessoa")


class Lotacao(Base):
    __tablename__ = "Lotacao"

    ID_LOTACAO = Column(String, primary_key=True)
    LOTACAO = Column(String, nullable=False)
    VINCULACAO = Column(String, nullable=True)
    TIPO_DA_LOTACAO = Column(String, nullable=True)
    BAIRRO = Column(String, nullable=True)
    COMPLEXIDADE = Column(String, nullable=True)
    UNIDADE = Column(String, nullable=True)


class Cargo(Base):
    __tablename__ = "Cargo"

    ID_CARGO = Column(String, primary_key=True)
    NOME_CARGO = Column(String, nullable=False)
    ESCOLARIDADE_CARGO = Column(String, nullable=True)
    SALARIO = Column(Float, nullable=True)


class Funcao(Base):
    __tablename__ = "Funcao"

    ID_FUNCAO = Column(String, primary_key=True)
    FUNCAO = Column(String, nullable=False)
    CBO = Column(String, nullable=True)


class CargoComissionado(Base):
    __tablename__ = "CargoComissionado"

    ID_CARGO_COMISSIONADO = Column(String, primary_key=True)
    NOME = Column(String, nullable=False)
    UNIDADE = Column(String, nullable=True)
    TIPO_DE_CARGO = Column(String, nullable=True)


class Vaga(Base):
    __tablename__ = "Vaga"

    ID_VAGA = Column(String, primary_key=True)
    ID_LOTACAO = Column(String, ForeignKey("Lotacao.ID_LOTACAO"), nullable=True)
    ID_EDITAL = Column(String, nullable=True)
    ID_CARGO = Column(String, ForeignKey("Cargo.ID_CARGO"), nullable=True)
    BLOQUEADA = Column(Boolean, default=False, nullable=False)

    contrato = relationship("Contrato", back_populates="vaga", uselist=False)


class Servidor(Base):
    __tablename__ = "Servidor"

    MATRICULA = Column(String, primary_key=True)
    PREFIXO_MATRICULA = Column(String, nullable=True)
    CPF = Column(String, ForeignKey("Pessoa.CPF"), nullable=False)
    ID_CARGO = Column(String, ForeignKey("Cargo.ID_CARGO"), nullable=True)
    DATA_MATRICULA = Column(Date, nullable=True)
    VINCULO = Column(String, nullable=True)

    pessoa = relationship("Pessoa", back_populates="servidores")


class Inativo(Base):
    __tablename__ = "Inativo"

    ID_INATIVO = Column(String, primary_key=True)
    MATRICULA_ORIGINAL = Column(String, nullable=False, index=True)
    CPF = Column(String, nullable=False)
    ID_CARGO = Column(String, nullable=True)
    DATA_MATRICULA = Column(Date, nullable=True)
    VINCULO_ANTERIOR = Column(String, nullable=True)
    PREFIXO_ANTERIOR = Column(String, nullable=True)
    DATA_INATIVACAO = Column(DateTime, default=datetime.utcnow, nullable=False)
    MOTIVO_INATIVACAO = Column(String, nullable=True)


class Contrato(Base):
    __tablename__ = "Contrato"

    ID_CONTRATO = Column(String, primary_key=True)
    ID_VAGA = Column(String, ForeignKey("Vaga.ID_VAGA"), nullable=False, unique=True)
    CPF = Column(String, ForeignKey("Pessoa.CPF"), nullable=False)
    DATA_DO_CONTRATO = Column(Date, nullable=True)
    ID_FUNCAO = Column(String, ForeignKey("Funcao.ID_FUNCAO"), nullable=True)

    pessoa = relationship("Pessoa", back_populates="contratos")
    vaga = relationship("Vaga", back_populates="contrato")


class ContratoHistorico(Base):
    __tablename__ = "ContratoHistorico"

    ID_HISTORICO_CONTRATO = Column(String, primary_key=True)
    ID_CONTRATO = Column(String, nullable=False, index=True)
    ID_VAGA = Column(String, nullable=True)
    CPF = Column(String, nullable=False)
    DATA_DO_CONTRATO = Column(Date, nullable=True)
    ID_FUNCAO = Column(String, nullable=True)
    DATA_ARQUIVAMENTO = Column(DateTime, default=datetime.utcnow, nullable=False)
    MOTIVO_ARQUIVAMENTO = Column(String, nullable=True)


class Alocacao(Base):
    __tablename__ = "Alocacao"

    ID_ALOCACAO = Column(String, primary_key=True)
    MATRICULA = Column(String, ForeignKey("Servidor.MATRICULA"), nullable=False)
    ID_LOTACAO = Column(String, ForeignKey("Lotacao.ID_LOTACAO"), nullable=True)
    ID_FUNCAO = Column(String, ForeignKey("Funcao.ID_FUNCAO"), nullable=True)
    DATA_INICIO = Column(Date, nullable=True)


class AlocacaoHistorico(Base):
    __tablename__ = "AlocacaoHistorico"

    ID_HISTORICO_ALOCACAO = Column(String, primary_key=True)
    ID_ALOCACAO = Column(String, nullable=False, index=True)
    MATRICULA = Column(String, nullable=False)
    ID_LOTACAO = Column(String, nullable=True)
    ID_FUNCAO = Column(String, nullable=True)
    DATA_INICIO = Column(Date, nullable=True)
    DATA_ARQUIVAMENTO = Column(DateTime, default=datetime.utcnow, nullable=False)


class Nomeacao(Base):
    __tablename__ = "Nomeacao"

    ID_NOMEACAO = Column(String, primary_key=True)
    MATRICULA = Column(String, nullable=False)
    ID_CARGO_COMISSIONADO = Column(
        String, ForeignKey("CargoComissionado.ID_CARGO_COMISSIONADO"), nullable=True
    )
    DATA_DA_NOMEACAO = Column(Date, nullable=True)
    PAGINA_DO = Column(String, nullable=True)
    STATUS = Column(String, nullable=True, default="Ativo")


class Protocolo(Base):
    __tablename__ = "Protocolo"

    ID_PROTOCOLO = Column(String, primary_key=True)
    CPF = Column(String, ForeignKey("Pessoa.CPF"), nullable=False)
    TIPO_DE_PROTOCOLO = Column(String, nullable=True)
    INICIO_PRAZO = Column(Date, nullable=True)
    TERMINO_PRAZO = Column(Date, nullable=True)
    ID_CONTRATO = Column(String, nullable=True)
    MATRICULA = Column(String, nullable=True)


class Atendimento(Base):
    __tablename__ = "Atendimento"

    ID_ATENDIMENTO = Column(String, primary_key=True)
    REMETENTE = Column(String, nullable=True)
    CPF = Column(String, ForeignKey("Pessoa.CPF"), nullable=False)
    RESPONSAVEL = Column(String, nullable=True)
    DATA_ENTRADA = Column(DateTime, default=datetime.utcnow, nullable=False)
    DATA_ATENDIMENTO = Column(DateTime, nullable=True)
    TIPO_PEDIDO = Column(String, nullable=False)
    DESCRICAO = Column(Text, nullable=True)
    STATUS_PEDIDO = Column(String, nullable=False, default="Aguardando")
    JUSTIFICATIVA = Column(String, nullable=True)
    DATA_AGENDAMENTO = Column(Date, nullable=True)
    ID_VAGA = Column(String, ForeignKey("Vaga.ID_VAGA"), nullable=True)
    TIPO_DE_ACAO = Column(String, nullable=False, default="NENHUMA")
    ENTIDADE_ALVO = Column(String, nullable=False, default="NENHUMA")
    STATUS_AGENDAMENTO = Column(String, nullable=False, default="N/A")
    CHAVE_IDEMPOTENCIA = Column(String, nullable=True, unique=True)
    VERSAO = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": VERSAO}

    pessoa = relationship("Pessoa")


class Auditoria(Base):
    __tablename__ = "Auditoria"

    ID_LOG = Column(String, primary_key=True)
    DATA_HORA = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    USUARIO = Column(String, nullable=False)
    ACAO = Column(String, nullable=False)
    TABELA_AFETADA = Column(String, nullable=False)
    ID_REGISTRO_AFETADO = Column(String, nullable=False)
    VALOR_ANTIGO = Column(JSON, nullable=True)
    VALOR_NOVO = Column(JSON, nullable=True)
    ID_LOG_ORIGEM = Column(String, nullable=True, index=True)


@event.listens_for(Auditoria, "before_update")
def _block_audit_update(mapper, connection, target):
    raise ValueError("Registros de auditoria sao imutaveis.")


@event.listens_for(Auditoria, "before_delete")
def _block_audit_delete(mapper, connection, target):
    raise ValueError("Registros de auditoria sao imutaveis.")
