from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import Boolean, Date, DateTime, Float, Integer
from sqlalchemy.orm import Session

from simas.core.errors import ValidacaoError
from simas.db import models


@dataclass(frozen=True)
class EntityConfig:
    name: str
    model: type
    pk: str
    prefix: Optional[str] = None
    read_only: bool = False
    search_fields: tuple[str, ...] = ()

    @property
    def manual_pk(self) -> bool:
        return self.prefix is None


ENTITY_CONFIGS: dict[str, EntityConfig] = {
    cfg.name: cfg
    for cfg in [
        EntityConfig("Pessoa", models.Pessoa, "CPF", search_fields=("NOME", "CPF")),
        EntityConfig("Servidor", models.Servidor, "MATRICULA", search_fields=("MATRICULA", "CPF")),
        EntityConfig("Contrato", models.Contrato, "ID_CONTRATO", "CTT", search_fields=("ID_CONTRATO", "CPF")),
        EntityConfig("Vaga", models.Vaga, "ID_VAGA", "VAG", search_fields=("ID_VAGA",)),
        EntityConfig("Lotacao", models.Lotacao, "ID_LOTACAO", "LOT", search_fields=("LOTACAO",)),
        EntityConfig("Cargo", models.Cargo, "ID_CARGO", "CRG", search_fields=("NOME_CARGO",)),
        EntityConfig("Funcao", models.Funcao, "ID_FUNCAO", "FUN", search_fields=("FUNCAO",)),
        EntityConfig("CargoComissionado", models.CargoComissionado, "ID_CARGO_COMISSIONADO", "CCM", search_fields=("NOME",)),
        EntityConfig("Alocacao", models.Alocacao, "ID_ALOCACAO", "ALC", search_fields=("MATRICULA",)),
        EntityConfig("Nomeacao", models.Nomeacao, "ID_NOMEACAO", "NOM", search_fields=("MATRICULA",)),
        EntityConfig("Protocolo", models.Protocolo, "ID_PROTOCOLO", "PRT", search_fields=("CPF", "TIPO_DE_PROTOCOLO")),
        EntityConfig("Atendimento", models.Atendimento, "ID_ATENDIMENTO", "ATD", search_fields=("CPF", "TIPO_PEDIDO")),
        EntityConfig("Inativo", models.Inativo, "ID_INATIVO", "INA", read_only=True, search_fields=("MATRICULA_ORIGINAL", "CPF")),
        EntityConfig(
            "ContratoHistorico", models.ContratoHistorico, "ID_HISTORICO_CONTRATO", "HCT",
            read_only=True, search_fields=("ID_CONTRATO", "CPF"),
        ),
        EntityConfig(
            "AlocacaoHistorico", models.AlocacaoHistorico, "ID_HISTORICO_ALOCACAO", "HAL",
            read_only=True, search_fields=("ID_ALOCACAO", "MATRICULA"),
        ),
        EntityConfig("Auditoria", models.Auditoria, "ID_LOG", "LOG", read_only=True, search_fields=("USUARIO",)),
    ]
}


def get_entity_config(name: str) -> EntityConfig:
    config = ENTITY_CONFIGS.get(name)
    if config:
        return config
    # logs antigos gravavam o nome da tabela com outra caixa
    for key, candidate in ENTITY_CONFIGS.items():
        if key.lower() == (name or "").lower():
            return candidate
    raise ValidacaoError(f"Tabela invalida: '{name}'")


def _coerce(column, key: str, value: Any) -> Any:
    if value is None:
        return None
    column_type = column.type
    try:
        if isinstance(column_type, DateTime):
            if isinstance(value, datetime):
                return value
            if isinstance(value, date):
                return datetime(value.year, value.month, value.day)
            return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
        if isinstance(column_type, Date):
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, date):
                return value
            return date.fromisoformat(str(value)[:10])
        if isinstance(column_type, Boolean):
            if isinstance(value, str):
                return value.strip().lower() in {"1", "true", "sim", "s", "yes"}
            return bool(value)
        if isinstance(column_type, Integer):
            return int(value)
        if isinstance(column_type, Float):
            return float(value)
    except (TypeError, ValueError):
        raise ValidacaoError(f"Valor invalido para o campo {key}.")
    return value


def sanitize_data(model: type, data: dict[str, Any] | None) -> dict[str, Any]:
    """Mantem apenas colunas do modelo, converte '' em None e normaliza tipos."""
    if not data:
        return {}
    columns = {column.name: column for column in model.__table__.columns}
    version_column = model.__mapper__.version_id_col
    clean: dict[str, Any] = {}
    for key, value in data.items():
        column = columns.get(key)
        if column is None or (version_column is not None and column.name == version_column.name):
            continue
        if isinstance(value, str) and value.strip() == "":
            value = None
        clean[key] = _coerce(column, key, value)
    return clean


def get_by_pk(db: Session, config: EntityConfig, pk_value: Any):
    return (
        db.query(config.model)
        .filter(getattr(config.model, config.pk) == pk_value)
        .first()
    )
