from fastapi import HTTPException, status

from simas.core.security import SessionContext
from simas.workflow.constants import JUSTIFICATIVAS, REMETENTES, TIPOS_PEDIDO

PAPEL_COORDENACAO = "COORDENAÇÃO"
PAPEL_GGT = "GGT"
PAPEL_GPRGP = "GPRGP"
PAPEL_GDEP = "GDEP"
PAPEIS = (PAPEL_COORDENACAO, PAPEL_GGT, PAPEL_GPRGP, PAPEL_GDEP)

PERMISSOES_POR_PAPEL: dict[str, list[str]] = {
    PAPEL_COORDENACAO: ["TODAS", "USUARIOS_ADMIN"],
    PAPEL_GGT: [
        "Servidor", "Nomeacao", "Protocolo", "CargoComissionado", "Pessoa", "Funcao", "Lotacao",
        "Cargo", "Atendimento", "Alocacao", "Auditoria", "Inativo", "AlocacaoHistorico",
    ],
    PAPEL_GPRGP: [
        "Contrato", "Protocolo", "Vaga", "Pessoa", "Funcao", "Lotacao", "Cargo", "Atendimento",
        "Auditoria", "ContratoHistorico",
    ],
    PAPEL_GDEP: ["Pessoa", "Funcao", "Lotacao", "Cargo", "Auditoria"],
}

REPORT_PERMISSIONS: dict[str, list[str]] = {
    PAPEL_GPRGP: ["painelAtendimentos"],
    PAPEL_GGT: ["painelAtendimentos"],
    PAPEL_GDEP: [],
    PAPEL_COORDENACAO: ["painelAtendimentos", "atividadeUsuarios"],
}


def can_access_entity(session: SessionContext, entity: str) -> bool:
    allowed = PERMISSOES_POR_PAPEL.get(session.papel, [])
    return "TODAS" in allowed or entity in allowed


def ensure_entity_access(session: SessionContext, entity: str) -> None:
    if not can_access_entity(session, entity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Seu perfil nao possui acesso a {entity}.",
        )


def can_view_report(session: SessionContext, report_id: str) -> bool:
    return report_id in REPORT_PERMISSIONS.get(session.papel, [])


def allowed_tipos_pedido(papel: str) -> list[str]:
    options = list(TIPOS_PEDIDO["GERAL"])
    if papel == PAPEL_GPRGP:
        options += TIPOS_PEDIDO["CONTRATADO"] + TIPOS_PEDIDO["GPRGP_ESPECIFICO"]
    elif papel == PAPEL_GGT:
        options += TIPOS_PEDIDO["SERVIDOR"]
    elif papel == PAPEL_COORDENACAO:
        options += TIPOS_PEDIDO["CONTRATADO"] + TIPOS_PEDIDO["SERVIDOR"] + TIPOS_PEDIDO["GPRGP_ESPECIFICO"]
    return sorted(set(options))


def allowed_justificativas(papel: str) -> list[str]:
    options = list(JUSTIFICATIVAS["GERAL"])
    if papel == PAPEL_GPRGP:
        options += JUSTIFICATIVAS["CONTRATADO"]
    elif papel == PAPEL_GGT:
        options += JUSTIFICATIVAS["SERVIDOR"]
    elif papel == PAPEL_COORDENACAO:
        options += JUSTIFICATIVAS["CONTRATADO"] + JUSTIFICATIVAS["SERVIDOR"]
    return sorted(set(options))


def allowed_remetentes(papel: str) -> list[str]:
    if papel == PAPEL_GPRGP:
        return [option for option in REMETENTES if option != "Prefeitura"]
    return list(REMETENTES)


def can_manage_audit(session: SessionContext) -> bool:
    return session.papel == PAPEL_COORDENACAO or session.is_gerente


def ensure_audit_access(session: SessionContext) -> None:
    if not can_manage_audit(session):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Apenas coordenacao ou gerentes acessam o historico de auditoria.",
        )
