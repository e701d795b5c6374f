STATUS_AGUARDANDO = "Aguardando"
STATUS_ACATADO = "Acatado"
STATUS_DECLINADO = "Declinado"
STATUS_PEDIDO = (STATUS_AGUARDANDO, STATUS_ACATADO, STATUS_DECLINADO)

AGENDAMENTO_PENDENTE = "Pendente"
AGENDAMENTO_CONCLUIDO = "Concluído"
AGENDAMENTO_NA = "N/A"

RESERVA_DE_VAGA = "Reserva de Vaga"

TIPOS_PEDIDO = {
    "CONTRATADO": [
        "Contratação",
        "Promoção (Contratado)",
        "Mudança (Contratado)",
        "Demissão",
    ],
    "SERVIDOR": [
        "Alocação de Servidor",
        "Mudança de Alocação (Servidor)",
        "Nomeação de Cargo Comissionado",
        "Exoneração de Cargo Comissionado",
        "Exoneração do Serviço Público",
    ],
    "GPRGP_ESPECIFICO": [RESERVA_DE_VAGA],
    "GERAL": ["Orientação", "Outro"],
}

JUSTIFICATIVAS = {
    "CONTRATADO": [
        "Aguardando Assinatura de Aditivo",
        "Aguardando Atendimento",
        "Aguardando OSC",
        "Aguardando Vaga",
        "Declinou",
        "Não Compareceu",
        "Não Conseguiu Contato",
        "Não Preenche os Requisitos da Vaga",
        "Problemas na Contratação",
        "Problemas na Documentação",
    ],
    "SERVIDOR": [
        "Aguardando Publicação em Diário Oficial",
        "Aguardando Parecer da Procuradoria",
        "Processo em Análise Técnica (GGT/SGP)",
        "Vaga Extinta ou Remanejada",
    ],
    "GERAL": [
        "Comando Cancelado",
        "Protocolo Não Acatado",
        "Aguardando Gabinete",
        "Outras Situações",
    ],
}

REMETENTES = ["Prefeitura", "Currículo", "Protocolo", "Sem Protocolo", "Cogestora", "Outro"]

TIPOS_REQUEREM_CONTRATO = {"Demissão", "Promoção (Contratado)", "Mudança (Contratado)"}
TIPOS_REQUEREM_SERVIDOR = {
    "Exoneração de Cargo Comissionado",
    "Exoneração do Serviço Público",
    "Mudança de Alocação (Servidor)",
}
