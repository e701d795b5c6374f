from datetime import date

import pytest

from simas.core.errors import PermissaoError
from simas.db import models
from simas.workflow import service
from simas.workflow.executor import execute_action
from tests.conftest import CPF_CONTRATADO, CPF_SEM_VINCULO, CPF_SERVIDOR

PASSADO = "2024-01-10"
FUTURO = "2999-01-01"


def _agendar(db, session, cpf, tipo, data=PASSADO, status="Acatado", **extra):
    atendimento, _ = service.create_atendimento(
        db, session, {"CPF": cpf, "TIPO_PEDIDO": tipo, "STATUS_PEDIDO": status, "DATA_AGENDAMENTO": data, **extra}
    )
    return atendimento.ID_ATENDIMENTO


def _status(db, id_atendimento):
    db.expire_all()
    return db.query(models.Atendimento).filter_by(ID_ATENDIMENTO=id_atendimento).one().STATUS_AGENDAMENTO


def _logs(db):
    return db.query(models.Auditoria).count()


def test_hiring_creates_contract_and_completes_request(cadastro, gprgp):
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação")

    result = execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2", "ID_FUNCAO": "FUN2"})

    assert result.success, result.message
    contrato = cadastro.query(models.Contrato).filter_by(CPF=CPF_SEM_VINCULO).one()
    assert contrato.ID_VAGA == "VAG2"
    assert contrato.ID_CONTRATO == result.data["ID_CONTRATO"]
    assert _status(cadastro, id_atendimento) == "Concluído"
    acoes = {
        (log.TABELA_AFETADA, log.ACAO)
        for log in cadastro.query(models.Auditoria).all()
    }
    assert ("Contrato", "CRIAR") in acoes
    assert ("Atendimento", "EDITAR") in acoes


def test_second_execution_is_rejected(cadastro, gprgp):
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação")
    assert execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2"}).success

    segunda = execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2"})

    assert not segunda.success
    assert segunda.status_code == 409
    assert cadastro.query(models.Contrato).filter_by(CPF=CPF_SEM_VINCULO).count() == 1


@pytest.mark.parametrize(
    "dados",
    [
        {"ID_VAGA": "VAG1"},
        {"ID_VAGA": "VAG3"},
        {"ID_VAGA": "VAG2", "ID_FUNCAO": "FUN_INEXISTENTE"},
        {},
    ],
)
def test_failed_effect_leaves_request_pending(cadastro, gprgp, dados):
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação")
    logs_antes = _logs(cadastro)

    result = execute_action(cadastro, gprgp, id_atendimento, dados)

    assert not result.success
    assert result.message
    assert _status(cadastro, id_atendimento) == "Pendente"
    assert cadastro.query(models.Contrato).filter_by(CPF=CPF_SEM_VINCULO).count() == 0
    assert _logs(cadastro) == logs_antes


def test_promotion_archives_old_contract_and_creates_new_one(cadastro, gprgp):
    id_atendimento = _agendar(cadastro, gprgp, CPF_CONTRATADO, "Promoção (Contratado)")

    result = execute_action(cadastro, gprgp, id_atendimento, {"ID_FUNCAO": "FUN2", "MOTIVO": "Promocao"})

    assert result.success, result.message
    historico = cadastro.query(models.ContratoHistorico).filter_by(ID_CONTRATO="CTT1").one()
    assert historico.MOTIVO_ARQUIVAMENTO == "Promocao"
    assert historico.ID_VAGA == "VAG1"
    novo = cadastro.query(models.Contrato).filter_by(CPF=CPF_CONTRATADO).one()
    assert novo.ID_CONTRATO != "CTT1"
    assert (novo.ID_VAGA, novo.ID_FUNCAO) == ("VAG1", "FUN2")


def test_allocation_change_appends_a_new_allocation(cadastro, ggt):
    id_atendimento = _agendar(cadastro, ggt, CPF_SERVIDOR, "Mudança de Alocação (Servidor)")

    result = execute_action(cadastro, ggt, id_atendimento, {"ID_LOTACAO": "LOT2", "DATA_INICIO": "2024-02-01"})

    assert result.success, result.message
    alocacoes = cadastro.query(models.Alocacao).filter_by(MATRICULA="MAT1").all()
    assert {alocacao.ID_LOTACAO for alocacao in alocacoes} == {"LOT1", "LOT2"}


def test_exoneration_deactivates_servidor(cadastro, ggt):
    id_atendimento = _agendar(cadastro, ggt, CPF_SERVIDOR, "Exoneração do Serviço Público")

    result = execute_action(cadastro, ggt, id_atendimento, {"MOTIVO": "Pedido de exoneracao"})

    assert result.success, result.message
    assert cadastro.query(models.Servidor).filter_by(MATRICULA="MAT1").first() is None
    inativo = cadastro.query(models.Inativo).filter_by(MATRICULA_ORIGINAL="MAT1").one()
    assert inativo.CPF == CPF_SERVIDOR
    assert inativo.VINCULO_ANTERIOR == "Efetivo"
    assert inativo.MOTIVO_INATIVACAO == "Pedido de exoneracao"
    assert cadastro.query(models.Alocacao).filter_by(MATRICULA="MAT1").count() == 0
    assert cadastro.query(models.AlocacaoHistorico).filter_by(ID_ALOCACAO="ALC1").count() == 1
    assert cadastro.query(models.Nomeacao).filter_by(ID_NOMEACAO="NOM1").one().STATUS == "Inativo"


def test_dismissal_opens_a_protocol_for_the_active_contract(cadastro, gprgp):
    id_atendimento = _agendar(cadastro, gprgp, CPF_CONTRATADO, "Demissão")

    result = execute_action(cadastro, gprgp, id_atendimento, {"TERMINO_PRAZO": "2024-03-01"})

    assert result.success, result.message
    protocolo = cadastro.query(models.Protocolo).filter_by(CPF=CPF_CONTRATADO).one()
    assert protocolo.ID_CONTRATO == "CTT1"
    assert protocolo.TIPO_DE_PROTOCOLO == "Demissão"
    assert protocolo.TERMINO_PRAZO == date(2024, 3, 1)


def test_commissioned_appointment_creates_nomeacao(cadastro, ggt):
    id_atendimento = _agendar(cadastro, ggt, CPF_SERVIDOR, "Nomeação de Cargo Comissionado")

    result = execute_action(cadastro, ggt, id_atendimento, {"ID_CARGO_COMISSIONADO": "CCM1", "PAGINA_DO": "12"})

    assert result.success, result.message
    assert cadastro.query(models.Nomeacao).filter_by(MATRICULA="MAT1").count() == 2


def test_reservation_without_action_just_completes(cadastro, gprgp):
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Reserva de Vaga", ID_VAGA="VAG2")
    contratos_antes = cadastro.query(models.Contrato).count()

    result = execute_action(cadastro, gprgp, id_atendimento, {})

    assert result.success, result.message
    assert _status(cadastro, id_atendimento) == "Concluído"
    assert cadastro.query(models.Contrato).count() == contratos_antes


def test_waiting_request_with_date_creates_a_follow_up(cadastro, gprgp):
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação", status="Aguardando")

    result = execute_action(cadastro, gprgp, id_atendimento, {})

    assert result.success, result.message
    revisao = cadastro.query(models.Atendimento).filter_by(ID_ATENDIMENTO=result.data["ID_ATENDIMENTO"]).one()
    assert revisao.STATUS_PEDIDO == "Aguardando"
    assert revisao.STATUS_AGENDAMENTO == "N/A"


def test_requests_that_cannot_run(cadastro, gprgp):
    futuro = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação", data=FUTURO)
    sem_data = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação", data="")
    declinado = _agendar(
        cadastro, gprgp, CPF_SEM_VINCULO, "Contratação", status="Declinado", JUSTIFICATIVA="Declinou"
    )

    for id_atendimento in (futuro, sem_data, declinado):
        result = execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2"})
        assert not result.success
        assert result.status_code == 400

    assert cadastro.query(models.Contrato).filter_by(CPF=CPF_SEM_VINCULO).count() == 0


def test_unknown_request_and_stale_version(cadastro, gprgp):
    assert execute_action(cadastro, gprgp, "ATDXXXXXXXX", {}).status_code == 404

    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação")
    result = execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2"}, versao=42)
    assert result.status_code == 409
    assert _status(cadastro, id_atendimento) == "Pendente"


def test_execution_is_limited_to_roles_that_handle_the_request(cadastro, gprgp, ggt):
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação")

    result = execute_action(cadastro, ggt, id_atendimento, {"ID_VAGA": "VAG2"})

    assert not result.success
    assert result.status_code == 403
    assert cadastro.query(models.Contrato).filter_by(CPF=CPF_SEM_VINCULO).count() == 0
    assert _status(cadastro, id_atendimento) == "Pendente"
    with pytest.raises(PermissaoError):
        service.build_action_context(cadastro, ggt, id_atendimento)


def test_hiring_respects_reservations_of_other_people(cadastro, gprgp):
    reserva = _agendar(cadastro, gprgp, CPF_SERVIDOR, "Reserva de Vaga", status="Aguardando", data="", ID_VAGA="VAG2")
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação")

    bloqueada = execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2"})
    assert not bloqueada.success
    assert reserva in bloqueada.message
    assert cadastro.query(models.Contrato).filter_by(CPF=CPF_SEM_VINCULO).count() == 0

    service.update_atendimento(cadastro, gprgp, reserva, {"STATUS_PEDIDO": "Declinado", "JUSTIFICATIVA": "Declinou"})
    assert execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2"}).success


def test_the_reserving_person_can_be_hired_into_the_vaga(cadastro, gprgp):
    _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Reserva de Vaga", status="Aguardando", data="", ID_VAGA="VAG2")
    id_atendimento = _agendar(cadastro, gprgp, CPF_SEM_VINCULO, "Contratação")

    result = execute_action(cadastro, gprgp, id_atendimento, {"ID_VAGA": "VAG2"})

    assert result.success, result.message
    assert cadastro.query(models.Contrato).filter_by(ID_VAGA="VAG2").one().CPF == CPF_SEM_VINCULO
