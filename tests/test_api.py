from simas.db import models
from tests.conftest import CPF_CONTRATADO, CPF_SEM_VINCULO


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_requests_without_valid_token_are_rejected(client):
    assert client.get("/api/Atendimento").status_code == 401
    assert client.get("/api/Atendimento", headers={"Authorization": "Bearer invalido"}).status_code == 401


def test_login_json_and_form(client):
    res = client.post("/api/auth/login", json={"usuario": "Admin", "senha": "senha123"})
    assert res.status_code == 200
    body = res.json()
    assert body["papel"] == "COORDENAÇÃO"
    assert body["is_gerente"] is True

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["usuario"] == "admin"

    form = client.post("/api/auth/token", data={"username": "ggt", "password": "senha123"})
    assert form.status_code == 200
    assert form.json()["papel"] == "GGT"


def test_login_failures(client, usuarios):
    assert client.post("/api/auth/login", json={"usuario": "admin", "senha": "errada"}).status_code == 401
    assert client.post("/api/auth/login", json={"usuario": "inativo", "senha": "senha123"}).status_code == 403
    assert client.get("/api/Atendimento", headers=usuarios["inativo"]).status_code == 403


def test_role_permissions_are_checked_on_every_route(client, usuarios):
    assert client.get("/api/Atendimento", headers=usuarios["gdep"]).status_code == 403
    assert client.post("/api/Contrato", json={"ID_VAGA": "VAG2"}, headers=usuarios["gdep"]).status_code == 403
    assert client.get("/api/Auditoria", headers=usuarios["gprgp"]).status_code == 403


def test_request_workflow_end_to_end(client, usuarios):
    headers = {**usuarios["gprgp"], "Idempotency-Key": "formulario-1"}
    payload = {"CPF": CPF_SEM_VINCULO, "TIPO_PEDIDO": "Contratação", "REMETENTE": "Currículo"}

    criado = client.post("/api/Atendimento", json=payload, headers=headers)
    assert criado.status_code == 201
    id_atendimento = criado.json()["data"]["ID_ATENDIMENTO"]
    repetido = client.post("/api/Atendimento", json=payload, headers=headers)
    assert repetido.status_code == 200
    assert repetido.json()["data"]["ID_ATENDIMENTO"] == id_atendimento

    atualizado = client.put(
        f"/api/Atendimento/{id_atendimento}",
        json={"STATUS_PEDIDO": "Acatado", "DATA_AGENDAMENTO": "2024-01-10", "VERSAO": 1},
        headers=usuarios["gprgp"],
    )
    assert atualizado.status_code == 200
    data = atualizado.json()["data"]
    assert (data["TIPO_DE_ACAO"], data["ENTIDADE_ALVO"], data["STATUS_AGENDAMENTO"]) == ("CRIAR", "Contrato", "Pendente")

    kanban = client.get("/api/Atendimento/kanban", headers=usuarios["gprgp"]).json()
    colunas = {coluna["id"]: [item["ID_ATENDIMENTO"] for item in coluna["items"]] for coluna in kanban["columns"]}
    assert colunas["pronto_para_executar"] == [id_atendimento]

    contexto = client.get(f"/api/Atendimento/{id_atendimento}/contexto", headers=usuarios["gprgp"])
    assert [vaga["ID_VAGA"] for vaga in contexto.json()["opcoes"]["vagas"]] == ["VAG2"]

    executado = client.post(
        f"/api/Atendimento/{id_atendimento}/executar",
        json={"dados": {"ID_VAGA": "VAG2", "ID_FUNCAO": "FUN1"}, "VERSAO": 2},
        headers=usuarios["gprgp"],
    )
    assert executado.status_code == 200
    assert executado.json()["success"] is True

    de_novo = client.post(
        f"/api/Atendimento/{id_atendimento}/executar",
        json={"dados": {"ID_VAGA": "VAG2"}},
        headers=usuarios["gprgp"],
    )
    assert de_novo.status_code == 409
    assert de_novo.json()["success"] is False

    kanban = client.get("/api/Atendimento/kanban", headers=usuarios["gprgp"]).json()
    colunas = {coluna["id"]: [item["ID_ATENDIMENTO"] for item in coluna["items"]] for coluna in kanban["columns"]}
    assert colunas["concluido"] == [id_atendimento]


def test_business_errors_use_the_success_message_shape(client, usuarios):
    res = client.post(
        "/api/Atendimento",
        json={"CPF": CPF_SEM_VINCULO, "TIPO_PEDIDO": "Demissão"},
        headers=usuarios["gprgp"],
    )
    assert res.status_code == 400
    assert res.json()["success"] is False
    assert "contrato ativo" in res.json()["message"]

    res = client.post("/api/Atendimento", json={"CPF": "000", "TIPO_PEDIDO": "Orientação"}, headers=usuarios["gprgp"])
    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "CPF invalido."}


def test_generic_entity_crud_and_restore(client, usuarios):
    admin = usuarios["admin"]
    criado = client.post("/api/Lotacao", json={"LOTACAO": "Nova Secretaria", "CAMPO_EXTRA": "x"}, headers=admin)
    assert criado.status_code == 201
    id_lotacao = criado.json()["data"]["ID_LOTACAO"]
    assert id_lotacao.startswith("LOT")

    busca = client.get("/api/lotacao", params={"busca": "nova"}, headers=admin).json()["items"]
    assert [item["ID_LOTACAO"] for item in busca] == [id_lotacao]

    assert client.put(f"/api/Lotacao/{id_lotacao}", json={"BAIRRO": "Centro"}, headers=admin).status_code == 200
    assert client.delete(f"/api/Lotacao/{id_lotacao}", headers=admin).status_code == 200
    assert client.get(f"/api/Lotacao/{id_lotacao}", headers=admin).status_code == 404

    logs = client.get("/api/Auditoria", params={"acao": "EXCLUIR", "tabela": "Lotacao"}, headers=admin).json()["items"]
    assert len(logs) == 1
    restaurado = client.post(f"/api/Auditoria/{logs[0]['ID_LOG']}/restore", headers=admin)
    assert restaurado.status_code == 200
    assert restaurado.json()["success"] is True
    assert client.get(f"/api/Lotacao/{id_lotacao}", headers=admin).json()["BAIRRO"] == "Centro"


def test_read_only_and_workflow_entities_reject_generic_writes(client, usuarios):
    admin = usuarios["admin"]
    assert client.post("/api/Inativo", json={"CPF": CPF_CONTRATADO}, headers=admin).status_code == 400
    assert client.delete("/api/Atendimento/ATDXXXXXXXX", headers=admin).status_code == 400
    assert client.get("/api/TabelaInexistente", headers=admin).status_code == 400


def test_personnel_endpoints(client, usuarios, db_session):
    res = client.post("/api/Servidor/inativar", json={"MATRICULA": "MAT1", "MOTIVO": "Aposentadoria"}, headers=usuarios["ggt"])
    assert res.status_code == 200
    assert db_session.query(models.Inativo).filter_by(MATRICULA_ORIGINAL="MAT1").count() == 1

    res = client.post("/api/Contrato/arquivar", json={"CPF": "529.982.247-25", "MOTIVO": "Fim"}, headers=usuarios["gprgp"])
    assert res.status_code == 200
    assert db_session.query(models.ContratoHistorico).filter_by(ID_CONTRATO="CTT1").count() == 1

    assert client.post("/api/Contrato/arquivar", json={"MOTIVO": "Fim"}, headers=usuarios["gprgp"]).status_code == 422

    bloqueio = client.post("/api/Vaga/VAG2/toggle-lock", headers=usuarios["gprgp"])
    assert bloqueio.json()["data"]["BLOQUEADA"] is True
    desbloqueio = client.post("/api/Vaga/VAG2/toggle-lock", headers=usuarios["gprgp"])
    assert desbloqueio.json()["data"]["BLOQUEADA"] is False


def test_reports_respect_role_permissions(client, usuarios):
    painel = client.get("/api/reports/painelAtendimentos", headers=usuarios["gprgp"])
    assert painel.status_code == 200
    assert {coluna["id"] for coluna in painel.json()["data"]["por_coluna"]} == {
        "aguardando", "pronto_para_executar", "concluido", "declinado",
    }
    assert client.get("/api/reports/atividadeUsuarios", headers=usuarios["gprgp"]).status_code == 403
    assert client.get("/api/reports/atividadeUsuarios", headers=usuarios["admin"]).status_code == 200
    assert client.get("/api/reports/inexistente", headers=usuarios["admin"]).status_code == 404


def test_audit_entries_are_hidden_from_generic_routes(client, usuarios):
    admin = usuarios["admin"]
    client.post("/api/Lotacao", json={"LOTACAO": "Unidade Auditada"}, headers=admin)
    id_log = client.get("/api/Auditoria", params={"tabela": "Lotacao"}, headers=admin).json()["items"][0]["ID_LOG"]

    assert client.get(f"/api/Auditoria/{id_log}", headers=usuarios["ggt"]).status_code == 403
    assert client.get("/api/auditoria", headers=usuarios["ggt"]).status_code == 403
    assert client.get(f"/api/Auditoria/{id_log}", headers=admin).json()["ID_LOG"] == id_log


def test_action_context_requires_a_role_that_handles_the_request(client, usuarios):
    criado = client.post(
        "/api/Atendimento",
        json={"CPF": CPF_SEM_VINCULO, "TIPO_PEDIDO": "Contratação", "STATUS_PEDIDO": "Acatado", "DATA_AGENDAMENTO": "2024-01-10"},
        headers=usuarios["gprgp"],
    )
    id_atendimento = criado.json()["data"]["ID_ATENDIMENTO"]

    res = client.get(f"/api/Atendimento/{id_atendimento}/contexto", headers=usuarios["ggt"])
    assert res.status_code == 403
    assert res.json()["success"] is False

    executado = client.post(
        f"/api/Atendimento/{id_atendimento}/executar", json={"dados": {"ID_VAGA": "VAG2"}}, headers=usuarios["ggt"]
    )
    assert executado.status_code == 403


def test_archiving_without_a_contract_names_the_formatted_cpf(client, usuarios):
    res = client.post("/api/Contrato/arquivar", json={"CPF": CPF_SEM_VINCULO, "MOTIVO": "Fim"}, headers=usuarios["gprgp"])
    assert res.status_code == 404
    assert res.json()["message"] == "O CPF 123.456.789-09 nao possui um contrato ativo."
