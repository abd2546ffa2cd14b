import pytest

from app import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_run_source(client):
    resp = client.post("/run", json={"code": ":= a 3 # + a 4"})
    data = resp.get_json()

    assert resp.status_code == 200
    assert data["errors"] == []
    assert data["display"] == ["a := 3", "Print ( a + 4 )"]
    assert data["output"] == ["=== 7"]
    assert data["machine_output"] == ["=== 7"]
    assert data["assembly"] == ["PUSH 3", "STORE a", "LOAD a", "PUSH 4", "ADD", "PRINT"]
    assert data["stack_depth"] == 0
    assert data["ast"]["type"] == "Program"
    assert data["ast"]["actions"][1]["expr"] == {
        "type": "BinaryOp",
        "op": "+",
        "left": {"type": "Variable", "name": "a"},
        "right": {"type": "Constant", "value": 4},
    }


def test_run_tokens_with_error(client):
    resp = client.post("/run", json={"tokens": ["#", "/", "5", "0"]})
    data = resp.get_json()

    assert resp.status_code == 200
    assert data["errors"][0].startswith("DivideByZero")
    assert data["display"] == ["Print ( 5 / 0 )"]
    assert data["assembly"] == []


def test_run_requires_program(client):
    resp = client.post("/run", json={})
    assert resp.status_code == 400


def test_execute_assembly(client):
    resp = client.post("/execute", json={"assembly": "PUSH 9\nSQRT\nSTORE r\nBOGUS\nLOAD r\nPRINT"})
    data = resp.get_json()

    assert resp.status_code == 200
    assert data["instructions"] == ["PUSH 9", "SQRT", "STORE r", "LOAD r", "PRINT"]
    assert data["warnings"] == ["Illegal assembly instr BOGUS"]
    assert data["output"] == ["=== 3"]
    assert data["symbol_table"] == {"r": 3}
    assert data["stack_depth"] == 0
    assert data["errors"] == []


def test_execute_reports_machine_error(client):
    resp = client.post("/execute", json={"assembly": "PUSH 1\nPRINT\nLOAD ghost"})
    data = resp.get_json()

    assert data["output"] == ["=== 1"]
    assert data["errors"][0].startswith("Uninitialized")
    assert data["stack_depth"] is None


def test_samples(client):
    data = client.get("/samples").get_json()
    assert len(data["programs"]) == 20


def test_run_rejects_non_string_code(client):
    resp = client.post("/run", json={"code": 5})

    assert resp.status_code == 400
    assert resp.is_json
    assert resp.get_json()["errors"]


def test_run_rejects_non_list_tokens(client):
    resp = client.post("/run", json={"tokens": "# 5"})

    assert resp.status_code == 400
    assert resp.is_json


def test_execute_rejects_non_string_lines(client):
    resp = client.post("/execute", json={"assembly": ["PUSH 1", 3]})

    assert resp.status_code == 400
    assert resp.is_json
    assert resp.get_json()["errors"]


def test_execute_unexpected_failure_is_json(client, monkeypatch):
    def explode(lines, warnings=None):
        raise RuntimeError("boom")

    monkeypatch.setattr("soros.assemble", explode)
    resp = client.post("/execute", json={"assembly": "PUSH 1"})
    data = resp.get_json()

    assert resp.status_code == 500
    assert data["errors"] == ["Unexpected error: boom"]
    assert data["stack_depth"] is None
