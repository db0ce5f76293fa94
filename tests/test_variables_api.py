"""
Tests — Variables API.
"""

BASE = "/api/v1/orgs/acme"


def _create_variable(client, key, value=""):
    res = client.post(f"{BASE}/variables", json={"key": key, "value": value})
    assert res.status_code == 201
    return res.get_json()


def test_variables_crud(client, org):
    created = _create_variable(client, "support_email", "help@acme.test")
    assert created["key"] == "support_email"

    res = client.put(f"{BASE}/variables/{created['id']}", json={"key": "support_email", "value": "new@acme.test"})
    assert res.status_code == 200
    assert res.get_json()["value"] == "new@acme.test"

    assert client.delete(f"{BASE}/variables/{created['id']}").status_code == 204
    assert client.get(f"{BASE}/variables").get_json() == []


def test_variables_listed_by_key(client, org):
    _create_variable(client, "zeta")
    _create_variable(client, "alpha")
    assert [v["key"] for v in client.get(f"{BASE}/variables").get_json()] == ["alpha", "zeta"]


def test_variable_key_required(client, org):
    res = client.post(f"{BASE}/variables", json={"value": "x"})
    assert res.status_code == 422


def test_missing_value_defaults_to_empty(client, org):
    created = _create_variable(client, "hours")
    assert created["value"] == ""


def test_member_cannot_create_variable(member_client, org):
    res = member_client.post(f"{BASE}/variables", json={"key": "k"})
    assert res.status_code == 403
