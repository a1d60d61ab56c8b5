# tests/test_crm_api.py
import pytest

API = "/api/v1"


@pytest.fixture
def company(client):
    response = client.post(f"{API}/companies", json={"name": "Acme Clinic Group", "industry": "Healthcare"})
    assert response.status_code == 201
    return response.json()


def add_contact(client, company_id, first_name, is_primary=False):
    response = client.post(f"{API}/companies/{company_id}/contacts", json={
        "first_name": first_name, "is_primary": is_primary,
    })
    assert response.status_code == 201
    return response.json()


def test_company_crud(client, company):
    response = client.put(f"{API}/companies/{company['id']}", json={"website": "https://acme.example"})
    assert response.status_code == 200
    assert response.json()["website"] == "https://acme.example"

    found = client.get(f"{API}/companies", params={"search": "acme"}).json()
    assert [c["id"] for c in found] == [company["id"]]
    assert client.get(f"{API}/companies", params={"search": "nothing"}).json() == []

    assert client.delete(f"{API}/companies/{company['id']}").status_code == 204
    assert client.get(f"{API}/companies/{company['id']}").status_code == 404


def test_company_invalid_email(client):
    assert client.post(f"{API}/companies", json={"name": "X", "email": "not-an-email"}).status_code == 422


def test_primary_contact_listed_first(client, company):
    add_contact(client, company["id"], "Anna")
    add_contact(client, company["id"], "Bruno", is_primary=True)

    contacts = client.get(f"{API}/companies/{company['id']}/contacts").json()
    assert [c["first_name"] for c in contacts] == ["Bruno", "Anna"]


def test_new_primary_demotes_previous(client, company):
    first = add_contact(client, company["id"], "Anna", is_primary=True)
    second = add_contact(client, company["id"], "Bruno")

    response = client.put(f"{API}/contacts/{second['id']}", json={"is_primary": True})
    assert response.status_code == 200

    contacts = {c["id"]: c for c in client.get(f"{API}/companies/{company['id']}/contacts").json()}
    assert contacts[second["id"]]["is_primary"] is True
    assert contacts[first["id"]]["is_primary"] is False


def test_contacts_for_missing_company(client):
    assert client.get(f"{API}/companies/9999/contacts").status_code == 404
    response = client.post(f"{API}/companies/9999/contacts", json={"first_name": "Nobody"})
    assert response.status_code == 404


def test_project_with_primary_contact(client, company):
    contact = add_contact(client, company["id"], "Anna", is_primary=True)
    response = client.post(f"{API}/projects", json={
        "company_id": company["id"],
        "name": "Spring campaign",
        "primary_contact_id": contact["id"],
        "start_date": "2024-03-01",
    })
    assert response.status_code == 201
    project = response.json()
    assert project["status"] == "active"
    assert project["primary_contact_id"] == contact["id"]

    # deleting the contact clears the reference
    assert client.delete(f"{API}/contacts/{contact['id']}").status_code == 204
    assert client.get(f"{API}/projects/{project['id']}").json()["primary_contact_id"] is None


def test_project_contact_from_other_company(client, company):
    other = client.post(f"{API}/companies", json={"name": "Other Co"}).json()
    stranger = add_contact(client, other["id"], "Stranger")
    response = client.post(f"{API}/projects", json={
        "company_id": company["id"], "name": "Mixed", "primary_contact_id": stranger["id"],
    })
    assert response.status_code == 400


def test_project_crud(client, company):
    project = client.post(f"{API}/projects", json={"company_id": company["id"], "name": "Website"}).json()

    response = client.put(f"{API}/projects/{project['id']}", json={"status": "completed"})
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    listed = client.get(f"{API}/projects", params={"company_id": company["id"]}).json()
    assert [p["id"] for p in listed] == [project["id"]]

    assert client.delete(f"{API}/projects/{project['id']}").status_code == 204
    assert client.get(f"{API}/projects/{project['id']}").status_code == 404


def test_project_for_missing_company(client):
    response = client.post(f"{API}/projects", json={"company_id": 9999, "name": "Ghost"})
    assert response.status_code == 404
