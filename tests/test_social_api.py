# tests/test_social_api.py
import pytest

from clinic_crm import crud
from clinic_crm.scheduling.calendar import CalendarPost, CalendarState, drop, reconcile, start_drag

API = "/api/v1/social"


@pytest.fixture
def social_project(client):
    response = client.post(f"{API}/projects", json={"name": "Clinic Instagram", "platforms": ["instagram"]})
    assert response.status_code == 201
    return response.json()


def add_post(client, project_id, title, scheduled_date=None, **extra):
    payload = {"title": title, "scheduled_date": scheduled_date, **extra}
    response = client.post(f"{API}/projects/{project_id}/posts", json=payload)
    assert response.status_code == 201
    return response.json()


def test_post_defaults(client, social_project):
    post = add_post(client, social_project["id"], "Welcome post")
    assert post["workflow_status"] == "new"
    assert post["shoot_status"] == "pending"
    assert post["post_type"] == "organic"
    assert post["scheduled_date"] is None
    assert post["project_id"] == social_project["id"]


def test_posts_filtered_by_month(client, social_project):
    add_post(client, social_project["id"], "March A", "2024-03-05T14:30:00")
    add_post(client, social_project["id"], "April", "2024-04-01T09:00:00")
    add_post(client, social_project["id"], "March B", "2024-03-01T08:00:00")

    march = client.get(f"{API}/projects/{social_project['id']}/posts", params={"year": 2024, "month": 3}).json()
    assert [p["title"] for p in march] == ["March B", "March A"]

    every = client.get(f"{API}/projects/{social_project['id']}/posts").json()
    assert len(every) == 3


def test_december_filter_rolls_over_year(client, social_project):
    add_post(client, social_project["id"], "Holiday", "2024-12-31T18:00:00")
    add_post(client, social_project["id"], "New year", "2025-01-01T10:00:00")
    december = client.get(f"{API}/projects/{social_project['id']}/posts", params={"year": 2024, "month": 12}).json()
    assert [p["title"] for p in december] == ["Holiday"]


def test_reschedule_sets_fixed_drop_time(client, social_project):
    post = add_post(client, social_project["id"], "Before/after reel", "2024-03-05T14:30:00")
    response = client.post(f"{API}/posts/{post['id']}/reschedule", json={"target_date": "2024-03-20"})
    assert response.status_code == 200
    assert response.json()["scheduled_date"] == "2024-03-20T10:00:00"
    assert client.get(f"{API}/posts/{post['id']}").json()["scheduled_date"] == "2024-03-20T10:00:00"


def test_reschedule_unscheduled_post(client, social_project):
    post = add_post(client, social_project["id"], "Idea")
    response = client.post(f"{API}/posts/{post['id']}/reschedule", json={"target_date": "2024-05-02"})
    assert response.json()["scheduled_date"] == "2024-05-02T10:00:00"


def test_reschedule_missing_post(client):
    response = client.post(f"{API}/posts/9999/reschedule", json={"target_date": "2024-03-20"})
    assert response.status_code == 404


def test_reschedule_invalid_date(client, social_project):
    post = add_post(client, social_project["id"], "Reel")
    response = client.post(f"{API}/posts/{post['id']}/reschedule", json={"target_date": "2024-02-30"})
    assert response.status_code == 422


def test_update_and_delete_post(client, social_project):
    post = add_post(client, social_project["id"], "Draft")
    response = client.put(f"{API}/posts/{post['id']}", json={"workflow_status": "client_approval", "caption": "Hi"})
    assert response.status_code == 200
    assert response.json()["workflow_status"] == "client_approval"
    assert response.json()["caption"] == "Hi"

    assert client.delete(f"{API}/posts/{post['id']}").status_code == 204
    assert client.get(f"{API}/posts/{post['id']}").status_code == 404


def test_posts_for_missing_project(client):
    assert client.get(f"{API}/projects/9999/posts").status_code == 404
    response = client.post(f"{API}/projects/9999/posts", json={"title": "Lost"})
    assert response.status_code == 404


def test_drop_persist_and_reconcile(db, client, social_project):
    post = add_post(client, social_project["id"], "Reel", "2024-03-05T14:30:00")
    state = CalendarState(
        year=2024, month=3,
        posts=tuple(CalendarPost.from_orm(p) for p in crud.get_posts(db, social_project["id"], 2024, 3)),
    )
    state = drop(start_drag(state, post["id"]), crud.get_post(db, post["id"]).scheduled_date.date().replace(day=20))

    result = crud.reschedule_post(db, post["id"], state.get_post(post["id"]).scheduled_date.date())
    assert result.ok
    state = reconcile(state, result, None)
    assert state.get_post(post["id"]).scheduled_date == result.scheduled_date


def test_failed_persist_restores_stored_post(db, client, social_project):
    post = add_post(client, social_project["id"], "Reel", "2024-03-05T14:30:00")
    state = CalendarState(year=2024, month=3, posts=(CalendarPost.from_orm(crud.get_post(db, post["id"])),))
    state = drop(start_drag(state, post["id"]), crud.get_post(db, post["id"]).scheduled_date.date().replace(day=20))

    crud.delete_post(db, post["id"])
    result = crud.reschedule_post(db, post["id"], state.get_post(post["id"]).scheduled_date.date())
    assert not result.ok
    assert result.error == "Post not found."

    stored = crud.get_post(db, post["id"])
    state = reconcile(state, result, CalendarPost.from_orm(stored) if stored else None)
    assert state.posts == ()


def test_month_calendar_view(client, social_project):
    reel = add_post(client, social_project["id"], "Reel", "2024-01-05T14:30:00")
    add_post(client, social_project["id"], "Next month", "2024-02-05T09:00:00")

    response = client.get(f"{API}/projects/{social_project['id']}/calendar", params={"year": 2024, "month": 1})
    assert response.status_code == 200
    data = response.json()
    # January 2024 starts on a Monday: one padding cell
    assert data["cells"][0] == {"day": None, "post_ids": []}
    assert data["cells"][1]["day"] == 1
    assert len(data["cells"]) == 32
    assert data["cells"][5] == {"day": 5, "post_ids": [reel["id"]]}
    assert [p["title"] for p in data["posts"]] == ["Reel"]


def test_month_calendar_requires_month(client, social_project):
    response = client.get(f"{API}/projects/{social_project['id']}/calendar", params={"year": 2024, "month": 13})
    assert response.status_code == 422
