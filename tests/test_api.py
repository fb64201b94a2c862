from datetime import datetime, timedelta, timezone

import pytest

from prode.errors import Conflict
from prode.services.store import PredictionStore

PASSWORD = "Secret123"


def now():
    return datetime.now(timezone.utc)


# Auth


def test_register_signs_the_user_in(client):
    response = client.post(
        "/auth/register",
        json={
            "username": "carla",
            "email": "carla@prode.com.ar",
            "first_name": "Carla",
            "last_name": "Gomez",
            "password": PASSWORD,
            "password_confirm": PASSWORD,
        },
    )

    assert response.status_code == 201
    assert response.get_json()["data"]["display_name"] == "Carla Gomez"
    assert client.get("/auth/me").get_json()["data"]["username"] == "carla"


@pytest.mark.parametrize(
    "overrides",
    [
        {"password": "short", "password_confirm": "short"},
        {"password": "alllowercase1", "password_confirm": "alllowercase1"},
        {"password_confirm": "Different123"},
        {"email": "not-an-email"},
        {"username": "no spaces"},
    ],
)
def test_register_rejects_invalid_data(client, overrides):
    body = {
        "username": "carla",
        "email": "carla@prode.com.ar",
        "password": PASSWORD,
        "password_confirm": PASSWORD,
    }
    body.update(overrides)

    response = client.post("/auth/register", json=body)

    assert response.status_code == 400
    assert response.get_json()["status"] == "bad_input"


def test_register_rejects_taken_username(client, make_user):
    make_user("carla")

    response = client.post(
        "/auth/register",
        json={
            "username": "carla",
            "email": "otra@prode.com.ar",
            "password": PASSWORD,
            "password_confirm": PASSWORD,
        },
    )

    assert response.status_code == 400


def test_login_with_wrong_password(client, make_user):
    make_user("ana")

    response = client.post(
        "/auth/login", json={"username": "ana", "password": "Wrong1234"}
    )

    assert response.status_code == 401
    assert response.get_json() == {
        "error": "Invalid username or password",
        "status": "unauthenticated",
    }


def test_logout(client, login):
    login()

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


# Matches


def test_matches_ordered_with_status(client, make_match):
    later = make_match(kickoff=now() + timedelta(days=2))
    live = make_match(kickoff=now() - timedelta(minutes=30))
    played = make_match(kickoff=now() - timedelta(days=1), home_score=1, away_score=0)

    data = client.get("/api/matches").get_json()["data"]

    assert [m["id"] for m in data] == [played, live, later]
    assert [m["status"] for m in data] == ["finished", "in_progress", "upcoming"]
    assert data[0]["home_score"] == 1


def test_upcoming_matches_keep_recent_kickoffs(client, make_match):
    make_match(kickoff=now() - timedelta(days=1))
    recent = make_match(kickoff=now() - timedelta(hours=1))
    later = make_match(kickoff=now() + timedelta(days=1))

    data = client.get("/api/matches?upcoming=1").get_json()["data"]

    assert [m["id"] for m in data] == [recent, later]


def test_matches_for_a_local_date(client, make_match):
    # 22:00 in Buenos Aires on the 14th is 01:00 UTC on the 15th
    evening = make_match(kickoff=datetime(2025, 6, 15, 1, 0, tzinfo=timezone.utc))
    make_match(kickoff=datetime(2025, 6, 15, 16, 0, tzinfo=timezone.utc))

    data = client.get("/api/matches?date=2025-06-14").get_json()["data"]

    assert [m["id"] for m in data] == [evening]


def test_matches_rejects_bad_date(client):
    response = client.get("/api/matches?date=14/06/2025")

    assert response.status_code == 400
    assert response.get_json()["status"] == "bad_input"


# Predictions


def test_submit_requires_login(client, make_match):
    match_id = make_match()

    response = client.post(
        "/api/predictions",
        json={"match_id": match_id, "predicted_home_score": 1, "predicted_away_score": 0},
    )

    assert response.status_code == 401
    assert response.get_json()["status"] == "unauthenticated"


def test_submit_and_resubmit(client, login, make_match):
    user_id = login()
    match_id = make_match()

    first = client.post(
        "/api/predictions",
        json={"match_id": match_id, "predicted_home_score": 2, "predicted_away_score": 1},
    )
    second = client.post(
        "/api/predictions",
        json={"match_id": str(match_id), "predicted_home_score": "0", "predicted_away_score": "0"},
    )

    assert first.status_code == 200
    assert second.status_code == 200
    assert "no-store" in second.headers["Cache-Control"]
    assert second.get_json()["data"]["id"] == first.get_json()["data"]["id"]
    assert second.get_json()["data"]["user_id"] == user_id

    current = client.get(f"/api/predictions?match_id={match_id}").get_json()["data"]
    assert (current["predicted_home_score"], current["predicted_away_score"]) == (0, 0)


@pytest.mark.parametrize(
    "body",
    [
        {"predicted_home_score": 1, "predicted_away_score": 0},
        {"match_id": "abc", "predicted_home_score": 1, "predicted_away_score": 0},
        {"match_id": 1, "predicted_home_score": -1, "predicted_away_score": 0},
        {"match_id": 1, "predicted_home_score": 1},
        {"match_id": 1, "predicted_home_score": "uno", "predicted_away_score": 0},
        [1, 2, 0],
    ],
)
def test_submit_rejects_bad_input(client, login, make_match, body):
    login()
    make_match()

    response = client.post("/api/predictions", json=body)

    assert response.status_code == 400
    assert response.get_json()["status"] == "bad_input"


def test_submit_after_kickoff_is_rejected(client, login, make_match):
    login()
    match_id = make_match(kickoff=now() - timedelta(minutes=10))

    response = client.post(
        "/api/predictions",
        json={"match_id": match_id, "predicted_home_score": 1, "predicted_away_score": 1},
    )

    assert response.status_code == 400
    assert "in progress" in response.get_json()["error"]


def test_submit_unknown_match(client, login):
    login()

    response = client.post(
        "/api/predictions",
        json={"match_id": 999, "predicted_home_score": 1, "predicted_away_score": 1},
    )

    assert response.status_code == 404
    assert response.get_json()["status"] == "not_found"


def test_get_prediction_when_none_exists(client, login, make_match):
    login()
    match_id = make_match()

    response = client.get(f"/api/predictions?match_id={match_id}")

    assert response.status_code == 200
    assert response.get_json() == {"data": None}


def test_get_prediction_requires_match_id(client, login):
    login()

    assert client.get("/api/predictions").status_code == 400


def test_submit_rejects_out_of_range_score(client, login, make_match):
    login()
    match_id = make_match()

    response = client.post(
        "/api/predictions",
        json={"match_id": match_id, "predicted_home_score": 10**20, "predicted_away_score": 0},
    )

    assert response.status_code == 400
    assert response.get_json()["status"] == "bad_input"


def test_get_prediction_rejects_out_of_range_match_id(client, login):
    login()

    response = client.get("/api/predictions?match_id=100000000000000000000")

    assert response.status_code == 400
    assert response.get_json()["status"] == "bad_input"


def test_predictions_are_private_to_each_user(client, login, make_match):
    match_id = make_match()
    login("ana")
    client.post(
        "/api/predictions",
        json={"match_id": match_id, "predicted_home_score": 3, "predicted_away_score": 0},
    )
    client.post("/auth/logout")

    login("beto")
    response = client.get(f"/api/predictions?match_id={match_id}")

    assert response.get_json() == {"data": None}


# Ranking and player view


def test_ranking(client, make_user, make_match, make_prediction):
    ana = make_user("ana", first_name="Ana")
    beto = make_user("beto")
    played = make_match(kickoff=now() - timedelta(days=1), home_score=2, away_score=0)
    make_prediction(beto, played, 1, 0)
    make_prediction(ana, played, 2, 0)

    body = client.get("/api/ranking").get_json()

    assert body["participants"] == 2
    assert [(e["position"], e["display_name"], e["points"]) for e in body["data"]] == [
        (1, "Ana", 3),
        (2, "beto", 1),
    ]


def test_ranking_empty(client):
    assert client.get("/api/ranking").get_json() == {"data": [], "participants": 0}


def test_my_prode(client, login, make_match, make_prediction):
    user_id = login()
    played = make_match(kickoff=now() - timedelta(days=1), home_score=1, away_score=1)
    make_match(kickoff=now() + timedelta(days=1))
    make_prediction(user_id, played, 0, 0)

    data = client.get("/api/my-prode").get_json()["data"]

    assert data["total_points"] == 1
    assert data["winner_predictions"] == 1
    assert [row["outcome"] for row in data["matches"]] == ["winner", None]


def test_my_prode_requires_login(client):
    assert client.get("/api/my-prode").status_code == 401


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_unresolved_conflict_is_an_internal_error(client, login, make_match, monkeypatch):
    def conflicting(self, *args, **kwargs):
        raise Conflict()

    monkeypatch.setattr(PredictionStore, "upsert_prediction", conflicting)
    login()
    match_id = make_match()

    response = client.post(
        "/api/predictions",
        json={"match_id": match_id, "predicted_home_score": 1, "predicted_away_score": 0},
    )

    assert response.status_code == 500
    assert response.get_json() == {
        "error": "Concurrent update conflict",
        "status": "internal",
    }
