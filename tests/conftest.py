from datetime import datetime, timedelta, timezone

import pytest

from prode import create_app, db
from prode.models import Match, User
from prode.services.store import PredictionStore
from prode.utils.timezone_utils import to_storage

PASSWORD = "Secret123"


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Pushed application context for tests that talk to the store directly"""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app_ctx):
    return PredictionStore(db.session)


@pytest.fixture
def make_user(app):
    def _make(username="ana", first_name=None, last_name=None, password=PASSWORD):
        with app.app_context():
            user = User(
                username=username,
                email=f"{username}@prode.com.ar",
                first_name=first_name,
                last_name=last_name,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture
def make_match(app):
    def _make(
        kickoff=None,
        home_score=None,
        away_score=None,
        home_team="River Plate",
        away_team="Monterrey",
        stage="Grupo E",
    ):
        if kickoff is None:
            kickoff = datetime.now(timezone.utc) + timedelta(days=1)
        with app.app_context():
            match = Match(
                home_team=home_team,
                away_team=away_team,
                match_date=to_storage(kickoff),
                stage=stage,
                home_score=home_score,
                away_score=away_score,
            )
            db.session.add(match)
            db.session.commit()
            return match.id

    return _make


@pytest.fixture
def login(client, make_user):
    """Create a user and sign the test client in as them; returns the user id"""

    def _login(username="ana", **kwargs):
        user_id = make_user(username, **kwargs)
        response = client.post(
            "/auth/login", json={"username": username, "password": PASSWORD}
        )
        assert response.status_code == 200
        return user_id

    return _login


@pytest.fixture
def make_prediction(app):
    def _make(user_id, match_id, home, away):
        with app.app_context():
            return PredictionStore(db.session).upsert_prediction(
                user_id, match_id, home, away
            )

    return _make
