import os
import sys
import pytest

# Ensure the backend root (containing the `gridiron` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from gridiron import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = 'INFO'
    GAME_CODE_LENGTH = 6
    QUARTER_SECONDS = 900
    PLAY_CLOCK_SECONDS = 40
    SECONDS_PER_PLAY = 30
    QUARTERS = 4
    TRIVIA_TARGET_SCORE = 25
    TRIVIA_BLOCK_SIZE = 20
    TRIVIA_ANSWER_DURATION_SEC = 0
    TIMER_HEARTBEAT_SEC = 0
    OPENTDB_URL = 'https://opentdb.test/api.php'
    OPENTDB_TIMEOUT_SEC = 1
    OPENTDB_AUTO_IMPORT = False


class FixedRng:
    """Deterministic stand-in for random.Random: always the low end."""

    def randint(self, a, b):
        return a

    def choice(self, seq):
        return seq[0]

    def shuffle(self, seq):
        pass

    def random(self):
        return 0.0


class Api:
    """Thin JSON helper over the Flask test client."""

    def __init__(self, client):
        self.client = client

    def post(self, url, **body):
        return self.client.post(url, json=body)

    def ok(self, url, **body):
        res = self.post(url, **body)
        assert res.status_code < 300, res.get_json()
        return res.get_json()

    def get(self, url):
        res = self.client.get(url)
        assert res.status_code == 200, res.get_json()
        return res.get_json()

    def create_lobby(self, name='Ref', mode='football'):
        data = self.ok('/api/lobby/create', display_name=name, mode=mode)
        return data['game_code'], data['player']

    def join(self, code, name):
        return self.ok('/api/lobby/join', display_name=name, game_code=code)['player']


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import gridiron.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def api(client):
    return Api(client)


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def fixed_rng(monkeypatch):
    """Make every service's default RNG deterministic."""
    from gridiron.services import football, plays, questions, trivia
    rng = FixedRng()
    for module in (football, plays, questions, trivia):
        monkeypatch.setattr(module, '_rng', rng)
    return rng


@pytest.fixture()
def add_questions(flask_app):
    """Insert ``n`` questions whose correct answer is always choice 0."""
    from gridiron.models import Question

    def _add(n, difficulty='easy', category='Sports'):
        rows = [
            Question(
                text=f'{category} question {i}',
                choices=['right', 'wrong a', 'wrong b', 'wrong c'],
                correct_index=0,
                difficulty=difficulty,
                category=category,
                type='multiple',
            )
            for i in range(n)
        ]
        db.session.add_all(rows)
        db.session.commit()
        return rows

    return _add


@pytest.fixture()
def football_lobby(api):
    """A started football game: ref host, one home and one away player."""
    code, ref = api.create_lobby('Ref', 'football')
    home = api.join(code, 'Hank')
    away = api.join(code, 'Abby')
    api.ok(f'/api/lobby/{code}/side', requester_id=ref['id'], player_id=home['id'], side='home')
    api.ok(f'/api/lobby/{code}/side', requester_id=ref['id'], player_id=away['id'], side='away')
    api.ok(f'/api/lobby/{code}/ready', player_id=home['id'], ready=True)
    api.ok(f'/api/lobby/{code}/ready', player_id=away['id'], ready=True)
    api.ok(f'/api/lobby/{code}/start', requester_id=ref['id'])
    return {'code': code, 'ref': ref, 'home': home, 'away': away}


@pytest.fixture()
def football_drive(api, football_lobby, fixed_rng):
    """Away wins the toss (coin lands heads), receives, and takes the touchback."""
    code = football_lobby['code']
    ref, away = football_lobby['ref'], football_lobby['away']
    api.ok(f'/api/games/{code}/coin-toss/start', requester_id=ref['id'])
    api.ok(f'/api/games/{code}/coin-toss/flip', player_id=away['id'], away_call='heads')
    api.ok(f'/api/games/{code}/coin-toss/choose', player_id=away['id'], choice='receive')
    api.ok(f'/api/games/{code}/kickoff', player_id=ref['id'])
    return football_lobby
