import os
import sys
import tempfile
from pathlib import Path
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Configure test environment before the package reads it
_TMP = tempfile.mkdtemp(prefix='famchat-tests-')
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{os.path.join(_TMP, 'famchat.db')}"
os.environ['JWT_SECRET'] = 'test-secret'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['METRICS_PORT'] = '0'
os.environ['SESSION_TRANSPORT'] = 'bearer'

# Ensure the package root is on sys.path when pytest changes CWD to this tests dir
HERE = Path(__file__).resolve()
PKG_ROOT = HERE.parents[2]
if str(PKG_ROOT) not in sys.path:
    sys.path.insert(0, str(PKG_ROOT))

from famchat.models import engine, init_models, drop_models  # noqa: E402
from famchat.main import create_app  # noqa: E402
from famchat.schemas.users import RegisterIn  # noqa: E402
from famchat import crud  # noqa: E402


@pytest_asyncio.fixture
async def db():
    await drop_models()
    await init_models()
    yield
    await engine.dispose()


@pytest.fixture
def app():
    return create_app()


@pytest_asyncio.fixture
async def client(app, db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac


@pytest_asyncio.fixture
async def users(db):
    """alice, bob and carol, created straight through the credential store."""
    created = {}
    for name in ('alice', 'bob', 'carol'):
        created[name] = await crud.create_user(RegisterIn(
            username=name,
            email=f'{name}@example.com',
            password='password123',
        ))
    return created


class FakeConnection:
    def __init__(self):
        self.sent = []

    async def send_json(self, payload):
        self.sent.append(payload)


class BrokenConnection:
    async def send_json(self, payload):
        raise RuntimeError('socket closed')


def bearer(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


async def register(ac, username: str, password: str = 'password123', **extra):
    r = await ac.post('/api/auth/register', json={
        'username': username,
        'email': f'{username}@example.com',
        'password': password,
        **extra,
    })
    assert r.status_code == 201, r.text
    return r.json()


async def connect(ac, requester: dict, target: dict):
    r = await ac.post('/api/contacts/add', json={'username': target['user']['username']}, headers=bearer(requester['access_token']))
    assert r.status_code == 200, r.text
    r = await ac.post(f"/api/contacts/accept/{requester['user']['id']}", headers=bearer(target['access_token']))
    assert r.status_code == 200, r.text
