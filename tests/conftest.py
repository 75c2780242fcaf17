import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.gettempdir(), "lecturer-rating-test.db"
)
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.core.auth import get_password_hash  # noqa: E402
from app.core.database import AsyncSessionLocal, create_tables, drop_tables  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Admin  # noqa: E402

ADMIN_EMAIL = "admin@university.edu"
ADMIN_PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture(scope="function")
async def database():
    await drop_tables()
    await create_tables()
    yield
    await drop_tables()


@pytest_asyncio.fixture
async def async_session(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def client(database):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_user(async_session):
    admin = Admin(name="Head of Faculty", email=ADMIN_EMAIL, hashed_password=get_password_hash(ADMIN_PASSWORD))
    async_session.add(admin)
    await async_session.commit()
    await async_session.refresh(admin)
    return admin


@pytest_asyncio.fixture
async def admin_headers(client, admin_user):
    response = await client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def module_payload():
    return {
        "lecturer_name": "Dr. Ada Mensah",
        "module_name": "Distributed Systems",
        "module_description": "Consensus, replication and fault tolerance",
        "module_objectives": "Reason about failure in networked programs",
        "email": "a.mensah@university.edu",
    }


@pytest_asyncio.fixture
async def module(client, admin_headers, module_payload):
    response = await client.post("/admin/modules", json=module_payload, headers=admin_headers)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def rating_payload():
    def build(module_id, scores=(4, 3, 5, 2, 4), remarks=None):
        payload = {"lecturer_module_id": module_id}
        for index, score in enumerate(scores, start=1):
            payload[f"criteria_{index}_score"] = score
        if remarks is not None:
            payload["remarks"] = remarks
        return payload
    return build
