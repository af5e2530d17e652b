"""Test fixtures — in-memory SQLite database, mocked machine handles and test client."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from mountgate.api.deps import get_file_service
from mountgate.config import settings
from mountgate.database import (
    MEMORY,
    build_engine,
    build_session_factory,
    create_tables,
    database_url,
    get_db,
)
from mountgate.main import create_app
from mountgate.models.file_mount import FileMount
from mountgate.models.machine import Machine
from mountgate.services.machine_file_service import MachineFileService
from mountgate.services.mount_store import FileMountStore
from mountgate.services.remote import CommandResult, MachineInfo


@pytest_asyncio.fixture
async def db_session():
    """Provide an async in-memory SQLite session for tests."""
    engine = build_engine(database_url(MEMORY))
    await create_tables(engine)

    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def machine(db_session: AsyncSession) -> Machine:
    m = Machine(name="web-1", ip="10.0.0.5", port=22, username="deploy", password="secret")
    db_session.add(m)
    await db_session.commit()
    await db_session.refresh(m)
    return m


@pytest_asyncio.fixture
async def mount(db_session: AsyncSession, machine: Machine) -> FileMount:
    """A mount rooted at /srv/app on the test machine."""
    fm = FileMount(machine_id=machine.id, name="app", path="/srv/app", type=1)
    db_session.add(fm)
    await db_session.commit()
    await db_session.refresh(fm)
    return fm


@pytest.fixture
def remote_file():
    f = MagicMock()
    f.read = AsyncMock(return_value=b"")
    f.write = AsyncMock(side_effect=lambda data: len(data))
    f.close = AsyncMock()
    return f


@pytest.fixture
def handle(remote_file):
    """Mocked MachineHandle; every capability is an AsyncMock spy."""
    h = MagicMock()
    h.machine = MachineInfo(id=1, name="web-1", ip="10.0.0.5", port=22, username="deploy")
    h.execute = AsyncMock(return_value=CommandResult(output="", exit_status=0))
    h.read_dir = AsyncMock(return_value=[])
    h.open = AsyncMock(return_value=remote_file)
    h.create = AsyncMock(return_value=remote_file)
    h.open_read_write = AsyncMock(return_value=remote_file)
    h.mkdir_all = AsyncMock()
    h.remove_all = AsyncMock()
    h.rename = AsyncMock()
    h.close = AsyncMock()
    return h


@pytest.fixture
def resolver(handle):
    r = MagicMock()
    r.get_handle = AsyncMock(return_value=handle)
    return r


@pytest.fixture
def service(db_session, resolver):
    return MachineFileService(FileMountStore(db_session), resolver, timeout=5, chunk_size=4)


def make_token(username: str = "alice", uid: int | None = 7, secret: str = settings.secret_key) -> str:
    claims: dict = {"sub": username}
    if uid is not None:
        claims["uid"] = uid
    return jwt.encode(claims, secret, algorithm=settings.token_algorithm)


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, service: MachineFileService):
    """Provide an async test client with overridden DB and gateway dependencies."""
    app = create_app()

    async def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_file_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
