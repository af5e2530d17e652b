"""Tests for the storage engine helpers."""

import pytest
from sqlalchemy import inspect, text

from mountgate.database import build_engine, build_session_factory, create_tables, database_url
from mountgate.models.machine import Machine


@pytest.mark.asyncio
async def test_file_database_uses_wal_and_has_tables(tmp_path):
    engine = build_engine(database_url(tmp_path / "mountgate.db"))
    try:
        await create_tables(engine)
        async with engine.connect() as conn:
            mode = (await conn.execute(text("PRAGMA journal_mode"))).scalar()
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert mode == "wal"
        assert {"machines", "machine_files"} <= set(tables)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_rows_stay_readable_after_commit(tmp_path):
    engine = build_engine(database_url(tmp_path / "mountgate.db"))
    try:
        await create_tables(engine)
        async with build_session_factory(engine)() as session:
            machine = Machine(name="web-1", ip="10.0.0.5", username="deploy")
            session.add(machine)
            await session.commit()
            assert machine.name == "web-1"
    finally:
        await engine.dispose()
