"""
Tests for the adopted-device store against a mocked asyncpg pool.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from database.manager import DatabaseManager
from database.models import AdoptedDeviceRecord
from discovery.models import Device


CONFIG = {'database': {'host': 'localhost', 'port': 5432, 'database': 'devices_db',
                       'username': 'postgres', 'password': 'postgres'}}


def mock_pool(conn):
    pool = MagicMock()
    acquire = MagicMock()
    acquire.__aenter__ = AsyncMock(return_value=conn)
    acquire.__aexit__ = AsyncMock(return_value=False)
    pool.acquire.return_value = acquire
    pool.close = AsyncMock()
    return pool


@pytest.fixture
def conn():
    return AsyncMock()


@pytest.fixture
def db(conn):
    manager = DatabaseManager(CONFIG)
    manager.pool = mock_pool(conn)
    return manager


DEVICE = Device(id="shelly-192-168-1-60", name="Garage", type="light", address="192.168.1.60",
                protocol="shelly", last_seen=0)


@pytest.mark.asyncio
async def test_adopt_returns_record_id(db, conn):
    conn.fetchval.return_value = "abc123"

    assert await db.adopt_device("owner-1", DEVICE) == "abc123"

    sql, *args = conn.fetchval.call_args.args
    assert "ON CONFLICT (owner_id, device_id)" in sql
    assert args[1:7] == ["owner-1", "shelly-192-168-1-60", "Garage", "light", "shelly", "192.168.1.60"]


@pytest.mark.asyncio
async def test_adopt_failure_returns_none(db, conn):
    conn.fetchval.side_effect = RuntimeError("connection reset")
    assert await db.adopt_device("owner-1", DEVICE) is None


@pytest.mark.asyncio
async def test_adopted_devices_are_mapped(db, conn):
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    conn.fetch.return_value = [{
        'record_id': "abc123", 'owner_id': "owner-1", 'device_id': DEVICE.id, 'name': "Garage",
        'type': "light", 'protocol': "shelly", 'ip_address': "192.168.1.60",
        'created_at': created, 'last_seen': created,
    }]

    records = await db.get_adopted_devices("owner-1")

    assert len(records) == 1
    assert isinstance(records[0], AdoptedDeviceRecord)
    assert records[0].address == "192.168.1.60"
    assert records[0].to_dict()["recordId"] == "abc123"


@pytest.mark.asyncio
async def test_schema_creation(db, conn):
    await db.create_schema()
    assert "CREATE TABLE IF NOT EXISTS adopted_devices" in conn.execute.call_args.args[0]


@pytest.mark.asyncio
async def test_close(db):
    pool = db.pool
    await db.close()
    pool.close.assert_awaited_once()
