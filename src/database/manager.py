"""
Database manager for PostgreSQL operations
Durable store for devices adopted into a user's permanent device list
"""

import uuid
import asyncpg
import logging
from typing import Dict, List, Optional
from datetime import datetime, timezone

from discovery.models import Device
from .models import AdoptedDeviceRecord, _convert_ip_address

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages PostgreSQL operations for adopted devices"""

    def __init__(self, config: Dict):
        self.config = config
        self.pool = None
        self.db_host = config['database']['host']
        self.db_port = config['database']['port']
        self.db_name = config['database']['database']
        self.db_user = config['database']['username']
        self.db_password = config['database']['password']

    async def initialize(self):
        """Initialize database connection pool and schema"""
        try:
            self.pool = await asyncpg.create_pool(
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
                user=self.db_user,
                password=self.db_password,
                min_size=1,
                max_size=5,
                command_timeout=10
            )

            logger.info("Database connection pool created")

            await self.create_schema()
            logger.info("Database schema initialized")

        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    async def create_schema(self):
        """Create database tables if they don't exist"""
        schema_sql = """
        CREATE TABLE IF NOT EXISTS adopted_devices (
            record_id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL,
            device_id TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            protocol TEXT NOT NULL DEFAULT 'unknown',
            ip_address INET NOT NULL,
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            last_seen TIMESTAMPTZ,
            UNIQUE (owner_id, device_id)
        );

        CREATE INDEX IF NOT EXISTS idx_adopted_devices_owner ON adopted_devices (owner_id);
        """

        async with self.pool.acquire() as conn:
            await conn.execute(schema_sql)

    async def adopt_device(self, owner_id: str, device: Device) -> Optional[str]:
        """
        Create the durable record for a discovered device and return its id
        Adopting the same device twice for one owner returns the existing id
        """
        try:
            now = datetime.now(timezone.utc)
            async with self.pool.acquire() as conn:
                record_id = await conn.fetchval("""
                    INSERT INTO adopted_devices (
                        record_id, owner_id, device_id, name, type, protocol,
                        ip_address, created_at, last_seen
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    ON CONFLICT (owner_id, device_id) DO UPDATE SET
                        name = $4,
                        ip_address = $7,
                        last_seen = $9
                    RETURNING record_id
                """,
                uuid.uuid4().hex, owner_id, device.id, device.name, device.type,
                device.protocol or 'unknown', device.address, now, now
                )
            logger.info(f"[DB] Adopted {device.name} ({device.address}) for owner {owner_id}")
            return record_id
        except Exception as e:
            logger.error(f"Failed to adopt device {device.id} for owner {owner_id}: {e}")
            return None

    async def get_adopted_devices(self, owner_id: str) -> List[AdoptedDeviceRecord]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT record_id, owner_id, device_id, name, type, protocol,
                           ip_address, created_at, last_seen
                    FROM adopted_devices
                    WHERE owner_id = $1
                    ORDER BY created_at
                """, owner_id)

                return [AdoptedDeviceRecord(
                    record_id=row['record_id'],
                    owner_id=row['owner_id'],
                    device_id=row['device_id'],
                    name=row['name'],
                    type=row['type'],
                    protocol=row['protocol'],
                    address=_convert_ip_address(row['ip_address']),
                    created_at=row['created_at'],
                    last_seen=row['last_seen']
                ) for row in rows]

        except Exception as e:
            logger.error(f"Failed to get adopted devices for {owner_id}: {e}")
            return []

    async def close(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            logger.info("Database connection pool closed")
