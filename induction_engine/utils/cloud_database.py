# induction_engine/utils/cloud_database.py
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from induction_engine.config import settings
from induction_engine.utils.cloud_database_mock import MockCloudDatabaseManager

logger = logging.getLogger(__name__)

# Collection names shared by the loader, recorder and stores
TRAINSETS = "trainsets"
BRANDING_CONTRACTS = "branding_contracts"
MILEAGE_BALANCES = "mileage_balances"
STABLING_GEOMETRY = "stabling_geometry"
CLEANING_SLOTS = "cleaning_slots"
SCORING_CONFIG = "scoring_config"
INDUCTION_RUNS = "induction_runs"
SIMULATION_SCENARIOS = "simulation_scenarios"


async def create_indexes(manager) -> None:
    """Indexes the recorder and stores rely on"""
    runs = await manager.get_collection(INDUCTION_RUNS)
    await runs.create_index([("run_id", ASCENDING)], unique=True)
    await runs.create_index([("created_at", DESCENDING)])

    scenarios = await manager.get_collection(SIMULATION_SCENARIOS)
    await scenarios.create_index([("simulation_id", ASCENDING)], unique=True)

    config = await manager.get_collection(SCORING_CONFIG)
    await config.create_index([("key", ASCENDING)], unique=True)
    logger.info("Database indexes ensured")


class CloudDatabaseManager:
    """MongoDB database manager"""

    def __init__(self):
        self.mongodb_client: Optional[AsyncIOMotorClient] = None
        self.mongodb_db = None
        self.connections = {"mongodb": False}

    async def connect_mongodb(self):
        """Connect to MongoDB"""
        try:
            logger.info("Connecting to MongoDB...")
            self.mongodb_client = AsyncIOMotorClient(settings.mongodb_url)
            self.mongodb_db = self.mongodb_client[settings.database_name]

            # Test connection
            await self.mongodb_client.admin.command("ping")
            self.connections["mongodb"] = True
            logger.info("MongoDB connected successfully")

        except Exception as e:
            logger.error(f"MongoDB connection failed: {e}")
            self.connections["mongodb"] = False
            raise

    async def connect_all(self):
        await self.connect_mongodb()

    async def ensure_indexes(self):
        await create_indexes(self)

    async def close_all(self):
        """Close the MongoDB connection"""
        if self.mongodb_client:
            self.mongodb_client.close()
            self.connections["mongodb"] = False
            logger.info("MongoDB connection closed")

    async def get_collection(self, name: str):
        """Get MongoDB collection"""
        if not self.connections["mongodb"]:
            raise ConnectionFailure("MongoDB not connected")
        return self.mongodb_db[name]

    def get_connection_status(self) -> Dict[str, bool]:
        return self.connections.copy()

    async def health_check(self) -> Dict[str, Any]:
        health_status = {
            "overall": True,
            "services": {},
            "timestamp": datetime.now().isoformat(),
        }
        try:
            if self.connections["mongodb"]:
                await self.mongodb_client.admin.command("ping")
                health_status["services"]["mongodb"] = {"status": "healthy", "details": "Connected"}
            else:
                health_status["services"]["mongodb"] = {"status": "unhealthy", "details": "Not connected"}
                health_status["overall"] = False
        except Exception as e:
            health_status["services"]["mongodb"] = {"status": "unhealthy", "details": str(e)}
            health_status["overall"] = False
        return health_status


def create_manager():
    if settings.database_backend.lower() == "memory":
        logger.info("Using in-memory database backend")
        return MockCloudDatabaseManager()
    return CloudDatabaseManager()


cloud_db_manager = create_manager()
