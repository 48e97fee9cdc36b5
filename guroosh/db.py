# guroosh/db.py
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from guroosh.settings import settings

mongo_client: AsyncIOMotorClient | None = None


async def connect_to_mongo() -> AsyncIOMotorDatabase:
    """
    Open the shared client and return the Guroosh database handle.
    The lifespan stores it on app.state.mongodb.
    """
    global mongo_client
    mongo_client = AsyncIOMotorClient(settings.mongodb_uri, uuidRepresentation="standard")
    return mongo_client[settings.mongodb_db]


async def close_mongo_connection():
    global mongo_client
    if mongo_client:
        mongo_client.close()
        mongo_client = None


async def ping(db: AsyncIOMotorDatabase) -> bool:
    try:
        await db.command("ping")
        return True
    except Exception as e:
        print("[DB] Mongo health ping failed:", repr(e))
        return False


def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Route dependency: the handle the lifespan stored on app.state."""
    return request.app.state.mongodb
