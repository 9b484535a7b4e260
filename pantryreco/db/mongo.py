# pantryreco/db/mongo.py
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pantryreco.core.config import get_settings
from pantryreco.domain.errors import SearchBackendUnavailable
import certifi

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_db() -> AsyncIOMotorDatabase:
    if _db is None:
        # MONGO_URI unset or startup never ran: same failure as an unreachable cluster
        raise SearchBackendUnavailable("Mongo DB not initialized")
    return _db


def _new_client(uri: str) -> AsyncIOMotorClient:
    tls_opts = {}
    if uri.startswith("mongodb+srv"):
        # Atlas SRV implies TLS; explicit CA bundle for slim containers
        tls_opts = {"tls": True, "tlsCAFile": certifi.where()}
    return AsyncIOMotorClient(
        uri,
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=6000,
        connectTimeoutMS=6000,
        **tls_opts,
    )


async def connect():
    """
    Create the Motor client. A failed startup ping does not abort: the client is
    lazy and the first real query retries the connection.
    """
    global _client, _db
    settings = get_settings()

    _client = _new_client(settings.MONGO_URI)
    _db = _client[settings.MONGO_DB]
    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok)")
    except Exception as e:
        logger.warning(f"Mongo ping at startup failed, connection will be retried lazily: {e}")


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
