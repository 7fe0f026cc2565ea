import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from config.settings import MONGO_DB_NAME, MONGO_URI
from utils.errors import PersistenceError

logger = logging.getLogger(__name__)

CANDIDATES = "candidates"
REQUESTS = "requests"
MATCHES = "matches"


def get_client(uri: str = None) -> MongoClient:
    uri = uri or MONGO_URI
    if not uri:
        raise ValueError("MONGO_URI not set in environment variables")
    client = MongoClient(uri, serverSelectionTimeoutMS=5000)
    try:
        client.server_info()
    except PyMongoError as e:
        raise PersistenceError(f"MongoDB unreachable at {uri}: {e}") from e
    return client


def get_database(client: MongoClient = None, name: str = None):
    client = client or get_client()
    return client[name or MONGO_DB_NAME]


def create_indexes(db):
    candidates = db[CANDIDATES]
    candidates.create_index("candidate_id", unique=True)
    # One candidate per email; documents stored without email_key are not indexed
    candidates.create_index("email_key", unique=True, sparse=True)
    candidates.create_index([("name_key", ASCENDING), ("updated_at", DESCENDING)])

    requests = db[REQUESTS]
    requests.create_index("request_id", unique=True)
    # Upstream message ids are optional; only present ones must be unique
    requests.create_index("source_message_id", unique=True, sparse=True)
    requests.create_index("status")

    db[MATCHES].create_index([("requirement_id", ASCENDING), ("score", DESCENDING)])
    logger.debug("Indexes ensured on %s", db.name)
