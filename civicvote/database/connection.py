import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from civicvote import config

logger = logging.getLogger(__name__)


def ensure_indexes(db: Database) -> None:
    """Declare the storage-level invariants the services rely on."""
    voters = db[config.VOTERS_COLLECTION_NAME]
    voters.create_index("nationalId", unique=True)
    # At most one admin account.
    voters.create_index(
        "role",
        unique=True,
        partialFilterExpression={"role": "admin"},
        name="single_admin",
    )

    # One ballot per (election, voter).
    db[config.BALLOTS_COLLECTION_NAME].create_index(
        [("electionId", ASCENDING), ("voterId", ASCENDING)],
        unique=True,
        name="one_ballot_per_election",
    )
    db[config.ELECTIONS_COLLECTION_NAME].create_index([("dateOfElection", DESCENDING)])


class MongoConnector:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super(MongoConnector, cls).__new__(cls)
            try:
                instance.client = MongoClient(config.MONGO_URI)
                instance.db = instance.client[config.MONGO_DB]
                instance.client.server_info()
                ensure_indexes(instance.db)
                logger.info(f"Connected to MongoDB: {config.MONGO_DB}")
            except Exception as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise
            cls._instance = instance
        return cls._instance

    def close(self):
        self.client.close()
        MongoConnector._instance = None
        logger.info("MongoDB connection closed")


def get_db() -> Database:
    """FastAPI dependency returning the application database."""
    return MongoConnector().db
