from .connection import MongoConnector, ensure_indexes, get_db

__all__ = ["MongoConnector", "ensure_indexes", "get_db"]
