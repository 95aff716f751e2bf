from models.db_storage import DBStorage
from models.token_store import RefreshTokenStore

__all__ = ["DBStorage", "RefreshTokenStore"]
