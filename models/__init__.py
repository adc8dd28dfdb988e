"""
Models package: SQLAlchemy models and the DBStorage singleton.

``storage`` is created on first import and bound to DATABASE_URL.
"""
from models.db_storage import DBStorage

storage = DBStorage()
storage.reload()
