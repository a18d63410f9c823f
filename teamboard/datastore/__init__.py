"""
Data store adapters.

- ``RestDataStore`` talks to the hosted database over its table API.
- ``SqlDataStore`` uses the local Flask-SQLAlchemy database.
"""

from .base import TABLES, DataStore, Row
from .rest import RestDataStore

__all__ = ["TABLES", "DataStore", "RestDataStore", "Row"]
