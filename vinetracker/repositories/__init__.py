"""
Repository layer for the DuckDB order store.

- BaseRepository: Connection management and schema migration at connect
- OrderRepository: Order query engine, point updates and bulk import
"""
from vinetracker.repositories.base import BaseRepository
from vinetracker.repositories.orders import OrderRepository, close_repository, get_repository

__all__ = [
    "BaseRepository",
    "OrderRepository",
    "get_repository",
    "close_repository",
]
