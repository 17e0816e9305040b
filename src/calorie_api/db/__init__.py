"""Database module - MongoDB connection, stores, and Unit of Work."""

from .mongo import MongoDB
from .unit_of_work import UnitOfWork, build_unit_of_work

__all__ = ["MongoDB", "UnitOfWork", "build_unit_of_work"]
