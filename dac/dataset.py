# dac/dataset.py
"""
DataSet: the capability shared by tables and derived views.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class DataSet(ABC):
    """
    Something records can be selected from and written to.

    Table is the canonical implementation; Query is a pre-filtered view over a
    Table. Result.record(refresh=True) re-reads through whichever DataSet the
    write was issued on.
    """

    @abstractmethod
    def select(self, db, clauses: Any = '', *args) -> List[Dict[str, Any]]:
        """Select records. ``clauses`` is a SQL suffix or a Selector."""

    @abstractmethod
    def insert(self, db, record: Dict[str, Any]):
        """Insert a record and return a Result."""

    @abstractmethod
    def update(self, db, record: Dict[str, Any]):
        """Update the record addressed by its primary key and return a Result."""

    @abstractmethod
    def delete(self, db, record: Dict[str, Any]):
        """Delete the record addressed by its primary key and return a Result."""
