# dac/context.py
"""
Per-operation context handed to write hooks and validation rules.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .field import Field


class State:
    """
    Kind of write operation a Context belongs to.

    - UNKNOWN: Not part of a write (e.g. a context built by hand)
    - INSERT: Table.insert
    - UPDATE: Table.update
    - DELETE: Table.delete
    """
    UNKNOWN = 'unknown'
    INSERT = 'insert'
    UPDATE = 'update'
    DELETE = 'delete'

    @classmethod
    def values(cls):
        return [getattr(cls, attr) for attr in dir(cls) if not attr.startswith('_') and attr.isupper()]


@dataclass(frozen=True)
class Context:
    """
    Environment of one Insert/Update/Delete call or one field validation.

    Attributes
    ----------
        state (str): One of the State constants
        db: Executor the operation runs on
        table (Table): Table being written
        record (dict): Record for the operation. For hooks this is the caller's
            record; during validation and in Results it is the engine's copy with
            resolved values.
        field (Field): Field under validation, None outside validation
        dataset (DataSet): DataSet the operation was issued through; the table
            itself unless a derived view delegated the write
    """
    state: str
    db: Any
    table: Any
    record: Dict[str, Any]
    field: Optional[Field] = None
    dataset: Any = None

    def __post_init__(self):
        if self.dataset is None:
            object.__setattr__(self, 'dataset', self.table)

    def replace(self, **changes) -> 'Context':
        """Return a copy with the given attributes changed."""
        return replace(self, **changes)
