# dac/result.py
"""
Outcome of a write operation.
"""

import logging
from typing import Any, Dict, Optional

from .context import Context, State
from .sqlbuilder import select

logger = logging.getLogger(__name__)


class Result:
    """
    Result of Table.insert / update / delete.

    Wraps the executor's outcome (rows affected, generated identifier) and the
    Context the write ran with. The record is only re-read from storage when
    :meth:`record` is called with ``refresh=True``.

    Example
    -------
    ::

        result = monks.insert(db, {'name': 'Tenzin'})
        result.rows_affected       # 1
        result.record()            # the record as written, defaults applied
        result.record(refresh=True)  # re-read, including the generated id
    """

    def __init__(self, context: Context, exec_result: Any):
        self.context = context
        self.exec_result = exec_result

    @property
    def rows_affected(self) -> int:
        return self.exec_result.rows_affected

    @property
    def last_insert_id(self) -> Any:
        return self.exec_result.last_insert_id

    def record(self, refresh: bool = False) -> Optional[Dict[str, Any]]:
        """
        Get the last written record.

        Args:
            refresh: Re-query the record from storage through the context's DataSet.

        Returns:
            The written record, or with ``refresh`` a copy merged with the stored
            row. None when refreshing finds no row.

        Raises:
            ConfigurationError: If refreshing a table without a primary key
            MissingValueError: If the record lacks a primary key value
        """
        if not refresh:
            return self.context.record

        record = dict(self.context.record)
        table = self.context.table
        auto_inc = table.auto_inc
        # only an auto-increment primary key can be resolved from the generated id
        if self.context.state == State.INSERT and auto_inc >= 0 and table.fields[auto_inc].primary_key:
            record[table.keys[auto_inc]] = self.last_insert_id

        where, args = table.where_primary_key(record)
        rows = self.context.dataset.select(self.context.db, select().where(where), *args)
        if not rows:
            logger.debug(f'Table {table.name}: record not found on refresh')
            return None
        record.update(rows[0])
        return record

    def __repr__(self) -> str:
        return f"Result('{self.context.state}', rows_affected={self.rows_affected})"
