# dac/database.py
"""
Executor wrapper that gives the table engine a uniform interface
to DB-API 2.0 connections.

The engine only needs three things from an executor: run a query and hand back
a cursor, run a query and hand back one row, and run a statement and report
what happened. Any object offering ``query``, ``query_row`` and ``execute`` with
the signatures below can be passed where a ``Database`` is expected.
"""

import importlib
import itertools
import logging
import re
from collections import namedtuple
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)
__all__ = ['Database', 'ExecResult', 'ParamStyle', 'convert_placeholders']

ExecResult = namedtuple('ExecResult', ['rows_affected', 'last_insert_id'])
ExecResult.__doc__ = """Outcome of a write statement: rows affected and the generated identifier (if any)."""


class ParamStyle:
    """
    SQL parameter placeholder styles for different database drivers.

    Generated SQL always uses question marks. Drivers that expect another
    style get the statement rewritten before execution:

    - QMARK: Question mark placeholders (?, ?) - SQLite, ODBC
    - NUMERIC: Numeric placeholders (:1, :2) - Oracle
    - NAMED: Named placeholders, :1 also accepted for positional - Oracle, psycopg2
    - FORMAT: Printf-style (%s, %s) - MySQL (MySQLdb)
    - PYFORMAT: Python format, %s also accepted for positional - psycopg2, pymysql

    Example
    -------
    ::
        >>> ParamStyle.get_placeholder('qmark')
        '?'
        >>> ParamStyle.get_placeholder('named')
        ':1'
    """
    QMARK = 'qmark'         # id = ?
    NUMERIC = 'numeric'     # id = :1
    NAMED = 'named'         # id = :id  also :1 for positional
    FORMAT = 'format'       # id = %s
    PYFORMAT = 'pyformat'   # id = %(id)s also %s for positional
    DEFAULT = QMARK

    @classmethod
    def values(cls):
        return [getattr(cls, attr) for attr in dir(cls) if not attr.startswith('_')]

    @classmethod
    def get_placeholder(cls, paramstyle: str) -> str:
        if paramstyle == cls.QMARK:
            return '?'
        elif paramstyle in (cls.FORMAT, cls.PYFORMAT):
            return '%s'
        elif paramstyle in (cls.NUMERIC, cls.NAMED):
            return ':1'
        return ''


def convert_placeholders(sql: str, paramstyle: str) -> str:
    """
    Rewrite ``?`` placeholders for the given paramstyle.

    Args:
        sql: SQL statement using ``?`` positional placeholders
        paramstyle: Target paramstyle of the driver

    Returns:
        The statement in the driver's placeholder syntax

    Raises:
        ValueError: If the paramstyle is not supported
    """
    if paramstyle == ParamStyle.QMARK:
        return sql
    elif paramstyle in (ParamStyle.FORMAT, ParamStyle.PYFORMAT):
        # literal percent signs must be doubled once %s is in play
        return sql.replace('%', '%%').replace('?', '%s')
    elif paramstyle in (ParamStyle.NUMERIC, ParamStyle.NAMED):
        counter = itertools.count(1)
        return re.sub(r'\?', lambda m: f':{next(counter)}', sql)
    else:
        raise ValueError(f"Unsupported paramstyle: {paramstyle}")


class Database:
    """
    Executor over a DB-API 2.0 connection.

    The wrapper neither opens nor closes connections and never commits: the
    caller decides the transactional scope by what connection it passes in.
    Attributes that are not defined here (``commit``, ``rollback``, ``close``...)
    are delegated to the wrapped connection.

    Example
    -------
    ::

        import sqlite3
        from dac import Database

        db = Database(sqlite3.connect('temple.db'))
        outcome = db.execute("INSERT INTO monks(name) VALUES(?)", ('Gyatso',))
        print(outcome.last_insert_id)
        db.commit()
    """

    # Attributes stored locally, others delegated to _connection
    _local_attrs = ['_connection', 'interface', 'paramstyle', 'debug']

    def __init__(self, connection, interface=None, debug: bool = False):
        """
        Initialize Database wrapper.

        Args:
            connection: Underlying DB-API connection object
            interface: Database adapter module (sqlite3, psycopg2, ...). Derived from
                the connection's class when omitted.
            debug: Log every statement and its arguments at DEBUG level
        """
        if interface is None:
            interface = importlib.import_module(type(connection).__module__.split('.')[0])
        self._connection = connection
        self.interface = interface
        self.paramstyle = getattr(interface, 'paramstyle', ParamStyle.DEFAULT)
        self.debug = debug

    def __getattr__(self, key: str) -> Any:
        """Delegate attribute access to underlying connection."""
        return getattr(self._connection, key)

    def __setattr__(self, key: str, value: Any) -> None:
        """Set attributes locally or delegate to connection."""
        if key in self._local_attrs:
            self.__dict__[key] = value
        else:
            setattr(self._connection, key, value)

    def __str__(self) -> str:
        return f'Database({self.interface.__name__}:{self.paramstyle})'

    def _execute(self, sql: str, args: Sequence[Any]):
        sql = convert_placeholders(sql, self.paramstyle)
        if self.debug:
            logger.debug(f'Query:\n{sql}')
            logger.debug(f'Bind vars:\n{args}')
        cursor = self._connection.cursor()
        try:
            cursor.execute(sql, tuple(args))
        except Exception:
            cursor.close()
            raise
        return cursor

    def query(self, sql: str, args: Sequence[Any] = ()):
        """
        Execute a query and return the open cursor.

        The cursor is iterable and exposes ``description``; the caller closes it.
        """
        return self._execute(sql, args)

    def query_row(self, sql: str, args: Sequence[Any] = ()) -> Optional[tuple]:
        """Execute a query and return its first row, or None when there is none."""
        cursor = self._execute(sql, args)
        try:
            return cursor.fetchone()
        finally:
            cursor.close()

    def execute(self, sql: str, args: Sequence[Any] = ()) -> ExecResult:
        """Execute a statement and report rows affected and the generated identifier."""
        cursor = self._execute(sql, args)
        try:
            return ExecResult(cursor.rowcount, getattr(cursor, 'lastrowid', None))
        finally:
            cursor.close()
