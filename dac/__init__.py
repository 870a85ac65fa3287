# dac/__init__.py
"""
DAC - Data Access Components

A minimal data-access layer that maps schema-described tables to plain dict
records:

- Field definitions with primary key, auto-increment, read-only, default and
  on-update options and per-field validation rules
- SQL generation and execution for SELECT, INSERT, UPDATE, DELETE and COUNT
- Insert/update/delete hooks that receive the operation Context
- Results that re-read the written record, generated identifiers included
- Duplicate detection helpers (count_value, count_record) for uniqueness rules
- YAML-based settings and table definitions

Basic usage::

    import sqlite3
    from dac import Database, Table, Field
    from dac.validation import Required, Email, Unique

    users = Table('users', [
        Field('id', primary_key=True, auto_inc=True),
        Field('name', validations=[Required()]),
        Field('email', validations=[Email(), Unique()]),
    ])

    db = Database(sqlite3.connect('app.db'))
    result = users.insert(db, {'name': 'Aang', 'email': 'aang@air.temple'})
    aang = result.record(refresh=True)
    users.select(db, 'WHERE name = ?', 'Aang')
"""

__version__ = '0.1.0'

from .context import Context, State
from .database import Database, ExecResult, ParamStyle
from .dataset import DataSet
from .exceptions import DacError, ConfigurationError, MissingValueError, ValidationError
from .field import Field
from .query import Query
from .result import Result
from .sqlbuilder import Selector, select
from .table import Table
from .config import set_config_file, get_setting, get_table
from .logging_utils import setup_logging, errors_logged, cleanup_old_logs
from . import validation

__all__ = [
    'Context',
    'State',
    'Database',
    'ExecResult',
    'ParamStyle',
    'DataSet',
    'DacError',
    'ConfigurationError',
    'MissingValueError',
    'ValidationError',
    'Field',
    'Query',
    'Result',
    'Selector',
    'select',
    'Table',
    'set_config_file',
    'get_setting',
    'get_table',
    'setup_logging',
    'errors_logged',
    'cleanup_old_logs',
    'validation',
]
