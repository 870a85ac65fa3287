# tests/conftest.py
"""
Shared test fixtures and configuration for pytest.
"""

import copy
import sqlite3

import pytest
from unittest.mock import Mock

import dac.config
from dac import Database, ExecResult, Field, Table
from dac.defaults import settings
from dac.validation import Email, Required, Unique


@pytest.fixture(autouse=True)
def restore_settings():
    """Put global settings and the config manager back after every test."""
    saved = copy.deepcopy(settings)
    yield
    settings.clear()
    settings.update(saved)
    dac.config._config_manager = None


@pytest.fixture
def mock_db():
    """Executor double for asserting generated SQL and arguments."""
    db = Mock()
    db.execute.return_value = ExecResult(1, 7)
    db.query_row.return_value = (0,)
    return db


@pytest.fixture
def sqlite_db():
    """In-memory SQLite database wrapped in a Database executor."""
    connection = sqlite3.connect(':memory:')
    connection.execute("""
                       CREATE TABLE benders
                       (
                           id         INTEGER PRIMARY KEY AUTOINCREMENT,
                           name       TEXT NOT NULL,
                           element    TEXT,
                           email      TEXT,
                           created_at TEXT,
                           updated_at TEXT
                       )
                       """)
    connection.commit()
    db = Database(connection)
    yield db
    connection.close()


@pytest.fixture
def benders():
    """Table over the benders schema of ``sqlite_db``."""
    return Table('benders', [
        Field('id', primary_key=True, auto_inc=True),
        Field('name', title='Name', validations=[Required()]),
        Field('element'),
        Field('email', title='Email', validations=[Email(), Unique()]),
        Field('created_at', read_only=True, default=lambda: '2024-01-01'),
        Field('updated_at', on_update=lambda: '2024-02-01'),
    ])


@pytest.fixture
def team_avatar(sqlite_db, benders):
    """Benders table loaded with Team Avatar."""
    for name, element, email in [
        ('Aang', 'air', 'aang@air.temple'),
        ('Katara', 'water', 'katara@water.tribe'),
        ('Toph', 'earth', 'toph@beifong.estate'),
        ('Zuko', 'fire', 'zuko@fire.nation'),
    ]:
        benders.insert(sqlite_db, {'name': name, 'element': element, 'email': email})
    return benders


@pytest.fixture
def users():
    """Users table with generated id and creation stamp."""
    return Table('users', [
        Field('id', primary_key=True, auto_inc=True),
        Field('name'),
        Field('email'),
        Field('created_at', read_only=True, default=lambda: '2024-03-01 12:00:00'),
    ])
