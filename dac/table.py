# dac/table.py

"""
Schema-aware table operations and SQL generation.

Provides the Table class which maps a named table described by Fields to plain
dict records, and generates and executes the parameterized SELECT, INSERT,
UPDATE, DELETE and COUNT statements for it.
"""

import logging
import threading
from collections import namedtuple
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .context import Context, State
from .dataset import DataSet
from .exceptions import ConfigurationError, MissingValueError
from .field import Field
from .result import Result
from .validation import validate_field

logger = logging.getLogger(__name__)

# Column names separator.
COLUMN_SEPARATOR = ', '
# Positional placeholder used in every generated statement.
PLACEHOLDER = '?'

ActionFunc = Callable[[Context], Result]

_Schema = namedtuple('_Schema', ['fields', 'cols', 'keys', 'keys_map', 'primary_key', 'auto_inc'])


class Table(DataSet):
    """
    Table engine: schema-described table mapped to dict records.

    A Table owns an ordered list of Fields. On first use it derives the column
    list, the record key of every field, the primary key and the auto-increment
    field, and from then on generates SQL from that derived state until
    :meth:`close` is called.

    Write operations (insert, update, delete) run a registered hook when one
    is set, otherwise the built-in default handler. Default handlers copy the
    caller's record, resolve values (defaults, on-update values, read-only
    columns), validate each value in the context of its field, execute one
    statement and return a :class:`~dac.result.Result`.

    Fields can be given as a list of :class:`~dac.field.Field` or as a dict of
    column definitions (see Field for the options).

    Example
    -------
    ::

        from datetime import datetime
        from dac import Table, Field, Database
        from dac.validation import Required, Email, Unique

        users = Table('users', [
            Field('id', primary_key=True, auto_inc=True),
            Field('name', validations=[Required()]),
            Field('email', validations=[Email(), Unique()]),
            Field('created_at', read_only=True, default=datetime.now),
        ])

        db = Database(connection)
        result = users.insert(db, {'name': 'Katara', 'email': 'katara@water.tribe'})
        katara = result.record(refresh=True)     # includes the generated id

        users.update(db, {'id': katara['id'], 'name': 'Master Katara'})
        users.select(db, 'WHERE name LIKE ?', 'Master%')

    Note:
        Tables are not synchronized for concurrent use beyond open/close.
        Mutating ``fields`` requires :meth:`close` so the next operation
        derives state again.
    """

    def __init__(
            self,
            name: str,
            fields: Union[Iterable[Field], Dict[str, Dict[str, Any]], None] = None,
            on_insert: Optional[ActionFunc] = None,
            on_update: Optional[ActionFunc] = None,
            on_delete: Optional[ActionFunc] = None,
    ):
        """
        Initialize Table.

        Args:
            name: Database table name as used in SQL statements.
            fields: Fields in column order, or dict of column name to column options.
            on_insert: Hook replacing the default insert handler. Called with a
                Context, must return a Result.
            on_update: Hook replacing the default update handler.
            on_delete: Hook replacing the default delete handler.
        """
        self.name = name
        if isinstance(fields, dict):
            fields = [Field.from_config(col, col_def) for col, col_def in fields.items()]
        self.fields: List[Field] = list(fields or [])
        self.on_insert = on_insert
        self.on_update = on_update
        self.on_delete = on_delete
        self._schema: Optional[_Schema] = None
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"Table('{self.name}', {len(self.fields)} fields)"

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def active(self) -> bool:
        return self._schema is not None

    def open(self) -> None:
        """
        Validate the definition and derive columns, keys and primary key.

        Does nothing when the table is already open.

        Raises:
            ConfigurationError: If the table name or a field name is blank
        """
        self._open()

    def close(self) -> None:
        """Mark the table inactive; the next operation derives state again."""
        with self._lock:
            self._schema = None

    def _open(self) -> _Schema:
        schema = self._schema
        if schema is not None:
            return schema
        with self._lock:
            if self._schema is None:
                self._schema = self._build_schema()
            return self._schema

    def _build_schema(self) -> _Schema:
        if not self.name or not self.name.strip():
            raise ConfigurationError('Table name cannot be empty')
        fields = tuple(self.fields)
        names = []
        keys = []
        keys_map = {}
        primary_key = []
        auto_inc = -1
        for i, field in enumerate(fields):
            if not field.name or not field.name.strip():
                raise ConfigurationError(f'Fields[{i}]: name cannot be empty')
            names.append(field.name)
            key = field.get_key()
            keys.append(key)
            keys_map[field.name] = key
            if field.primary_key:
                primary_key.append(i)
            if auto_inc < 0 and field.auto_inc:
                auto_inc = i
        cols = COLUMN_SEPARATOR.join(names) or '*'
        logger.debug(f'Opened table {self.name}: columns {cols}')
        return _Schema(fields, cols, tuple(keys), keys_map, tuple(primary_key), auto_inc)

    @property
    def cols(self) -> str:
        """Column list used in SELECT, ``*`` when no fields are declared."""
        return self._open().cols

    @property
    def keys(self) -> Tuple[str, ...]:
        """Record key of each field, in field order."""
        return self._open().keys

    @property
    def keys_map(self) -> Dict[str, str]:
        """Column name to record key."""
        return dict(self._open().keys_map)

    @property
    def primary_key(self) -> Tuple[int, ...]:
        """Indexes of the primary key fields."""
        return self._open().primary_key

    @property
    def auto_inc(self) -> int:
        """Index of the first auto-increment field, -1 when there is none."""
        return self._open().auto_inc

    def field(self, field: Union[str, Field]) -> Field:
        """
        Resolve a field by name; Field instances are returned unchanged.

        Raises:
            ConfigurationError: If the table has no field with that name
        """
        if isinstance(field, Field):
            return field
        for candidate in self._open().fields:
            if candidate.name == field:
                return candidate
        raise ConfigurationError(f'Table {self.name}: no field named {field}')

    # ------------------------------------------------------------------ #
    # Select
    # ------------------------------------------------------------------ #

    def select(self, db, clauses: Any = '', *args) -> List[Dict[str, Any]]:
        """
        Execute ``SELECT <cols> FROM <table> <clauses>``.

        Args:
            db: Executor
            clauses: SQL suffix (WHERE, ORDER BY, LIMIT...) passed through verbatim,
                or a :class:`~dac.sqlbuilder.Selector`
            *args: Positional arguments for the placeholders in ``clauses``

        Returns:
            Records in result-set order, keyed by field key
        """
        schema = self._open()
        sql = f'SELECT {schema.cols} FROM {self.name} {clauses}'
        logger.debug(f'Generated select SQL for {self.name}:\n{sql}')
        cursor = db.query(sql, args)
        try:
            keys = [schema.keys_map.get(desc[0], desc[0]) for desc in cursor.description]
            return [dict(zip(keys, row)) for row in cursor]
        finally:
            close = getattr(cursor, 'close', None)
            if close is not None:
                close()

    # ------------------------------------------------------------------ #
    # Insert / Update / Delete
    # ------------------------------------------------------------------ #

    def insert(self, db, record: Dict[str, Any], dataset: Optional[DataSet] = None) -> Result:
        """
        Insert a record through the ``on_insert`` hook or :meth:`default_insert`.

        The hook receives a Context holding the caller's record as given.
        """
        self._open()
        if self.on_insert is None:
            return self.default_insert(db, record, dataset)
        return self.on_insert(Context(State.INSERT, db, self, record, dataset=dataset))

    def default_insert(self, db, record: Dict[str, Any], dataset: Optional[DataSet] = None) -> Result:
        """
        Default insert handler.

        Auto-increment fields are left to storage. Read-only fields take their
        default (and are skipped without one); other fields take the record
        value, or the default when the record has none.

        Raises:
            ValidationError: If a value fails its field's rules; nothing is executed
        """
        schema = self._open()
        rec = dict(record)
        context = Context(State.INSERT, db, self, rec, dataset=dataset)
        cols = []
        placeholders = []
        args = []
        for i, field in enumerate(schema.fields):
            if field.auto_inc:
                continue
            key = schema.keys[i]
            value = record.get(key)
            if field.read_only:
                if field.default is None:
                    continue
                value = None
            if value is None:
                value = field.get_default()
            rec[key] = value
            validate_field(context.replace(field=field), value)
            cols.append(field.name)
            placeholders.append(PLACEHOLDER)
            args.append(value)

        sql = (f'INSERT INTO {self.name}({COLUMN_SEPARATOR.join(cols)})'
               f'VALUES({COLUMN_SEPARATOR.join(placeholders)})')
        logger.debug(f'Generated insert SQL for {self.name}:\n{sql}')
        outcome = db.execute(sql, args)
        return Result(context, outcome)

    def update(self, db, record: Dict[str, Any], dataset: Optional[DataSet] = None) -> Result:
        """Update a record through the ``on_update`` hook or :meth:`default_update`."""
        self._open()
        if self.on_update is None:
            return self.default_update(db, record, dataset)
        return self.on_update(Context(State.UPDATE, db, self, record, dataset=dataset))

    def default_update(self, db, record: Dict[str, Any], dataset: Optional[DataSet] = None) -> Result:
        """
        Default update handler.

        The row is addressed by primary key. Primary key and auto-increment
        fields are never set. Fields that are read-only or missing from the
        record are set only when they have an on-update value.

        Raises:
            ConfigurationError: If there is no primary key or no column to set
            MissingValueError: If a primary key value is missing
            ValidationError: If a value fails its field's rules; nothing is executed
        """
        where, where_args = self.where_primary_key(record)
        schema = self._open()
        rec = dict(record)
        context = Context(State.UPDATE, db, self, rec, dataset=dataset)
        sets = []
        args = []
        for i, field in enumerate(schema.fields):
            if field.primary_key or field.auto_inc:
                continue
            key = schema.keys[i]
            if field.read_only or key not in record:
                if field.on_update is None:
                    continue
                value = None
            else:
                value = record[key]
            if value is None:
                value = field.get_on_update()
            rec[key] = value
            validate_field(context.replace(field=field), value)
            sets.append(f'{field.name} = {PLACEHOLDER}')
            args.append(value)

        if not sets:
            raise ConfigurationError(f'Table {self.name}: not enough columns to update')
        sql = f'UPDATE {self.name} SET {COLUMN_SEPARATOR.join(sets)} WHERE {where}'
        logger.debug(f'Generated update SQL for {self.name}:\n{sql}')
        outcome = db.execute(sql, args + where_args)
        return Result(context, outcome)

    def delete(self, db, record: Dict[str, Any], dataset: Optional[DataSet] = None) -> Result:
        """Delete a record through the ``on_delete`` hook or :meth:`default_delete`."""
        self._open()
        if self.on_delete is None:
            return self.default_delete(db, record, dataset)
        return self.on_delete(Context(State.DELETE, db, self, record, dataset=dataset))

    def default_delete(self, db, record: Dict[str, Any], dataset: Optional[DataSet] = None) -> Result:
        """
        Default delete handler: ``DELETE FROM <table> WHERE <primary key>``.

        Raises:
            ConfigurationError: If there is no primary key
            MissingValueError: If a primary key value is missing
        """
        where, args = self.where_primary_key(record)
        sql = f'DELETE FROM {self.name} WHERE {where}'
        logger.debug(f'Generated delete SQL for {self.name}:\n{sql}')
        outcome = db.execute(sql, args)
        return Result(Context(State.DELETE, db, self, record, dataset=dataset), outcome)

    # ------------------------------------------------------------------ #
    # Primary key
    # ------------------------------------------------------------------ #

    def where_primary_key(self, record: Dict[str, Any]) -> Tuple[str, List[Any]]:
        """
        Build the WHERE condition addressing ``record`` by primary key.

        Returns:
            ``('pk1 = ? AND pk2 = ?', [value1, value2])``

        Raises:
            ConfigurationError: If the table does not define a primary key
            MissingValueError: If the record has no value for a primary key field
        """
        return self._primary_key_condition(record, '=')

    def _primary_key_condition(self, record: Dict[str, Any], operator: str) -> Tuple[str, List[Any]]:
        schema = self._open()
        if not schema.primary_key:
            raise ConfigurationError(f'The table {self.name} does not define primary key')
        conditions = []
        args = []
        for i in schema.primary_key:
            key = schema.keys[i]
            if key not in record:
                raise MissingValueError(f'Primary key {key} is required in record')
            conditions.append(f'{schema.fields[i].name} {operator} {PLACEHOLDER}')
            args.append(record[key])
        return ' AND '.join(conditions), args

    # ------------------------------------------------------------------ #
    # Count
    # ------------------------------------------------------------------ #

    def count(self, db, where: str = '', *args) -> int:
        """Execute ``SELECT COUNT(*) FROM <table> [WHERE <where>]`` and return the count."""
        self._open()
        sql = f'SELECT COUNT(*) FROM {self.name}'
        if where:
            sql += ' WHERE ' + where
        logger.debug(f'Generated count SQL for {self.name}:\n{sql}')
        row = db.query_row(sql, args)
        return int(row[0])

    def count_value(self, db, field: Union[str, Field], value: Any, where: str = '', *args) -> int:
        """
        Count rows where ``field`` holds ``value``; used to detect duplicate values.

        None is matched with ``IS NULL``. Text is compared trimmed on both sides.
        The column condition comes first and is conjoined with ``where``.
        """
        field = self.field(field)
        column = field.name
        condition = f'= {PLACEHOLDER}'
        if value is None:
            condition = 'IS NULL'
        else:
            if isinstance(value, str):
                column = f'TRIM({column})'
                value = value.strip()
            args = (value,) + args
        condition = f'{column} {condition}'
        where = f'{condition} AND {where}' if where else condition
        return self.count(db, where, *args)

    def count_record(self, db, field: Union[str, Field], record: Dict[str, Any],
                     exclude_self: bool = False, where: str = '', *args) -> int:
        """
        Count rows where ``field`` holds the record's value for it.

        Args:
            db: Executor
            field: Field or field name
            record: Record the value is taken from
            exclude_self: Leave out the row addressed by the record's primary key
            where: Extra condition
            *args: Arguments for ``where``

        Raises:
            ConfigurationError, MissingValueError: As where_primary_key, when exclude_self is set
        """
        if exclude_self:
            pk_where, pk_args = self._primary_key_condition(record, '<>')
            where = f'{pk_where} AND {where}' if where else pk_where
            args = tuple(pk_args) + args
        schema = self._open()
        field = self.field(field)
        value = record.get(schema.keys_map.get(field.name, field.get_key()))
        return self.count_value(db, field, value, where, *args)
