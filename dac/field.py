# dac/field.py
"""
Column schema description used by Table.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional, Union

logger = logging.getLogger(__name__)

Provider = Union[Any, Callable[[], Any]]


class Field:
    """
    Description of one table column.

    A Field names the column, says how it is addressed in records, whether it
    takes part in the primary key, whether storage generates its value, and how
    values are supplied and checked on writes.

    Column Configuration
    --------------------
        The same options are accepted as keyword arguments or, through
        :meth:`from_config`, as a column definition dict:

        * **title** (str, optional): Human readable label used in validation errors.
          Defaults to the column name.
        * **primary_key** (bool, default False): Column is part of the primary key.
        * **auto_inc** (bool, default False): Storage generates the value; the column
          is never written on insert.
        * **read_only** (bool, default False): Value is never taken from caller
          records. The column is written only through ``default`` / ``on_update``.
        * **default** (value or callable, optional): Value used on insert when the
          record has none (always, for read-only columns). Callables are called
          with no arguments.
        * **on_update** (value or callable, optional): Same as ``default`` for updates.
        * **validations** (list, optional): Rules applied in order to the resolved
          value on insert and update. See :mod:`dac.validation`.
        * **key** (str, optional): Record key for this column when it differs from
          the column name. ``field`` is accepted as an alias in config dicts.

    Example
    -------
    ::

        from dac import Field
        from dac.validation import Required, Email

        Field('email', title='E-mail', validations=[Required(), Email()])
        Field('created_at', read_only=True, default=datetime.now)
        Field('id', primary_key=True, auto_inc=True)
    """

    OPTIONS = ('title', 'primary_key', 'auto_inc', 'read_only', 'default',
               'on_update', 'validations', 'key')

    def __init__(
            self,
            name: str,
            title: Optional[str] = None,
            primary_key: bool = False,
            auto_inc: bool = False,
            read_only: bool = False,
            default: Provider = None,
            on_update: Provider = None,
            validations: Optional[Iterable[Any]] = None,
            key: Optional[str] = None,
    ):
        self.name = name
        self.title = title
        self.primary_key = bool(primary_key)
        self.auto_inc = bool(auto_inc)
        self.read_only = bool(read_only)
        self.default = default
        self.on_update = on_update
        self.validations = list(validations or ())
        self.key = key

    @classmethod
    def from_config(cls, name: str, col_def: Dict[str, Any]) -> 'Field':
        """
        Build a Field from a column definition dict.

        Args:
            name: Column name
            col_def: Column options (see class docstring)

        Returns:
            Field instance
        """
        options = dict(col_def or {})
        if 'field' in options and 'key' not in options:
            options['key'] = options.pop('field')
        unknown = set(options) - set(cls.OPTIONS)
        if unknown:
            logger.warning(f'Column {name}: unknown options (ignored): {sorted(unknown)}')
        return cls(name, **{k: v for k, v in options.items() if k in cls.OPTIONS})

    def get_key(self) -> str:
        """Record key the column is read from and written to."""
        return self.key or self.name

    def get_title(self) -> str:
        return self.title or self.name

    def get_default(self) -> Any:
        """Value of the default provider, or None when there is none."""
        return _provide(self.default)

    def get_on_update(self) -> Any:
        """Value of the on-update provider, or None when there is none."""
        return _provide(self.on_update)

    def __repr__(self) -> str:
        flags = [flag for flag in ('primary_key', 'auto_inc', 'read_only') if getattr(self, flag)]
        flag_str = f", {', '.join(flags)}" if flags else ''
        return f"Field('{self.name}'{flag_str})"


def _provide(provider: Provider) -> Any:
    if callable(provider):
        return provider()
    return provider
