# dac/query.py
"""
Derived, pre-filtered view over a Table.
"""

import re
from typing import Any, Dict, List

from .dataset import DataSet
from .sqlbuilder import Selector, select

# Leading WHERE of a SELECT suffix, split from the clauses that follow the condition.
# Keywords inside string literals of the condition are not recognised.
_WHERE_SUFFIX = re.compile(
    r'^WHERE\s+(?P<condition>.*?)'
    r'(?P<tail>\s+(?:GROUP\s+BY|HAVING|ORDER\s+BY|LIMIT|OFFSET|FOR\s+UPDATE)\b.*)?$',
    re.IGNORECASE | re.DOTALL,
)


class Query(DataSet):
    """
    A Table seen through a fixed WHERE condition.

    Selects always include the view's condition. ``clauses`` take the same
    forms as :meth:`Table.select <dac.table.Table.select>`: a Selector, whose
    conditions are conjoined with the view's, or a SQL suffix string. A leading
    ``WHERE`` in the suffix is conjoined with the view's condition and the rest
    (``ORDER BY``, ``LIMIT``...) is kept after it. Writes go to the underlying
    table with the view as the Context's DataSet, so refreshing a Result
    re-reads the row through the view and returns None once the row falls
    outside it.

    Example
    -------
    ::

        air_nomads = Query(benders, 'element = ?', 'air')
        air_nomads.select(db)                               # all air benders
        air_nomads.select(db, 'WHERE age > ? ORDER BY name', 100)
        air_nomads.select(db, select().where('age > ?').order_by('name'), 100)
    """

    def __init__(self, table, where: str = '', *args: Any):
        self.table = table
        self.where = where
        self.args = args

    def __repr__(self) -> str:
        return f"Query('{self.table.name}', {self.where!r})"

    def clauses(self, clauses: Any = '') -> str:
        """SELECT suffix combining the view's condition with ``clauses`` (Selector, suffix or None)."""
        view = select().where(self.where)
        if isinstance(clauses, Selector):
            return str(view.merge(clauses))
        suffix = (clauses or '').strip()
        match = _WHERE_SUFFIX.match(suffix)
        if match:
            view.where(match.group('condition'))
            suffix = (match.group('tail') or '').strip()
        return ' '.join(part for part in (str(view), suffix) if part)

    def select(self, db, clauses: Any = '', *args) -> List[Dict[str, Any]]:
        """Select records of the view. ``args`` bind the placeholders of ``clauses``."""
        return self.table.select(db, self.clauses(clauses), *(self.args + args))

    def count(self, db, where: str = '', *args) -> int:
        """Count rows of the view, optionally narrowed by the condition ``where``."""
        return self.table.count(db, select().where(self.where, where).where_sql(), *(self.args + args))

    def insert(self, db, record: Dict[str, Any]):
        return self.table.insert(db, record, dataset=self)

    def update(self, db, record: Dict[str, Any]):
        return self.table.update(db, record, dataset=self)

    def delete(self, db, record: Dict[str, Any]):
        return self.table.delete(db, record, dataset=self)
