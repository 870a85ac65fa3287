# dac/sqlbuilder.py
"""
Composable SELECT suffix (WHERE / ORDER BY / LIMIT) for DataSet.select().

Only the part after ``FROM <table>`` is built here; the column list and table
name come from the Table.
"""

from typing import List, Optional


class Selector:
    """
    Builder for the clauses that follow ``SELECT ... FROM <table>``.

    Conditions are conjoined with AND. Every method returns the selector so
    calls can be chained; ``str()`` renders the fragment.

    Example
    -------
    ::

        sel = select().where('temple = ?').order_by('name').limit(10)
        str(sel)   # "WHERE temple = ? ORDER BY name LIMIT 10"
    """

    def __init__(self):
        self._where: List[str] = []
        self._order_by: List[str] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def where(self, *conditions: str) -> 'Selector':
        """Add conditions; blank ones are ignored."""
        for condition in conditions:
            if condition and condition.strip():
                self._where.append(condition.strip())
        return self

    def order_by(self, *columns: str) -> 'Selector':
        self._order_by.extend(columns)
        return self

    def limit(self, count: int, offset: Optional[int] = None) -> 'Selector':
        self._limit = int(count)
        self._offset = None if offset is None else int(offset)
        return self

    @property
    def conditions(self) -> List[str]:
        return list(self._where)

    def merge(self, other: 'Selector') -> 'Selector':
        """
        Return a new selector with the conditions of both.

        Ordering and limits of ``other`` win when it sets them.
        """
        merged = Selector().where(*self._where, *other._where)
        merged._order_by = list(other._order_by or self._order_by)
        if other._limit is not None:
            merged._limit, merged._offset = other._limit, other._offset
        else:
            merged._limit, merged._offset = self._limit, self._offset
        return merged

    def where_sql(self) -> str:
        """Conditions joined with AND; each is parenthesised when there are several."""
        if len(self._where) == 1:
            return self._where[0]
        return ' AND '.join(f'({c})' for c in self._where)

    def __str__(self) -> str:
        parts = []
        if self._where:
            parts.append(f'WHERE {self.where_sql()}')
        if self._order_by:
            parts.append('ORDER BY ' + ', '.join(self._order_by))
        if self._limit is not None:
            parts.append(f'LIMIT {self._limit}')
            if self._offset is not None:
                parts.append(f'OFFSET {self._offset}')
        return ' '.join(parts)

    def __repr__(self) -> str:
        return f'Selector({str(self)!r})'


def select() -> Selector:
    """Start a new Selector."""
    return Selector()
