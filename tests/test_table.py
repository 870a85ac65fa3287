# tests/test_table.py
import pytest
import threading
from unittest.mock import Mock

from dac import Context, Field, Result, State, Table, ExecResult
from dac.exceptions import ConfigurationError, MissingValueError, ValidationError
from dac.validation import Required


class TestTableLifecycle:
    """Test open/close and the derived schema state."""

    def test_derived_state(self, users):
        """Test columns, keys, primary key and auto-increment index."""
        users.open()
        assert users.active
        assert users.cols == 'id, name, email, created_at'
        assert users.keys == ('id', 'name', 'email', 'created_at')
        assert users.primary_key == (0,)
        assert users.auto_inc == 0

    def test_open_is_idempotent(self, users):
        """Test that a second open keeps the same state."""
        users.open()
        schema = users._schema
        users.open()
        assert users._schema is schema

    def test_close_and_reopen(self, users):
        """Test that close discards derived state and the next use rebuilds it."""
        users.open()
        users.close()
        assert not users.active
        users.close()
        users.fields.append(Field('nation'))
        assert users.cols == 'id, name, email, created_at, nation'
        assert users.active

    def test_first_use_opens(self, users):
        """Test that properties open the table implicitly."""
        assert not users.active
        assert users.auto_inc == 0
        assert users.active

    def test_blank_table_name(self):
        """Test that a blank table name is rejected."""
        with pytest.raises(ConfigurationError, match='Table name cannot be empty'):
            Table('', [Field('id')]).open()
        with pytest.raises(ConfigurationError, match='Table name cannot be empty'):
            Table('   ', [Field('id')]).open()

    def test_blank_field_name(self):
        """Test that a blank field name is reported with its position."""
        table = Table('sky_bison', [Field('id'), Field(' ')])
        with pytest.raises(ConfigurationError, match=r'Fields\[1\]: name cannot be empty'):
            table.open()
        assert not table.active

    def test_no_fields_selects_star(self):
        """Test that a table without fields selects every column."""
        table = Table('lemurs')
        assert table.cols == '*'
        assert table.primary_key == ()
        assert table.auto_inc == -1

    def test_key_mapping(self):
        """Test that record keys follow Field.key."""
        table = Table('nomads', [Field('id', primary_key=True), Field('full_name', key='name')])
        assert table.keys == ('id', 'name')
        assert table.keys_map == {'id': 'id', 'full_name': 'name'}

    def test_first_auto_inc_wins(self):
        """Test that only the first auto-increment field is tracked."""
        table = Table('t', [Field('a'), Field('b', auto_inc=True), Field('c', auto_inc=True)])
        assert table.auto_inc == 1

    def test_composite_primary_key(self):
        """Test that every primary key field is tracked in order."""
        table = Table('lessons', [Field('student', primary_key=True), Field('note'),
                                  Field('master', primary_key=True)])
        assert table.primary_key == (0, 2)

    def test_fields_from_config_dict(self):
        """Test building fields from column definitions."""
        table = Table('temples', {
            'id': {'primary_key': True, 'auto_inc': True},
            'temple_name': {'field': 'name', 'title': 'Temple'},
        })
        assert [f.name for f in table.fields] == ['id', 'temple_name']
        assert table.keys == ('id', 'name')
        assert table.field('temple_name').get_title() == 'Temple'

    def test_field_lookup(self, users):
        """Test resolving a field by name."""
        assert users.field('email').name == 'email'
        field = users.fields[1]
        assert users.field(field) is field
        with pytest.raises(ConfigurationError, match='no field named nation'):
            users.field('nation')

    def test_concurrent_open(self, users):
        """Test that concurrent first use publishes one schema."""
        schemas = []

        def worker():
            users.open()
            schemas.append(users._schema)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(s) for s in schemas}) == 1


class TestInsert:
    """Test default insert SQL generation."""

    def test_insert_sql(self, users, mock_db):
        """Test that auto-increment is skipped and read-only defaults are written."""
        result = users.insert(mock_db, {'name': 'a', 'email': 'a@x'})
        mock_db.execute.assert_called_once_with(
            'INSERT INTO users(name, email, created_at)VALUES(?, ?, ?)',
            ['a', 'a@x', '2024-03-01 12:00:00'],
        )
        assert isinstance(result, Result)
        assert result.rows_affected == 1
        assert result.last_insert_id == 7

    def test_result_record_has_resolved_values(self, users, mock_db):
        """Test that the result snapshot holds defaults but not the generated id."""
        record = users.insert(mock_db, {'name': 'a', 'email': 'a@x'}).record()
        assert record == {'name': 'a', 'email': 'a@x', 'created_at': '2024-03-01 12:00:00'}

    def test_caller_record_untouched(self, users, mock_db):
        """Test that the caller's record is never modified."""
        record = {'name': 'Appa'}
        users.insert(mock_db, record)
        assert record == {'name': 'Appa'}

    def test_read_only_ignores_supplied_value(self, users, mock_db):
        """Test that read-only fields always take their default."""
        users.insert(mock_db, {'name': 'a', 'created_at': '1999-01-01'})
        sql, args = mock_db.execute.call_args[0]
        assert args[-1] == '2024-03-01 12:00:00'

    def test_read_only_without_default_omitted(self, mock_db):
        """Test that a read-only field without a default is left out."""
        table = Table('scrolls', [Field('id', primary_key=True), Field('title'),
                                  Field('stolen_by', read_only=True)])
        table.insert(mock_db, {'id': 1, 'title': 'Waterbending', 'stolen_by': 'Katara'})
        mock_db.execute.assert_called_once_with('INSERT INTO scrolls(id, title)VALUES(?, ?)',
                                                [1, 'Waterbending'])

    def test_none_falls_back_to_default(self, mock_db):
        """Test that a missing or None value takes the default."""
        table = Table('bison', [Field('name'), Field('color', default='white'), Field('tail')])
        table.insert(mock_db, {'name': 'Appa', 'color': None})
        mock_db.execute.assert_called_once_with('INSERT INTO bison(name, color, tail)VALUES(?, ?, ?)',
                                                ['Appa', 'white', None])

    def test_callable_default_called_per_insert(self, mock_db):
        """Test that a callable default is evaluated on every insert."""
        counter = iter(range(1, 100))
        table = Table('tickets', [Field('number', default=lambda: next(counter))])
        table.insert(mock_db, {})
        table.insert(mock_db, {})
        assert [c[0][1] for c in mock_db.execute.call_args_list] == [[1], [2]]

    def test_key_mapping(self, mock_db):
        """Test that values are read from Field.key."""
        table = Table('nomads', [Field('full_name', key='name')])
        table.insert(mock_db, {'name': 'Gyatso', 'full_name': 'ignored'})
        mock_db.execute.assert_called_once_with('INSERT INTO nomads(full_name)VALUES(?)', ['Gyatso'])

    def test_zero_columns_passed_through(self, mock_db):
        """Test that an insert with nothing to write still reaches the executor."""
        table = Table('counters', [Field('id', auto_inc=True)])
        table.insert(mock_db, {})
        mock_db.execute.assert_called_once_with('INSERT INTO counters()VALUES()', [])

    def test_validation_failure_executes_nothing(self, mock_db):
        """Test that a rejected value stops the insert."""
        table = Table('benders', [Field('name', title='Name', validations=[Required()])])
        with pytest.raises(ValidationError) as exc_info:
            table.insert(mock_db, {'name': '  '})
        assert str(exc_info.value) == 'Name: cannot be blank'
        assert exc_info.value.field == 'name'
        mock_db.execute.assert_not_called()

    def test_executor_error_propagates(self, users, mock_db):
        """Test that executor errors reach the caller unchanged."""
        mock_db.execute.side_effect = RuntimeError('database is locked')
        with pytest.raises(RuntimeError, match='database is locked'):
            users.insert(mock_db, {'name': 'a'})


class TestUpdate:
    """Test default update SQL generation."""

    def test_update_sql(self, users, mock_db):
        """Test that only supplied writable fields are set."""
        users.update(mock_db, {'id': 5, 'name': 'b'})
        mock_db.execute.assert_called_once_with('UPDATE users SET name = ? WHERE id = ?', ['b', 5])

    def test_on_update_applied_when_absent(self, mock_db):
        """Test that fields with an on-update value are always set."""
        table = Table('benders', [
            Field('id', primary_key=True),
            Field('name'),
            Field('updated_at', on_update='now'),
            Field('revision', read_only=True, on_update=lambda: 2),
        ])
        table.update(mock_db, {'id': 1, 'name': 'Sokka', 'revision': 99})
        mock_db.execute.assert_called_once_with(
            'UPDATE benders SET name = ?, updated_at = ?, revision = ? WHERE id = ?',
            ['Sokka', 'now', 2, 1],
        )

    def test_none_without_on_update_sets_null(self, users, mock_db):
        """Test that a supplied None is written as NULL."""
        users.update(mock_db, {'id': 5, 'email': None})
        mock_db.execute.assert_called_once_with('UPDATE users SET email = ? WHERE id = ?', [None, 5])

    def test_primary_key_never_set(self, mock_db):
        """Test that primary key fields only appear in the WHERE clause."""
        table = Table('lessons', [Field('student', primary_key=True), Field('master', primary_key=True),
                                  Field('grade')])
        table.update(mock_db, {'student': 'Aang', 'master': 'Toph', 'grade': 'A'})
        mock_db.execute.assert_called_once_with(
            'UPDATE lessons SET grade = ? WHERE student = ? AND master = ?', ['A', 'Aang', 'Toph'])

    def test_nothing_to_update(self, users, mock_db):
        """Test that an update without columns is rejected."""
        with pytest.raises(ConfigurationError, match='Table users: not enough columns to update'):
            users.update(mock_db, {'id': 5, 'created_at': 'x'})
        mock_db.execute.assert_not_called()

    def test_missing_primary_key(self, users, mock_db):
        """Test that the primary key value is required."""
        with pytest.raises(MissingValueError, match='Primary key id is required in record'):
            users.update(mock_db, {'name': 'b'})
        mock_db.execute.assert_not_called()

    def test_no_primary_key(self, mock_db):
        """Test that a table without primary key cannot update."""
        table = Table('log', [Field('message')])
        with pytest.raises(ConfigurationError, match='The table log does not define primary key'):
            table.update(mock_db, {'message': 'x'})
        mock_db.execute.assert_not_called()

    def test_caller_record_untouched(self, mock_db):
        """Test that on-update values do not leak into the caller's record."""
        table = Table('benders', [Field('id', primary_key=True), Field('updated_at', on_update='now')])
        record = {'id': 1}
        result = table.update(mock_db, record)
        assert record == {'id': 1}
        assert result.record() == {'id': 1, 'updated_at': 'now'}


class TestDelete:
    """Test default delete SQL generation."""

    def test_delete_sql(self, users, mock_db):
        """Test that delete addresses the row by primary key."""
        record = {'id': 5, 'name': 'Jet'}
        result = users.delete(mock_db, record)
        mock_db.execute.assert_called_once_with('DELETE FROM users WHERE id = ?', [5])
        assert result.context.state == State.DELETE
        assert result.record() is record

    def test_missing_primary_key(self, users, mock_db):
        """Test that delete requires the primary key value."""
        with pytest.raises(MissingValueError):
            users.delete(mock_db, {'name': 'Jet'})
        mock_db.execute.assert_not_called()


class TestHooks:
    """Test insert/update/delete hooks."""

    @pytest.mark.parametrize('operation,state', [
        ('insert', State.INSERT),
        ('update', State.UPDATE),
        ('delete', State.DELETE),
    ])
    def test_hook_replaces_default(self, mock_db, operation, state):
        """Test that a registered hook runs instead of the default handler."""
        expected = Result(Mock(), ExecResult(3, None))
        hook = Mock(return_value=expected)
        table = Table('spirits', [Field('id', primary_key=True)], **{f'on_{operation}': hook})
        record = {'id': 1}

        result = getattr(table, operation)(mock_db, record)

        assert result is expected
        mock_db.execute.assert_not_called()
        context = hook.call_args[0][0]
        assert isinstance(context, Context)
        assert context.state == state
        assert context.db is mock_db
        assert context.table is table
        assert context.record is record
        assert context.field is None
        assert context.dataset is table

    def test_hook_can_delegate_to_default(self, mock_db):
        """Test that a hook can wrap the default handler."""
        seen = []

        def audit(ctx):
            seen.append(ctx.record['name'])
            return ctx.table.default_insert(ctx.db, ctx.record, ctx.dataset)

        table = Table('spirits', [Field('name')], on_insert=audit)
        table.insert(mock_db, {'name': 'Hei Bai'})
        assert seen == ['Hei Bai']
        mock_db.execute.assert_called_once_with('INSERT INTO spirits(name)VALUES(?)', ['Hei Bai'])

    def test_hook_opens_table(self, mock_db):
        """Test that a hook call still validates the definition."""
        table = Table('', [Field('id')], on_insert=Mock())
        with pytest.raises(ConfigurationError):
            table.insert(mock_db, {})


class TestWherePrimaryKey:
    """Test primary key condition building."""

    def test_single_key(self, users):
        """Test the condition for a single-column key."""
        assert users.where_primary_key({'id': 3, 'name': 'x'}) == ('id = ?', [3])

    def test_composite_key_uses_record_keys(self):
        """Test that values are read through Field.key."""
        table = Table('lessons', [Field('student_id', primary_key=True, key='student'),
                                  Field('master_id', primary_key=True, key='master')])
        assert table.where_primary_key({'student': 1, 'master': 2}) == \
            ('student_id = ? AND master_id = ?', [1, 2])

    def test_none_value_is_present(self, users):
        """Test that an explicit None counts as a supplied key."""
        assert users.where_primary_key({'id': None}) == ('id = ?', [None])


class TestSelect:
    """Test select against SQLite."""

    def test_select_all(self, sqlite_db, team_avatar):
        """Test that all rows are returned as dicts in result-set order."""
        rows = team_avatar.select(sqlite_db, 'ORDER BY id')
        assert [r['name'] for r in rows] == ['Aang', 'Katara', 'Toph', 'Zuko']
        assert set(rows[0]) == {'id', 'name', 'element', 'email', 'created_at', 'updated_at'}

    def test_select_with_args(self, sqlite_db, team_avatar):
        """Test clauses with placeholders."""
        rows = team_avatar.select(sqlite_db, 'WHERE element = ?', 'earth')
        assert len(rows) == 1
        assert rows[0]['name'] == 'Toph'
        assert rows[0]['created_at'] == '2024-01-01'

    def test_select_empty(self, sqlite_db, benders):
        """Test that no rows yields an empty list."""
        assert benders.select(sqlite_db, 'WHERE id = ?', 42) == []

    def test_select_maps_keys(self, sqlite_db, team_avatar):
        """Test that columns are renamed to record keys."""
        table = Table('benders', [Field('id', primary_key=True), Field('name', key='bender')])
        rows = table.select(sqlite_db, 'WHERE id = ?', 1)
        assert rows == [{'id': 1, 'bender': 'Aang'}]

    def test_select_star_keeps_column_names(self, sqlite_db, team_avatar):
        """Test that undeclared columns keep their names."""
        rows = Table('benders').select(sqlite_db, 'WHERE name = ?', 'Zuko')
        assert rows[0]['element'] == 'fire'

    def test_select_sql(self, users):
        """Test the generated statement."""
        cursor = Mock()
        cursor.description = [('id',), ('name',)]
        cursor.__iter__ = Mock(return_value=iter([(1, 'Suki')]))
        db = Mock()
        db.query.return_value = cursor

        rows = users.select(db, 'WHERE name = ?', 'Suki')

        db.query.assert_called_once_with(
            'SELECT id, name, email, created_at FROM users WHERE name = ?', ('Suki',))
        assert rows == [{'id': 1, 'name': 'Suki'}]
        cursor.close.assert_called_once()


class TestRoundTrip:
    """Test writes against SQLite."""

    def test_insert_update_delete(self, sqlite_db, benders):
        """Test a full record lifecycle."""
        result = benders.insert(sqlite_db, {'name': 'Aang', 'element': 'air', 'email': 'aang@air.temple'})
        assert result.rows_affected == 1
        aang_id = result.last_insert_id

        benders.update(sqlite_db, {'id': aang_id, 'name': 'Avatar Aang'})
        row = benders.select(sqlite_db, 'WHERE id = ?', aang_id)[0]
        assert row['name'] == 'Avatar Aang'
        assert row['element'] == 'air'
        assert row['updated_at'] == '2024-02-01'
        assert row['created_at'] == '2024-01-01'

        result = benders.delete(sqlite_db, {'id': aang_id})
        assert result.rows_affected == 1
        assert benders.count(sqlite_db) == 0

    def test_update_missing_row(self, sqlite_db, benders):
        """Test that updating an absent row affects nothing."""
        result = benders.update(sqlite_db, {'id': 99, 'name': 'Koh'})
        assert result.rows_affected == 0
