# dac/validation.py
"""
Field validation rules.

A rule is any object with a ``validate(value)`` method that raises
:class:`~dac.exceptions.ValidationError`, or a plain callable that returns an
error message (any non-empty string) for a bad value. Rules are declared once
on a Field and shared by every write, so they must not keep per-call state.

Rules that need to know about the write in progress (which table, which record,
insert or update) derive from :class:`ContextRule`. The engine calls
``bind(context)`` right before checking and validates with the bound copy; the
declared rule is left untouched.

Every built-in rule except Required lets empty values (None, '') through, so
rules can be combined with Required when a value is mandatory.

Example
-------
::

    from dac import Field
    from dac.validation import Required, Length, Email, Unique

    Field('email', validations=[Required(), Length(max=120), Email(), Unique()])
"""

import copy
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from .context import Context, State
from .defaults import settings
from .exceptions import DacError, ValidationError

# Practical e-mail pattern, not RFC 5322 compliant
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def is_empty(value: Any) -> bool:
    """None, blank strings and empty collections count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


class Rule(ABC):
    """Base class for validation rules."""

    message = 'is invalid'

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message

    @abstractmethod
    def validate(self, value: Any) -> None:
        """Raise ValidationError when ``value`` breaks the rule."""

    def error(self, **params) -> ValidationError:
        return ValidationError(self.message.format(**params))

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}()'


class ContextRule(Rule):
    """Rule that reads the write Context. Validate only bound copies."""

    context: Optional[Context] = None

    def bind(self, context: Context) -> 'ContextRule':
        """Return a copy of this rule bound to ``context``."""
        bound = copy.copy(self)
        bound.context = context
        return bound


class Required(Rule):
    message = 'cannot be blank'

    def validate(self, value: Any) -> None:
        if is_empty(value):
            raise self.error()


class Length(Rule):
    """Length of strings and collections, inclusive bounds. A bound of None is open."""

    def __init__(self, min: Optional[int] = None, max: Optional[int] = None, message: Optional[str] = None):
        super().__init__(message)
        self.min = min
        self.max = max
        if message is None:
            if min is not None and min == max:
                self.message = 'the length must be exactly {min}'
            elif min is not None and max is not None:
                self.message = 'the length must be between {min} and {max}'
            elif min is not None:
                self.message = 'the length must be no less than {min}'
            else:
                self.message = 'the length must be no more than {max}'

    def validate(self, value: Any) -> None:
        if is_empty(value):
            return
        size = len(value)
        if (self.min is not None and size < self.min) or (self.max is not None and size > self.max):
            raise self.error(min=self.min, max=self.max)


class Match(Rule):
    message = 'must be in a valid format'

    def __init__(self, pattern, message: Optional[str] = None):
        super().__init__(message)
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def validate(self, value: Any) -> None:
        if is_empty(value):
            return
        if not self.pattern.search(str(value)):
            raise self.error()


class Email(Match):
    message = 'must be a valid email address'

    def __init__(self, message: Optional[str] = None):
        super().__init__(EMAIL_PATTERN, message)

    def validate(self, value: Any) -> None:
        if isinstance(value, str):
            value = value.strip()
        super().validate(value)


class In(Rule):
    message = 'must be a valid value'

    def __init__(self, *values: Any, message: Optional[str] = None):
        super().__init__(message)
        self.values = values

    def validate(self, value: Any) -> None:
        if is_empty(value):
            return
        if value not in self.values:
            raise self.error()


class Unique(ContextRule):
    """
    Value must not be used by another row of the table.

    Counts rows holding the same value (text is compared trimmed) with
    Table.count_record. On update the row being written is excluded by its
    primary key. ``where`` / ``args`` narrow the rows that are searched.
    """

    message = 'already exists'

    def __init__(self, where: str = '', *args: Any, message: Optional[str] = None):
        super().__init__(message)
        self.where = where
        self.args = args

    def validate(self, value: Any) -> None:
        if is_empty(value):
            return
        ctx = self.context
        if ctx is None:
            raise DacError('Unique rule must be bound to a context before use')
        count = ctx.table.count_record(ctx.db, ctx.field, ctx.record,
                                       ctx.state == State.UPDATE, self.where, *self.args)
        if count > 0:
            raise self.error()


RULES = {
    'required': Required,
    'length': Length,
    'match': Match,
    'email': Email,
    'in': In,
    'unique': Unique,
}


def rule_from_config(rule_def: Any) -> Any:
    """
    Build a rule from its configuration form.

    Accepts a rule name (``'required'``), a single-key dict of name to
    parameters (``{'length': [1, 50]}``, ``{'match': '^[A-Z]'}``,
    ``{'unique': {'where': 'active = 1'}}``), or a rule object, returned unchanged.

    Raises:
        ValueError: If the rule name is unknown or the definition is malformed
    """
    if isinstance(rule_def, str):
        name, params = rule_def, None
    elif isinstance(rule_def, dict) and len(rule_def) == 1:
        name, params = next(iter(rule_def.items()))
    elif hasattr(rule_def, 'validate') or callable(rule_def):
        return rule_def
    else:
        raise ValueError(f"Invalid validation rule definition: {rule_def!r}")

    rule_class = RULES.get(str(name).lower())
    if rule_class is None:
        raise ValueError(f"Unknown validation rule '{name}'. Must be one of {sorted(RULES)}")
    if params is None:
        return rule_class()
    if isinstance(params, dict):
        return rule_class(**params)
    if isinstance(params, (list, tuple)):
        return rule_class(*params)
    return rule_class(params)


def apply_rule(rule: Any, value: Any) -> None:
    """Run one rule, turning a callable's returned message into a ValidationError."""
    if hasattr(rule, 'validate'):
        rule.validate(value)
    elif callable(rule):
        message = rule(value)
        if message:
            raise ValidationError(str(message))
    else:
        raise TypeError(f'Invalid validation rule: {rule!r}')


def validate_field(context: Context, value: Any) -> None:
    """
    Validate ``value`` against the rules of ``context.field``.

    Context rules are bound to ``context`` first. The first failure is raised
    again with the field title in front of the message (see the
    ``validation_error_format`` setting); remaining rules are not evaluated.

    Raises:
        ValidationError: With ``field`` set to the field name
    """
    field = context.field
    for rule in field.validations:
        if hasattr(rule, 'bind'):
            rule = rule.bind(context)
        try:
            apply_rule(rule, value)
        except ValidationError as e:
            message = settings['validation_error_format'].format(title=field.get_title(), error=e.message)
            raise ValidationError(message, field=field.name) from e
