"""
### find()

The `WHERE` of a query. Criteria is an object; its conditions are AND-ed:

```python
Tour.find(ssn).find({
    'duration': {'$gte': 5, '$lte': 10},
    'difficulty': 'easy',
})
```

#### Comparisons

| Criteria                       | SQL                                |
|--------------------------------|------------------------------------|
| `{ a: 1 }`, `{ a: {$eq: 1} }`  | `a = 1`                            |
| `{ a: {$ne: 1} }`              | `a IS DISTINCT FROM 1`             |
| `{ a: {$lt: 1} }`, `$lte`      | `a < 1`, `a <= 1`                  |
| `{ a: {$gt: 1} }`, `$gte`      | `a > 1`, `a >= 1`                  |
| `{ a: [1, 2] }`, `{a: {$in: [1, 2]}}` | `a IN (1, 2)`               |
| `{ a: {$nin: [1, 2]} }`        | `a NOT IN (1, 2)`                  |
| `{ a: {$exists: true} }`       | `a IS NOT NULL`                    |

`$ne` is null-safe: `{secret_tour: {$ne: true}}` selects the tours where `secret_tour` is NULL, too.

#### Logic

* `{ $and: [ {criteria}, ... ] }`
* `{ $or: [ {criteria}, ... ] }`
* `{ $nor: [ {criteria}, ... ] }`: none of them
* `{ $not: {criteria} }`

#### Values
Values from a query string are strings. Each is cast to the Python type of its column,
so `{'duration': '5'}` compares with the integer `5`. When that fails: `InvalidValueError`.
"""

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation

from sqlalchemy.sql.expression import and_, or_, not_, true

from .base import DocumentQueryHandlerBase
from ..bag import CombinedBag
from ..exc import InvalidQueryError, InvalidColumnError, InvalidValueError


def _is_array(value):
    return isinstance(value, (list, tuple, set, frozenset))


def _and_all(conditions):
    """ AND a list of SQL conditions. An empty list is always true. """
    if not conditions:
        return true()
    if len(conditions) == 1:
        return conditions[0]
    return and_(*conditions).self_group()


# region Parsed criteria

class ColumnCondition:
    """ A comparison: `column <operator> value` """

    __slots__ = ('column_name', 'column', 'operator_str', 'operator_lambda', 'value', 'original_value')

    def __init__(self, column_name, column, operator_str, operator_lambda, value, original_value):
        """
        :param column_name: The field name, as given
        :param column: The column attribute of the model
        :param operator_lambda: `lambda column, value, original_value: condition`
        :param value: The value, cast to the column type
        :param original_value: The value as it came
        """
        self.column_name = column_name
        self.column = column
        self.operator_str = operator_str
        self.operator_lambda = operator_lambda
        self.value = value
        self.original_value = original_value

    def __repr__(self):
        return '{} {} {!r}'.format(self.column_name, self.operator_str, self.value)

    def compile_expression(self):
        return self.operator_lambda(self.column, self.value, self.original_value)


class LogicCondition:
    """ $and, $or, $nor over lists of conditions; or $not over a single list """

    __slots__ = ('operator_str', 'value')

    def __init__(self, operator_str, value):
        self.operator_str = operator_str
        self.value = value

    def __repr__(self):
        return '({}: {})'.format(self.operator_str, self.value)

    def compile_expression(self):
        if self.operator_str == '$not':
            return not_(_and_all([c.compile_expression() for c in self.value]))

        groups = [_and_all([c.compile_expression() for c in group])
                  for group in self.value]
        joined = (and_ if self.operator_str == '$and' else or_)(*groups)
        if len(groups) > 1:
            joined = joined.self_group()
        return ~joined if self.operator_str == '$nor' else joined


class SqlCondition:
    """ A condition written in SqlAlchemy already: what a force_filter callable returns """

    __slots__ = ('expression',)

    def __init__(self, expression):
        self.expression = expression

    def __repr__(self):
        return 'SqlCondition({!r})'.format(str(self.expression))

    def compile_expression(self):
        return self.expression

# endregion


# region Value casting

def _cast_bool(value):
    if isinstance(value, str):
        word = value.strip().lower()
        if word in ('true', '1', 'yes'):
            return True
        if word in ('false', '0', 'no'):
            return False
    elif value in (0, 1):
        return bool(value)
    raise ValueError(value)


def _cast_int(value):
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(value)
    return int(value.strip() if isinstance(value, str) else value)


def _cast_decimal(value):
    try:
        return Decimal(value.strip() if isinstance(value, str) else str(value))
    except InvalidOperation:
        raise ValueError(value)


#: python type -> caster. A caster raises ValueError or TypeError.
_CASTERS = {
    bool: _cast_bool,
    int: _cast_int,
    float: float,
    Decimal: _cast_decimal,
    datetime: datetime.fromisoformat,
    date: date.fromisoformat,
    time: time.fromisoformat,
    str: str,
}


def cast_value(python_type, value, path):
    """ Cast a value to the Python type of a column

    :param python_type: The column's type; `None` when unknown: the value is returned as is
    :param value: A value. Lists are cast item by item
    :param path: The field name, for the error
    :raises InvalidValueError: the value can't be cast
    """
    if value is None or python_type is None:
        return value
    if _is_array(value):
        return [cast_value(python_type, item, path) for item in value]
    if type(value) is python_type or python_type not in _CASTERS:
        return value

    if not isinstance(value, (str, int, float, Decimal)):
        raise InvalidValueError(path, value, python_type.__name__)
    try:
        return _CASTERS[python_type](value)
    except (ValueError, TypeError):
        raise InvalidValueError(path, value, python_type.__name__)

# endregion


class FilterHandler(DocumentQueryHandlerBase):
    """ The find() directive. Input: a criteria object, or None. Only columns can be filtered. """

    directive_name = 'filter'

    #: operator -> lambda column, value, original_value
    OPERATORS = {
        '$eq': lambda col, val, oval: col == val,
        '$ne': lambda col, val, oval: col.is_distinct_from(val),
        '$lt': lambda col, val, oval: col < val,
        '$lte': lambda col, val, oval: col <= val,
        '$gt': lambda col, val, oval: col > val,
        '$gte': lambda col, val, oval: col >= val,
        '$in': lambda col, val, oval: col.in_(val),
        '$nin': lambda col, val, oval: col.not_in(val),
        '$exists': lambda col, val, oval: col.isnot(None) if val else col.is_(None),
    }

    #: Operators that compare with a list. A single value becomes a list of one.
    LIST_OPERATORS = frozenset(('$in', '$nin'))

    #: Operators that take a flag, not a column value
    FLAG_OPERATORS = frozenset(('$exists',))

    LOGIC_OPERATORS = frozenset(('$and', '$or', '$nor', '$not'))

    def __init__(self, model, bags, force_filter=None, scalar_operators=None):
        """
        :param force_filter: A condition added to every query:
            criteria (a dict), or `lambda model:` returning SqlAlchemy conditions (one, or a list)
        :type force_filter: dict | callable
        :param scalar_operators: More operators: {'$operator': lambda column, value, original_value: condition}
        :type scalar_operators: dict[str, callable]
        :raises InvalidColumnError: force_filter refers to an unknown column
        """
        super(FilterHandler, self).__init__(model, bags)
        self.operators = dict(self.OPERATORS, **(scalar_operators or {}))

        if force_filter is not None and not callable(force_filter) and not isinstance(force_filter, dict):
            raise ValueError(force_filter)
        self.force_filter = force_filter
        if isinstance(force_filter, dict):
            self._parse_criteria(force_filter)  # fail early

        #: Parsed conditions; AND-ed
        self.expressions = None

    def _get_supported_bags(self):
        return CombinedBag(col=self.bags.columns)

    def input(self, criteria):
        super(FilterHandler, self).input(criteria)
        self.expressions = self._parse_criteria(criteria) + self._forced_conditions()
        return self

    def _forced_conditions(self):
        if self.force_filter is None:
            return []
        if isinstance(self.force_filter, dict):
            return self._parse_criteria(self.force_filter)

        forced = self.force_filter(self.model)
        if not isinstance(forced, (list, tuple)):
            forced = [forced]
        return [SqlCondition(e) for e in forced]

    def _parse_criteria(self, criteria):
        """ Criteria object -> list of conditions

        :type criteria: dict | None
        """
        if not criteria:
            return []
        if not isinstance(criteria, dict):
            raise InvalidQueryError('Filter criteria must be one of: null, object')

        conditions = []
        for key, value in criteria.items():
            if key in self.LOGIC_OPERATORS:
                condition = self._parse_logic(key, value)
                if condition is not None:
                    conditions.append(condition)
            else:
                conditions.extend(self._parse_column(key, value))
        return conditions

    def _parse_column(self, column_name, column_criteria):
        try:
            bag_name, bag, column = self.supported_bags[column_name]
        except KeyError:
            raise InvalidColumnError(self.bags.model_name, column_name, self.directive_name)

        # {difficulty: 'easy'} is {$eq: 'easy'}; {difficulty: [...]} is {$in: [...]}
        if not isinstance(column_criteria, dict):
            column_criteria = {'$in' if _is_array(column_criteria) else '$eq': column_criteria}

        for operator, value in column_criteria.items():
            if operator not in self.operators:
                raise InvalidQueryError('Unsupported operator "{}" found in filter for column `{}`'
                                        .format(operator, column_name))
            if operator in self.FLAG_OPERATORS:
                cast = cast_value(bool, value, column_name)
            else:
                if operator in self.LIST_OPERATORS and not _is_array(value):
                    value = [value]
                cast = cast_value(bag.get_python_type(column_name), value, column_name)
            yield ColumnCondition(column_name, column, operator, self.operators[operator], cast, value)

    def _parse_logic(self, operator, value):
        if operator == '$not':
            if not isinstance(value, dict):
                raise InvalidQueryError('{}: $not argument must be an object'.format(self.directive_name))
            return LogicCondition(operator, self._parse_criteria(value))

        if not isinstance(value, (list, tuple)):
            raise InvalidQueryError('{}: {} argument must be a list'.format(self.directive_name, operator))
        if not value:
            return None  # {$or: []} means nothing
        return LogicCondition(operator, [self._parse_criteria(c) for c in value])

    def compile_statement(self):
        """ The WHERE condition, force_filter included """
        return _and_all([e.compile_expression() for e in self.expressions])

    def compile_criteria(self, criteria):
        """ Compile criteria on their own: no input needed, and no force_filter """
        return _and_all([e.compile_expression() for e in self._parse_criteria(criteria)])

    def alter_query(self, query, as_relation=None):
        if not self.expressions:
            return query
        return query.filter(self.compile_statement())
