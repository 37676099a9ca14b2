"""
### sort()

The `ORDER BY` of a query:

```python
Tour.find(ssn).sort('-ratings_average price')  # best rated first; cheaper first among equals
```

Accepted values:

* a string of fields separated by whitespace, each optionally prefixed: `-` descending, `+` ascending (default)
* a list of such strings: `['-ratings_average', 'price']`
* a list of `(field, direction)` pairs, direction being +1 or -1: `[('ratings_average', -1), ('price', +1)]`
* an `OrderedDict` of `{field: direction}`; a plain `dict` only with a single field

Only columns can be sorted by: a @property is not in the database.
"""

from collections import OrderedDict

from .base import DocumentQueryHandlerBase
from ..bag import CombinedBag
from ..exc import InvalidQueryError


def _field_direction(field: str) -> tuple:
    """ '-price' -> ('price', -1) """
    if field[:1] in ('-', '+'):
        return field[1:], -1 if field[0] == '-' else +1
    return field, +1


class SortHandler(DocumentQueryHandlerBase):
    """ The sort() directive. The parsed value is an OrderedDict: {field: +1|-1} """

    directive_name = 'sort'

    def __init__(self, model, bags):
        super(SortHandler, self).__init__(model, bags)
        self.sort_spec = OrderedDict()

    def _get_supported_bags(self):
        return CombinedBag(col=self.bags.columns)

    def _parse(self, spec) -> OrderedDict:
        if not spec:
            return OrderedDict()

        if isinstance(spec, str):
            spec = spec.split()

        if isinstance(spec, (list, tuple)):
            if all(isinstance(item, str) for item in spec):
                spec = OrderedDict(_field_direction(item) for item in spec)
            elif all(isinstance(item, (list, tuple)) and len(item) == 2 for item in spec):
                spec = OrderedDict(spec)
            else:
                raise InvalidQueryError('{}: a list must contain either field names, or (field, direction) pairs'
                                        .format(self.directive_name))
        elif isinstance(spec, dict) and not isinstance(spec, OrderedDict):
            # The order of object keys can't be relied upon in JSON
            if len(spec) > 1:
                raise InvalidQueryError('{}: a plain object can only have one field; use a list instead'
                                        .format(self.directive_name))
            spec = OrderedDict(spec)
        elif not isinstance(spec, OrderedDict):
            raise InvalidQueryError('{} must be either a list, a string, or an object; {} provided.'
                                    .format(self.directive_name, type(spec)))

        if any(direction not in (-1, +1) for direction in spec.values()):
            raise InvalidQueryError('{} direction can be either +1 or -1'.format(self.directive_name))

        self.validate_properties(spec.keys())
        return spec

    def input(self, sort_spec):
        super(SortHandler, self).input(sort_spec)
        self.sort_spec = self._parse(sort_spec)
        return self

    def compile_columns(self) -> list:
        """ ORDER BY expressions """
        columns = []
        for name, direction in self.sort_spec.items():
            column = self.supported_bags.get(name)
            columns.append(column.desc() if direction == -1 else column)
        return columns

    def alter_query(self, query, as_relation=None):
        if not self.sort_spec:
            return query
        return query.order_by(*self.compile_columns())

    def get_final_input_value(self):
        return list(self.sort_spec.items())
