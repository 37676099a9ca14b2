"""
### API Features

`APIFeatures` translates the query string of a listing endpoint into the four directives of a query:
filter, sort, projection and pagination.

```python
features = APIFeatures(Tour.find(ssn), {'price': {'gte': '100'}, 'sort': '-price,name', 'page': '2'}) \\
    .filter() \\
    .sort() \\
    .limit_fields() \\
    .paginate()

features.spec  # -> QuerySpec(filter={'price': {'$gte': '100'}}, sort=[('price', -1), ('name', 1)], ...)
tours = features.query.all()
```

Every directive only updates the `QuerySpec`; the query handle is touched when you ask for `features.query`,
and the directives are applied to it in this order: filter, sort, projection, pagination.

Query string syntax:

* `?duration=5&price[gte]=100`: filter. The `gte`, `gt`, `lte`, `lt` keys become `$gte`, `$gt`, `$lte`, `$lt`.
    Other keys are passed through as they are: the query handle decides whether it supports them.
* `?sort=-price,name`: sort by fields, comma-separated; a `-` prefix sorts descending.
* `?fields=name,price`: include only these fields. `?fields=-summary,-description`: exclude them.
* `?page=2&limit=10`: the page number and the page size.

The translator never raises: malformed `page` and `limit` values fall back to the defaults,
and so do `sort` and `fields` values that are not strings, like `?sort[price]=1`.
"""

import re
from collections import namedtuple
from collections.abc import Mapping
from typing import Union

from .util import APIFeaturesSettingsDict


#: Default mapping of comparison sub-keys to the operators of the query handle
DEFAULT_COMPARISON_OPERATORS = {
    'gte': '$gte',
    'gt': '$gt',
    'lte': '$lte',
    'lt': '$lt',
}


class Projection(namedtuple('Projection', ('include', 'exclude'))):
    """ Projection directive: the fields to include, or the fields to exclude

        Normally, only one of them is non-empty. Both empty: no restriction.
    """
    __slots__ = ()

    def to_select_string(self) -> str:
        """ Convert to the "name price -secret" syntax of DocumentQuery.select() """
        return ' '.join(list(self.include) + ['-' + name for name in self.exclude])


class Pagination(namedtuple('Pagination', ('page', 'limit'))):
    """ Pagination directive: the page number and the page size, both positive """
    __slots__ = ()

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class QuerySpec:
    """ The four directives, as they will be applied to a query handle

        A directive that was never set is None, and it isn't applied at all.
    """
    __slots__ = ('filter', 'sort', 'projection', 'pagination')

    def __init__(self, filter=None, sort=None, projection=None, pagination=None):
        #: Filter criteria: {field: value | {$op: value}}
        self.filter = filter  # type: dict | None
        #: Sort: [(field, +1 | -1)]
        self.sort = sort  # type: list | None
        #: Projection
        self.projection = projection  # type: Projection | None
        #: Pagination
        self.pagination = pagination  # type: Pagination | None

    def __eq__(self, other):
        return isinstance(other, QuerySpec) and \
               all(getattr(self, k) == getattr(other, k) for k in self.__slots__)

    def __repr__(self):
        return '{}({})'.format(self.__class__.__name__,
                               ', '.join('{}={!r}'.format(k, getattr(self, k)) for k in self.__slots__))


class APIFeatures:
    """ Query string to query translator

        :param query: The query handle: an object with find(), sort(), select(), skip(), limit()
            methods, each of which returns the handle. Normally, a DocumentQuery.
        :param params: Query parameters: {key: str | list[str] | dict}.
            See tourbook.query_string for parsing them from a URL.
        :param settings: Translation settings: APIFeaturesSettingsDict, or a dict with some of its keys
    """

    def __init__(self, query, params: Mapping, settings: Union[APIFeaturesSettingsDict, Mapping, None] = None):
        self._query = query
        self.params = params if params is not None else {}
        self.settings = APIFeaturesSettingsDict.pluck_from(settings or {})
        self.spec = QuerySpec()

        self._reserved_params = frozenset(self.settings['reserved_params'])
        self._comparison_operators = self.settings['comparison_operators'] or DEFAULT_COMPARISON_OPERATORS

    # region Directives

    def filter(self) -> 'APIFeatures':
        """ Filter: every parameter, except for the reserved ones """
        self.spec.filter = {key: self._translate_operators(value)
                            for key, value in self.params.items()
                            if key not in self._reserved_params}
        return self

    def sort(self) -> 'APIFeatures':
        """ Sort: `sort=-price,name`, or the default sort """
        fields = self._split_fields(self.params.get('sort'))
        if not fields:
            fields = list(self.settings['default_sort'])

        self.spec.sort = [(name[1:], -1) if name.startswith('-') else (name, +1)
                          for name in fields]
        return self

    def limit_fields(self) -> 'APIFeatures':
        """ Projection: `fields=name,price`, or the default exclusion of hidden fields """
        fields = self._split_fields(self.params.get('fields'))
        if not fields:
            self.spec.projection = Projection((), tuple(self.settings['hidden_fields']))
        else:
            self.spec.projection = Projection(
                tuple(name for name in fields if not name.startswith('-')),
                tuple(name[1:] for name in fields if name.startswith('-')),
            )
        return self

    def paginate(self) -> 'APIFeatures':
        """ Pagination: `page=2&limit=10` """
        page = _parse_positive_int(self.params.get('page'), self.settings['default_page'])
        limit = _parse_positive_int(self.params.get('limit'), self.settings['default_limit'])

        max_limit = self.settings['max_limit']
        if max_limit is not None:
            limit = min(limit, max_limit)

        self.spec.pagination = Pagination(page, limit)
        return self

    # endregion

    @property
    def query(self):
        """ The query handle, with the directives applied """
        return self.apply(self._query)

    def apply(self, handle):
        """ Apply the directives to a query handle, in order: filter, sort, projection, pagination

            Directives that were never called are not applied.

            :return: the handle
        """
        spec = self.spec
        if spec.filter is not None:
            handle = handle.find(spec.filter)
        if spec.sort is not None:
            handle = handle.sort(' '.join('-' + name if direction == -1 else name
                                          for name, direction in spec.sort))
        if spec.projection is not None:
            handle = handle.select(spec.projection.to_select_string())
        if spec.pagination is not None:
            handle = handle.skip(spec.pagination.skip).limit(spec.pagination.limit)
        return handle

    def _translate_operators(self, value):
        """ Rename comparison sub-keys into operators: {'gte': '5'} -> {'$gte': '5'} """
        if not isinstance(value, Mapping):
            return value
        return {self._comparison_operators.get(k, k): v
                for k, v in value.items()}

    @staticmethod
    def _split_fields(value):
        """ Split a comma-separated list of fields. A list of values is joined first.

            Anything else, like `sort[price]=1`, is ignored: the default applies.
        """
        if isinstance(value, (list, tuple)):
            value = ','.join(v for v in value if isinstance(v, str))
        if not value or not isinstance(value, str):
            return []
        return [name.strip() for name in value.split(',') if name.strip()]


_leading_int = re.compile(r'^\s*([+-]?\d+)')


def _parse_positive_int(value, default: int) -> int:
    """ Parse the leading integer of a string ("2abc" -> 2); fall back to `default` when it's not a positive number

        A list of values gives its last item.
    """
    if isinstance(value, (list, tuple)):
        value = value[-1] if value else None

    if isinstance(value, bool):
        n = None
    elif isinstance(value, int):
        n = value
    elif isinstance(value, str):
        m = _leading_int.match(value)
        n = int(m.group(1)) if m else None
    else:
        n = None

    if n is None or n <= 0:
        return default
    return n
