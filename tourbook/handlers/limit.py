"""
### skip() and limit()

The `LIMIT .. OFFSET ..` window of a query. Pages are made of these:

```python
Tour.find(ssn).skip(20).limit(10)  # page 3, 10 tours per page
```

Both are optional: an integer, or None. Zero and negative values mean "no limit" and "no offset".
The `max_items` setting caps the window: a listing never loads more than that, whatever was asked.
"""

from .base import DocumentQueryHandlerBase
from ..exc import InvalidQueryError


def _check_int_or_none(name, value):
    # bool is an int, but not a number of rows
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise InvalidQueryError('{} must be either an integer, or null'.format(name))
    return value if value is not None and value > 0 else None


class LimitHandler(DocumentQueryHandlerBase):
    """ The skip() and limit() directives, served together: the input is a `(skip, limit)` tuple """

    directive_name = 'limit'

    def __init__(self, model, bags, max_items=None):
        """
        :param max_items: The largest number of documents a query may load. Applied to every query.
        """
        super(LimitHandler, self).__init__(model, bags)
        assert max_items is None or max_items > 0
        self.max_items = max_items

        self.skip = None
        self.limit = None

    def _get_supported_bags(self):
        return None

    def input(self, window):
        window = window or (None, None)
        super(LimitHandler, self).input(window)
        skip, limit = window

        self.skip = _check_int_or_none('Skip', skip)
        self.limit = _check_int_or_none('Limit', limit)
        if self.max_items:
            self.limit = min(self.limit or self.max_items, self.max_items)
        return self

    def alter_query(self, query, as_relation=None):
        if self.skip:
            query = query.offset(self.skip)
        if self.limit:
            query = query.limit(self.limit)
        return query

    def get_final_input_value(self):
        return {'skip': self.skip, 'limit': self.limit}
