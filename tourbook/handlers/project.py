"""
### select()

The fields a document has: the `SELECT` list of a query.

```python
Tour.find(ssn).select('name price')   # these fields only
Tour.find(ssn).select('-version_id')  # everything but this field
```

A projection either includes fields, or excludes them; never both.
It is written as a string of names (`'-'` prefix to exclude), a list of them,
or an object: `{'name': 1, 'price': 1}`, `{'version_id': 0}`.

The primary key is always in. A @property can be selected too:
it is not loaded from the database, but pluck_instance() returns it.
"""

from .base import DocumentQueryHandlerBase
from ..bag import CombinedBag
from ..exc import InvalidQueryError


def _include_flag(name: str) -> tuple:
    """ '-summary' -> ('summary', 0); 'name', '+name' -> ('name', 1) """
    if name[:1] in ('-', '+'):
        return name[1:], 0 if name[0] == '-' else 1
    return name, 1


class ProjectHandler(DocumentQueryHandlerBase):
    """ The select() directive. The parsed value is a dict: {field: 1} or {field: 0} """

    directive_name = 'project'

    MODE_INCLUDE = 1
    MODE_EXCLUDE = 0

    def __init__(self, model, bags, default_exclude=None, force_include=None, force_exclude=None):
        """
        :param default_exclude: Fields left out of an exclusion; to get them, name them in an inclusion
        :param force_include: Fields that are always selected
        :param force_exclude: Fields that are never selected, even when named
        :raises InvalidColumnError: a setting names an unknown field
        """
        super(ProjectHandler, self).__init__(model, bags)
        self.default_exclude = frozenset(default_exclude or ())
        self.force_include = frozenset(force_include or ())
        self.force_exclude = frozenset(force_exclude or ())

        for setting in ('default_exclude', 'force_include', 'force_exclude'):
            self.validate_properties(getattr(self, setting), where='project:' + setting)

        self.mode = self.MODE_EXCLUDE
        self._projection = {}

    def _get_supported_bags(self):
        return CombinedBag(col=self.bags.columns, prop=self.bags.properties)

    def input(self, projection):
        super(ProjectHandler, self).input(projection)
        projection = self._parse(projection)

        if not projection or 0 in projection.values():
            self.mode = self.MODE_EXCLUDE
            projection.update(dict.fromkeys(self.default_exclude | self.force_exclude, 0))
            for name in self.force_include:
                projection.pop(name, None)
        else:
            self.mode = self.MODE_INCLUDE
            projection.update(dict.fromkeys(self.force_include, 1))
            for name in self.force_exclude:
                projection.pop(name, None)

        self._projection = projection
        return self

    def _parse(self, projection) -> dict:
        if not projection:
            return {}

        if isinstance(projection, str):
            projection = projection.split()
        if isinstance(projection, (list, tuple)):
            if not all(isinstance(name, str) for name in projection):
                raise InvalidQueryError('{} array must only contain strings'.format(self.directive_name))
            projection = dict(_include_flag(name) for name in projection)
        elif not isinstance(projection, dict):
            raise InvalidQueryError('{} must be either a string, a list, or an object; {} provided.'
                                    .format(self.directive_name, type(projection)))
        else:
            projection = dict(projection)

        flags = set(projection.values())
        if not flags <= {0, 1}:
            raise InvalidQueryError('{} values must be either 0 or 1'.format(self.directive_name))
        if len(flags) > 1:
            raise InvalidQueryError('{} cannot have a mix of inclusion and exclusion'.format(self.directive_name))

        self.validate_properties(projection.keys())
        return projection

    @property
    def projection(self) -> dict:
        """ {field: 0|1}, settings applied """
        return dict(self._projection)

    def __contains__(self, name):
        """ Is the field selected? """
        if self.mode == self.MODE_INCLUDE:
            return name in self._projection or name in self.bags.pk
        return name not in self._projection

    def get_included_names(self) -> list:
        """ Selected fields: columns in table order, then properties by name """
        candidates = [name for name, column in self.bags.columns] + sorted(self.bags.properties.names)
        return [name for name in candidates if name in self]

    def compile_columns(self) -> list:
        """ Selected columns """
        return [column for name, column in self.bags.columns if name in self]

    def compile_options(self, as_relation) -> list:
        """ Loader options: load_only() when including, defer() when excluding """
        if self.mode == self.MODE_INCLUDE:
            return [as_relation.load_only(*self.compile_columns())]
        return [as_relation.defer(self.bags.columns[name])
                for name in self._projection
                if name in self.bags.columns]

    def alter_query(self, query, as_relation):
        options = self.compile_options(as_relation)
        return query.options(*options) if options else query

    def get_final_input_value(self):
        return self.projection

    def pluck_instance(self, instance) -> dict:
        """ The selected fields of an instance, as a dict

            Only what was selected is returned, not whatever else the instance happens to have loaded.
        """
        return {name: getattr(instance, name) for name in self.get_included_names()}
