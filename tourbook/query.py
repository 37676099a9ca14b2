from collections import OrderedDict
from contextlib import contextmanager
from copy import copy
from logging import getLogger
from time import perf_counter

from sqlalchemy import inspect
from sqlalchemy.orm import Query, Load

from .bag import ModelPropertyBags
from . import handlers
from .util import DocumentQuerySettingsHandler


logger = getLogger(__name__)


class DocumentQuery(object):
    """ MongoDB-style queries over an SqlAlchemy model

        A chainable query handle: every directive returns the same object,
        and nothing is executed until you call all(), first(), one_or_none(), or count().

            tours = DocumentQuery(Tour).with_session(ssn) \\
                .find({'price': {'$lte': '500'}}) \\
                .sort('-ratings_average price') \\
                .select('name price') \\
                .skip(10).limit(10) \\
                .all()

        Calling a directive twice replaces its previous value: the directives never accumulate.

        Making one is not free: the model is analyzed, and every handler parses its settings.
        Make one per model, wrap it with Reusable(), and every use will get a copy.
    """

    #: Model analysis
    BAGS_CLS = ModelPropertyBags

    #: Directive name -> handler class. Handlers alter the query in this order:
    #: the skip/limit window goes last, because it only makes sense on a filtered and sorted query.
    HANDLERS = OrderedDict((
        ('filter', handlers.FilterHandler),
        ('sort', handlers.SortHandler),
        ('project', handlers.ProjectHandler),
        ('populate', handlers.PopulateHandler),
        ('limit', handlers.LimitHandler),
    ))

    def __init__(self, model, settings=None):
        """
        :param model: The model to query. Not an alias.
        :param settings: DocumentQuerySettingsDict, or a dict with the same keys.
            Each key goes to the handler whose __init__() has a keyword argument of this name;
            `<directive>_enabled=False` turns a directive off.
        :type settings: dict | None
        :raises KeyError: a setting that no handler accepts
        :raises InvalidColumnError: a setting refers to an unknown field
        """
        assert not inspect(model).is_aliased_class, 'DocumentQuery does not accept aliases'

        self._model = model
        self._bags = self.BAGS_CLS.for_model(model)
        self._settings = DocumentQuerySettingsHandler(dict(settings or {}))

        #: The query to build upon; None until from_query(), with_session(), or where()
        self._query = None  # type: Query | None

        #: Handlers that never got any input. Shared by the copies.
        self._pristine = OrderedDict(
            (name, handler_cls(model, self._bags, **self._settings.get_settings(name, handler_cls)))
            for name, handler_cls in self.HANDLERS.items()
        )
        self._settings.raise_if_invalid_handler_settings(self)

        #: Handlers with the current input. Every one starts with None: settings may apply even without input
        self._active = OrderedDict((name, copy(handler).input(None))
                                   for name, handler in self._pristine.items())

        # skip() and limit() feed the same handler
        self._window = (None, None)

    def __copy__(self):
        result = self.__class__.__new__(self.__class__)
        result.__dict__.update(self.__dict__)
        # Handlers are replaced, never modified: copying the dict is enough
        result._active = OrderedDict(self._active)
        return result

    @property
    def model(self):
        return self._model

    @property
    def bags(self):
        return self._bags

    def _base_query(self) -> Query:
        return self._query if self._query is not None else Query([self._model])

    def from_query(self, query):
        """ Build upon this query: e.g. one with a session, or with some filtering applied already

            :type query: sqlalchemy.orm.Query | None
        """
        self._query = query
        return self

    def with_session(self, ssn):
        """ Bind to a Session """
        self._query = self._base_query().with_session(ssn)
        return self

    def where(self, criteria):
        """ Add filter criteria to the base query

            find() may be called any number of times, and each call replaces the last one,
            but the conditions given here stay. Use it for what your code demands, not the user:
            e.g., the reviews of one tour.

        :type criteria: dict | None
        """
        if criteria:
            condition = self._pristine['filter'].compile_criteria(criteria)
            self._query = self._base_query().filter(condition)
        return self

    # region Directives

    def _set(self, name, value):
        # An empty value is always accepted, even by a disabled directive
        if value and value != (None, None):
            self._settings.raise_if_not_handler_enabled(self._bags.model_name, name)
        self._active[name] = copy(self._pristine[name]).input(value)
        return self

    def find(self, criteria=None):
        """ Filter: {field: value, field: {$operator: value}}

        :type criteria: dict | None
        :raises InvalidQueryError: malformed criteria, or an unsupported operator
        :raises InvalidColumnError: unknown field
        :raises InvalidValueError: a value can't be cast to the type of its field
        :raises DisabledError: the directive is turned off
        """
        return self._set('filter', criteria)

    def sort(self, spec=None):
        """ Order: 'a -b', ['a', '-b'], or [('a', +1), ('b', -1)] """
        return self._set('sort', spec)

    def select(self, projection=None):
        """ Fields: 'a b', '-c', ['a', 'b'], or {'c': 0} """
        return self._set('project', projection)

    def skip(self, n=None):
        self._window = (n, self._window[1])
        return self._set('limit', self._window)

    def limit(self, n=None):
        self._window = (self._window[0], n)
        return self._set('limit', self._window)

    def populate(self, *relations):
        """ Load related documents with the results

            populate('reviews')
            populate('reviews', 'start_dates')
            populate(['reviews', 'start_dates'])
        """
        if len(relations) == 1 and not isinstance(relations[0], str):
            relations = relations[0]
        return self._set('populate', list(relations or ()))

    # endregion

    def end(self) -> Query:
        """ The SqlAlchemy Query, every directive applied """
        query = self._base_query()
        as_relation = Load(self._model)
        for handler in self._active.values():
            query = handler.alter_query(query, as_relation=as_relation)
        return query

    # region Execution

    def all(self):
        with self._timed('all'):
            return self.end().all()

    def first(self):
        with self._timed('first'):
            return self.end().first()

    def one_or_none(self):
        """ :raises sqlalchemy.orm.exc.MultipleResultsFound """
        with self._timed('one_or_none'):
            return self.end().one_or_none()

    def count(self) -> int:
        """ The number of documents find() matches. Sort and skip/limit do not matter. """
        query = self._active['filter'].alter_query(self._base_query())
        with self._timed('count'):
            return query.count()

    @contextmanager
    def _timed(self, method_name):
        start = perf_counter()
        try:
            yield
        finally:
            logger.debug('%s.%s() query took %.1f ms',
                         self._bags.model_name, method_name, (perf_counter() - start) * 1000)

    # endregion

    def compile_filter(self):
        """ The condition of find(), force_filter included; where() criteria are not

            For SELECTs of your own, like aggregate reports, that have to see the same documents.
        """
        return self._active['filter'].compile_statement()

    def get_directives(self) -> dict:
        """ {directive: value}, as parsed and with the settings applied """
        return {name: handler.get_final_input_value()
                for name, handler in self._active.items()}

    def pluck_instance(self, instance) -> dict:
        """ An instance as a dict, for JSON: the selected fields and the populated relationships

            Whatever else the instance has loaded stays out.
        """
        if not isinstance(instance, self._model):
            raise ValueError('This DocumentQuery.pluck_instance() expects {}, but {} was given'
                             .format(self._model, type(instance)))
        dct = self._active['project'].pluck_instance(instance)
        dct.update(self._active['populate'].pluck_instance(instance, self._pluck_related))
        return dct

    @staticmethod
    def _pluck_related(model, instance):
        # A related document looks the way its own model's query shows it
        get_document_query = getattr(model, '_get_document_query', None)
        query = get_document_query() if get_document_query else DocumentQuery(model)
        return query.pluck_instance(instance)

    def __repr__(self):
        return 'DocumentQuery({})'.format(self._model)
