import unittest

from tourbook import APIFeatures, APIFeaturesSettingsDict, QuerySpec, Projection, Pagination, parse_query_string
from tourbook.features import DEFAULT_COMPARISON_OPERATORS


class RecordingHandle:
    """ A query handle that records every call made to it """

    def __init__(self):
        self.calls = []

    def _record(name):
        def method(self, *args):
            self.calls.append((name,) + args)
            return self
        method.__name__ = name
        return method

    find = _record('find')
    sort = _record('sort')
    select = _record('select')
    skip = _record('skip')
    limit = _record('limit')


class APIFeaturesTest(unittest.TestCase):
    """ Test APIFeatures: the query string translator """

    maxDiff = None

    def features(self, params, settings=None):
        return APIFeatures(RecordingHandle(), params, settings) \
            .filter() \
            .sort() \
            .limit_fields() \
            .paginate()

    def test_filter(self):
        # Reserved params never leak into the filter
        f = APIFeatures(None, {'price': {'gte': '100'}, 'duration': '5', 'page': '1', 'sort': 'price',
                               'limit': '10', 'fields': 'name'}).filter()
        self.assertEqual(f.spec.filter, {'price': {'$gte': '100'}, 'duration': '5'})

        # All comparison operators
        f = APIFeatures(None, {'price': {'gte': '1', 'gt': '2', 'lte': '3', 'lt': '4'}}).filter()
        self.assertEqual(f.spec.filter, {'price': {'$gte': '1', '$gt': '2', '$lte': '3', '$lt': '4'}})

        # Unknown sub-keys: passed through as they are
        f = APIFeatures(None, {'price': {'ne': '5', '$in': ['1']}}).filter()
        self.assertEqual(f.spec.filter, {'price': {'ne': '5', '$in': ['1']}})

        # Lists: passed through
        f = APIFeatures(None, {'difficulty': ['easy', 'medium']}).filter()
        self.assertEqual(f.spec.filter, {'difficulty': ['easy', 'medium']})

        # Empty
        self.assertEqual(APIFeatures(None, {}).filter().spec.filter, {})
        self.assertEqual(APIFeatures(None, None).filter().spec.filter, {})

        # The params are not modified
        params = {'price': {'gte': '100'}, 'page': '2'}
        APIFeatures(None, params).filter()
        self.assertEqual(params, {'price': {'gte': '100'}, 'page': '2'})

    def test_filter_idempotent(self):
        """ filter() twice == filter() once """
        params = {'price': {'gte': '100'}, 'duration': '5'}
        once = APIFeatures(None, params).filter().spec.filter
        twice = APIFeatures(None, params).filter().filter().spec.filter
        self.assertEqual(once, twice)

    def test_sort(self):
        f = APIFeatures(None, {'sort': '-price,name'}).sort()
        self.assertEqual(f.spec.sort, [('price', -1), ('name', +1)])

        # Default sort: newest first, stable
        f = APIFeatures(None, {}).sort()
        self.assertEqual(f.spec.sort, [('created_at', -1), ('id', +1)])
        f = APIFeatures(None, {'sort': ''}).sort()
        self.assertEqual(f.spec.sort, [('created_at', -1), ('id', +1)])

        # Spaces and empty items are ignored
        f = APIFeatures(None, {'sort': ' price , ,-name'}).sort()
        self.assertEqual(f.spec.sort, [('price', +1), ('name', -1)])

        # A list of values is joined
        f = APIFeatures(None, {'sort': ['price', '-name']}).sort()
        self.assertEqual(f.spec.sort, [('price', +1), ('name', -1)])

        # Not a string, e.g. `sort[price]=1`: the default sort
        f = APIFeatures(None, {'sort': {'price': '1'}}).sort()
        self.assertEqual(f.spec.sort, [('created_at', -1), ('id', +1)])
        f = APIFeatures(None, parse_query_string('sort[price]=1')).sort()
        self.assertEqual(f.spec.sort, [('created_at', -1), ('id', +1)])
        f = APIFeatures(None, {'sort': ['price', {'x': '1'}]}).sort()
        self.assertEqual(f.spec.sort, [('price', +1)])

        # Custom default
        f = APIFeatures(None, {}, {'default_sort': ('name',)}).sort()
        self.assertEqual(f.spec.sort, [('name', +1)])

    def test_limit_fields(self):
        f = APIFeatures(None, {'fields': 'name,price'}).limit_fields()
        self.assertEqual(f.spec.projection, Projection(('name', 'price'), ()))

        # Default: exclude the hidden version field
        f = APIFeatures(None, {}).limit_fields()
        self.assertEqual(f.spec.projection, Projection((), ('version_id',)))
        f = APIFeatures(None, {'fields': None}).limit_fields()
        self.assertEqual(f.spec.projection, Projection((), ('version_id',)))

        # Exclusion
        f = APIFeatures(None, {'fields': '-summary,-description'}).limit_fields()
        self.assertEqual(f.spec.projection, Projection((), ('summary', 'description')))

        # Not a string, e.g. `fields[name]=1`: the default projection
        f = APIFeatures(None, {'fields': {'name': '1'}}).limit_fields()
        self.assertEqual(f.spec.projection, Projection((), ('version_id',)))
        f = APIFeatures(None, parse_query_string('fields[name]=1')).limit_fields()
        self.assertEqual(f.spec.projection, Projection((), ('version_id',)))

        # Mixed: passed through, the query handle decides
        f = APIFeatures(None, {'fields': 'name,-summary'}).limit_fields()
        self.assertEqual(f.spec.projection, Projection(('name',), ('summary',)))

        # to_select_string()
        self.assertEqual(Projection(('name', 'price'), ()).to_select_string(), 'name price')
        self.assertEqual(Projection((), ('version_id',)).to_select_string(), '-version_id')
        self.assertEqual(Projection((), ()).to_select_string(), '')

    def test_paginate(self):
        paginate = lambda params, settings=None: APIFeatures(None, params, settings).paginate().spec.pagination

        # Defaults
        self.assertEqual(paginate({}), Pagination(1, 100))
        self.assertEqual(paginate({}).skip, 0)

        # page & limit
        p = paginate({'page': '2', 'limit': '10'})
        self.assertEqual(p, Pagination(2, 10))
        self.assertEqual(p.skip, 10)
        self.assertEqual(paginate({'page': 3, 'limit': 20}).skip, 40)

        # Non-numeric: defaults
        self.assertEqual(paginate({'page': 'abc'}).page, 1)
        self.assertEqual(paginate({'limit': 'abc'}).limit, 100)

        # Integer prefix
        self.assertEqual(paginate({'page': '2abc'}).page, 2)
        self.assertEqual(paginate({'page': ' 3 '}).page, 3)

        # Non-positive: defaults
        self.assertEqual(paginate({'page': '0', 'limit': '0'}), Pagination(1, 100))
        self.assertEqual(paginate({'page': '-2', 'limit': '-5'}), Pagination(1, 100))

        # Lists: the last value
        self.assertEqual(paginate({'page': ['2', '3']}).page, 3)

        # Booleans and other junk
        self.assertEqual(paginate({'page': True}).page, 1)
        self.assertEqual(paginate({'page': {'gte': '1'}}).page, 1)

        # max_limit
        self.assertEqual(paginate({'limit': '5000'}).limit, 1000)
        self.assertEqual(paginate({'limit': '5000'}, APIFeaturesSettingsDict(max_limit=50)).limit, 50)
        self.assertEqual(paginate({'limit': '5000'}, {'max_limit': None}).limit, 5000)

        # Custom defaults
        self.assertEqual(paginate({}, {'default_page': 2, 'default_limit': 5}), Pagination(2, 5))

    def test_directives_replace(self):
        """ Every directive overwrites its part of the QuerySpec """
        f = APIFeatures(None, {'sort': 'price', 'page': '2'})
        f.sort().sort()
        self.assertEqual(f.spec.sort, [('price', +1)])

        f.paginate()
        f.params = {'page': '5'}
        f.paginate()
        self.assertEqual(f.spec.pagination, Pagination(5, 100))

    def test_query_spec(self):
        f = self.features({'price': {'lt': '500'}, 'sort': 'price', 'fields': 'name', 'page': '2', 'limit': '10'})
        self.assertEqual(f.spec, QuerySpec(
            filter={'price': {'$lt': '500'}},
            sort=[('price', +1)],
            projection=Projection(('name',), ()),
            pagination=Pagination(2, 10),
        ))
        self.assertNotEqual(f.spec, QuerySpec())
        self.assertIn('pagination=Pagination(page=2, limit=10)', repr(f.spec))

        # Nothing called: nothing set
        self.assertEqual(APIFeatures(None, {}).spec, QuerySpec())

    def test_apply(self):
        """ Test how a QuerySpec is applied to a query handle """
        f = self.features({'price': {'lt': '500'}, 'sort': '-price,name', 'fields': 'name,price',
                           'page': '3', 'limit': '10'})

        # Nothing is applied until .query is requested
        self.assertEqual(f._query.calls, [])

        handle = f.query
        self.assertEqual(handle.calls, [
            ('find', {'price': {'$lt': '500'}}),
            ('sort', '-price name'),
            ('select', 'name price'),
            ('skip', 20),
            ('limit', 10),
        ])

        # Directives that were never called are not applied
        handle = APIFeatures(RecordingHandle(), {'sort': 'name'}).sort().query
        self.assertEqual(handle.calls, [('sort', 'name')])

        # apply() to another handle, in the fixed order, regardless of the order the directives were called in
        f = APIFeatures(None, {'page': '2'}).paginate().filter()
        handle = f.apply(RecordingHandle())
        self.assertEqual(handle.calls, [('find', {}), ('skip', 100), ('limit', 100)])

    def test_settings(self):
        # Custom reserved params
        f = APIFeatures(None, {'page': '1', 'q': 'x'}, {'reserved_params': ('q',)}).filter()
        self.assertEqual(f.spec.filter, {'page': '1'})

        # Custom operators
        f = APIFeatures(None, {'price': {'ne': '5'}},
                        {'comparison_operators': {**DEFAULT_COMPARISON_OPERATORS, 'ne': '$ne'}}).filter()
        self.assertEqual(f.spec.filter, {'price': {'$ne': '5'}})

        # Custom hidden fields
        f = APIFeatures(None, {}, {'hidden_fields': ('version_id', 'secret_tour')}).limit_fields()
        self.assertEqual(f.spec.projection, Projection((), ('version_id', 'secret_tour')))

        # Unknown settings are not accepted
        self.assertRaises(TypeError, APIFeaturesSettingsDict, nope=1)
