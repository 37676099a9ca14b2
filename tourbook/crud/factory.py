"""
### Handler factory

Builds the five CRUD handlers for a model.
Every handler is a function that takes a session, the query parameters, the request body,
and the URL parameters; and returns a `(status_code, response_body)` tuple:

```python
get_all_tours = factory.get_all(Tour)
status, body = get_all_tours(ssn, params='sort=price&limit=5')
# -> 200, {'status': 'success', 'results': 5, 'data': {'data': [...]}}

get_tour = factory.get_one(Tour, populate=('reviews',))
status, body = get_tour(ssn, id=1)
# -> 200, {'status': 'success', 'data': {'data': {...}}}
```

Handlers raise `AppError('No document found with that ID', 404)` when there's nothing to read, update, or delete.
Other errors propagate unchanged: see tourbook.errors for turning them into responses.
"""

from logging import getLogger
from typing import Mapping, Union

from tourbook.exc import AppError
from tourbook.features import APIFeatures
from tourbook.query_string import parse_params
from .crudhelper import CrudHelper

logger = getLogger(__name__)


def _make_crudhelper(Model, settings: Union[Mapping, None]) -> CrudHelper:
    if isinstance(settings, CrudHelper):
        return settings
    return CrudHelper(Model, **(settings or {}))


def _find_one(crudhelper: CrudHelper, ssn, id):
    """ Load an instance by its primary key, through the model's DocumentQuery """
    query = crudhelper.query_model(ssn.query(crudhelper.model)) \
        .find({crudhelper.primary_key_name: id})
    instance = query.one_or_none()
    if instance is None:
        raise AppError('No document found with that ID', 404)
    return query, instance


def get_all(Model, settings=None):
    """ Handler: list documents

        Query parameters are translated with APIFeatures.
        URL parameters that name a column of the model become filter conditions:
        `handler(ssn, params, tour_id=1)` lists the reviews of one tour.

    :param settings: CrudSettingsDict, or a CrudHelper
    """
    crudhelper = _make_crudhelper(Model, settings)

    def handler(ssn, params=None, body=None, **url_params):
        query = crudhelper.query_model(ssn.query(Model))

        # To allow for nested listings: GET /tours/1/reviews
        query.where({name: value
                     for name, value in url_params.items()
                     if name in crudhelper.bags.columns})

        # Execute the query
        features = APIFeatures(query, parse_params(params), crudhelper.api_features) \
            .filter() \
            .sort() \
            .limit_fields() \
            .paginate()
        query = features.query
        docs = query.all()

        return 200, {
            'status': 'success',
            'results': len(docs),
            'data': {'data': [query.pluck_instance(doc) for doc in docs]},
        }

    handler.__name__ = 'get_all_{}'.format(Model.__tablename__)
    return handler


def get_one(Model, populate=None, settings=None):
    """ Handler: get a document by id

    :param populate: Relationships to load with the document. Default: the `populate` setting
    :param settings: CrudSettingsDict, or a CrudHelper
    """
    crudhelper = _make_crudhelper(Model, settings)
    populate = tuple(populate or crudhelper.populate)

    def handler(ssn, params=None, body=None, id=None, **url_params):
        query = crudhelper.query_model(ssn.query(Model)) \
            .find({crudhelper.primary_key_name: id})
        if populate:
            query.populate(populate)

        doc = query.one_or_none()
        if doc is None:
            raise AppError('No document found with that ID', 404)

        return 200, {'status': 'success', 'data': {'data': query.pluck_instance(doc)}}

    handler.__name__ = 'get_one_{}'.format(Model.__tablename__)
    return handler


def create_one(Model, settings=None):
    """ Handler: create a document from the request body

    :param settings: CrudSettingsDict, or a CrudHelper
    """
    crudhelper = _make_crudhelper(Model, settings)

    def handler(ssn, params=None, body=None, **url_params):
        instance = crudhelper.create_model(body)

        ssn.add(instance)
        ssn.commit()
        logger.info('Created %r', instance)

        return 201, {'status': 'success', 'data': {'data': crudhelper.query_model().pluck_instance(instance)}}

    handler.__name__ = 'create_one_{}'.format(Model.__tablename__)
    return handler


def update_one(Model, settings=None):
    """ Handler: update a document by id with the fields from the request body

    :param settings: CrudSettingsDict, or a CrudHelper
    """
    crudhelper = _make_crudhelper(Model, settings)

    def handler(ssn, params=None, body=None, id=None, **url_params):
        query, instance = _find_one(crudhelper, ssn, id)
        instance = crudhelper.update_model(body, instance)

        ssn.add(instance)
        ssn.commit()
        logger.info('Updated %r', instance)

        return 200, {'status': 'success', 'data': {'data': crudhelper.query_model().pluck_instance(instance)}}

    handler.__name__ = 'update_one_{}'.format(Model.__tablename__)
    return handler


def delete_one(Model, settings=None):
    """ Handler: delete a document by id

    :param settings: CrudSettingsDict, or a CrudHelper
    """
    crudhelper = _make_crudhelper(Model, settings)

    def handler(ssn, params=None, body=None, id=None, **url_params):
        query, instance = _find_one(crudhelper, ssn, id)

        ssn.delete(instance)
        ssn.commit()
        logger.info('Deleted %r', instance)

        return 204, None

    handler.__name__ = 'delete_one_{}'.format(Model.__tablename__)
    return handler
