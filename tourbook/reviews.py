"""
### Reviews

CRUD handlers for reviews. Reviews can be listed and created under a tour:

    GET  /tours/1/reviews   ->  get_all_reviews(ssn, params, tour_id=1)
    POST /tours/1/reviews   ->  create_review(ssn, body=body, tour_id=1)

Every time a review is created, the tour's rating is recalculated.
"""

from .config import Config
from .crud import factory
from .models import Review
from .util import CrudSettingsDict


def make_settings(config: Config) -> CrudSettingsDict:
    """ Settings for the review handlers """
    return CrudSettingsDict(
        ro_fields=('created_at',),
        api_features=config.api_features,
        **Review.__document_query_settings__
    )


def make_handlers(config: Config) -> dict:
    """ The review handlers: {name: handler} """
    settings = make_settings(config)
    create_one = factory.create_one(Review, settings)

    def create_review(ssn, params=None, body=None, tour_id=None, **url_params):
        """ Handler: create a review; the tour comes from the URL unless the body names one """
        body = dict(body or {})
        if tour_id is not None and body.get('tour_id') is None:
            body['tour_id'] = tour_id

        status, response = create_one(ssn, params, body, **url_params)

        Review.calc_average_ratings(ssn, response['data']['data']['tour_id'])
        ssn.commit()
        return status, response

    return {
        'get_all_reviews': factory.get_all(Review, settings),
        'get_review': factory.get_one(Review, settings=settings),
        'create_review': create_review,
        'update_review': factory.update_one(Review, settings),
        'delete_review': factory.delete_one(Review, settings),
    }


#: Handlers for the process configuration, see tourbook.config
_handlers = make_handlers(Config.from_env())

get_all_reviews = _handlers['get_all_reviews']
get_review = _handlers['get_review']
create_review = _handlers['create_review']
update_review = _handlers['update_review']
delete_review = _handlers['delete_review']
