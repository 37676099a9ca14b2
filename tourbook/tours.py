"""
### Tours

CRUD handlers for tours, the "top 5 cheap" alias, and the reports:
tour statistics, the monthly plan, and the geospatial queries.

Every handler has the same signature as the ones from tourbook.crud.factory:
`handler(ssn, params=None, body=None, **url_params)` -> `(status_code, response_body)`.

Secret tours are never listed, and never make it into the reports.
"""

from collections import defaultdict
from datetime import datetime

from geopy.distance import great_circle
from sqlalchemy import select, func

from .config import Config
from .crud import factory
from .exc import AppError
from .models import Tour, TourStartDate
from .query_string import parse_params
from .util import CrudSettingsDict


#: Query parameters of the "top 5 cheap" listing
TOP_TOURS_PARAMS = {
    'limit': '5',
    'sort': '-ratings_average,price',
    'fields': 'name,price,ratings_average,summary,difficulty',
}

#: Earth radius: in miles and in kilometers
EARTH_RADIUS = {
    'mi': 3963.2,
    'km': 6378.1,
}

#: Multipliers to convert meters into distance units
METERS_MULTIPLIER = {
    'mi': 0.000621371,
    'km': 0.001,
}


def alias_top_tours(params=None) -> dict:
    """ Preset the query parameters for the "top 5 cheap" listing: the best rated tours, cheaper first

        Use it with get_all_tours():

            get_all_tours(ssn, alias_top_tours(request.args))
    """
    return {**parse_params(params), **TOP_TOURS_PARAMS}


def make_settings(config: Config) -> CrudSettingsDict:
    """ Settings for the tour handlers; listings are capped by the configured page size """
    return CrudSettingsDict(
        ro_fields=('slug', 'created_at'),
        populate=('reviews',),
        api_features=config.api_features,
        **Tour.__document_query_settings__
    )


def make_handlers(config: Config) -> dict:
    """ The tour CRUD handlers, and the "top 5 cheap" listing: {name: handler} """
    settings = make_settings(config)
    get_all = factory.get_all(Tour, settings)

    def get_top_tours(ssn, params=None, body=None, **url_params):
        """ Handler: top 5 cheap tours """
        return get_all(ssn, alias_top_tours(params), body, **url_params)

    return {
        'get_all_tours': get_all,
        'get_top_tours': get_top_tours,
        'get_tour': factory.get_one(Tour, settings=settings),
        'create_tour': factory.create_one(Tour, settings),
        'update_tour': factory.update_one(Tour, settings),
        'delete_tour': factory.delete_one(Tour, settings),
    }


#: Handlers for the process configuration, see tourbook.config
_config = Config.from_env()
tour_settings = make_settings(_config)
_handlers = make_handlers(_config)

get_all_tours = _handlers['get_all_tours']
get_top_tours = _handlers['get_top_tours']
get_tour = _handlers['get_tour']
create_tour = _handlers['create_tour']
update_tour = _handlers['update_tour']
delete_tour = _handlers['delete_tour']


def get_tour_stats(ssn, params=None, body=None, **url_params):
    """ Handler: statistics of the tours rated 4.5 or higher, grouped by difficulty, cheaper groups first """
    condition = Tour.find(ssn).find({'ratings_average': {'$gte': 4.5}}).compile_filter()

    difficulty = func.upper(Tour.difficulty)
    avg_price = func.avg(Tour.price).label('avg_price')
    rows = ssn.execute(
        select(
            difficulty.label('difficulty'),
            func.count(Tour.id).label('num_tours'),
            func.sum(Tour.ratings_quantity).label('num_ratings'),
            func.avg(Tour.ratings_average).label('avg_rating'),
            avg_price,
            func.min(Tour.price).label('min_price'),
            func.max(Tour.price).label('max_price'),
        )
        .where(condition)
        .group_by(difficulty)
        .order_by(avg_price)
    ).mappings().all()

    stats = [dict(row) for row in rows]
    return 200, {'status': 'success', 'results': len(stats), 'data': {'stats': stats}}


def get_monthly_plan(ssn, params=None, body=None, year=None, **url_params):
    """ Handler: the number of tours that start in every month of a year, and their names

        Busy months first; at most 12 months.
    """
    try:
        year = int(year)
        since, until = datetime(year, 1, 1), datetime(year + 1, 1, 1)
    except (TypeError, ValueError):
        raise AppError('Invalid year: {}'.format(year), 400)

    condition = Tour.find(ssn).compile_filter()
    rows = ssn.execute(
        select(TourStartDate.starts_at, Tour.name)
        .join(TourStartDate.tour)
        .where(condition)
        .where(TourStartDate.starts_at >= since, TourStartDate.starts_at < until)
        .order_by(TourStartDate.starts_at, Tour.name)
    ).all()

    tours_per_month = defaultdict(list)
    for starts_at, name in rows:
        tours_per_month[starts_at.month].append(name)

    plan = [{'month': month, 'num_tour_starts': len(names), 'tours': names}
            for month, names in tours_per_month.items()]
    plan.sort(key=lambda p: (-p['num_tour_starts'], p['month']))
    plan = plan[:12]

    return 200, {'status': 'success', 'data': {'results': len(plan), 'plan': plan}}


def _parse_latlng(latlng) -> tuple:
    """ Parse 'lat,lng' """
    try:
        lat, lng = (float(v) for v in latlng.split(','))
    except (AttributeError, ValueError):
        raise AppError('Please provide latitude and longitude in the format lat, lng.', 400)
    return lat, lng


def _parse_unit(unit) -> str:
    """ Distance unit: 'mi', or 'km' for anything else """
    return 'mi' if unit == 'mi' else 'km'


def _tours_with_start_location(ssn):
    """ Load the tours that have a start location """
    return Tour.find(ssn) \
        .find({'start_location_lat': {'$exists': True}, 'start_location_lng': {'$exists': True}}) \
        .sort('id') \
        .all()


def get_tours_within(ssn, params=None, body=None, distance=None, latlng=None, unit=None, **url_params):
    """ Handler: tours that start within `distance` of the `latlng` point

        /tours-within/233/center/34.111745,-118.113491/unit/mi
    """
    center = _parse_latlng(latlng)
    unit = _parse_unit(unit)
    try:
        distance = float(distance)
    except (TypeError, ValueError):
        raise AppError('Invalid distance: {}'.format(distance), 400)

    query = Tour.find(ssn)
    tours = [
        tour
        for tour in _tours_with_start_location(ssn)
        # with the radius in miles, `.km` gives miles: distances come in the units of the radius
        if great_circle(center, (tour.start_location_lat, tour.start_location_lng),
                        radius=EARTH_RADIUS[unit]).km <= distance
    ]

    return 200, {
        'status': 'success',
        'results': len(tours),
        'data': {'data': [query.pluck_instance(tour) for tour in tours]},
    }


def get_distances(ssn, params=None, body=None, latlng=None, unit=None, **url_params):
    """ Handler: the distance from the `latlng` point to every tour, nearest first

        /distances/34.111745,-118.113491/unit/mi
    """
    center = _parse_latlng(latlng)
    multiplier = METERS_MULTIPLIER[_parse_unit(unit)]

    distances = [
        {
            'id': tour.id,
            'name': tour.name,
            'distance': great_circle(center, (tour.start_location_lat, tour.start_location_lng),
                                     radius=EARTH_RADIUS['km']).meters * multiplier,
        }
        for tour in _tours_with_start_location(ssn)
    ]
    distances.sort(key=lambda d: d['distance'])

    return 200, {'status': 'success', 'results': len(distances), 'data': {'data': distances}}
