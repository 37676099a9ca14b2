from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tourbook.models import Base, Tour, Review


def init_database():
    """ Init DB: in-memory SQLite

    :rtype: (sqlalchemy.engine.Engine, sqlalchemy.orm.sessionmaker)
    """
    engine = create_engine('sqlite://', echo=False)
    Session = sessionmaker(bind=engine)
    return engine, Session


def create_all(engine):
    """ Create all tables """
    Base.metadata.create_all(bind=engine)


def drop_all(engine):
    """ Drop all tables """
    Base.metadata.drop_all(bind=engine)


def _location(lat, lng, address):
    return {'type': 'Point', 'coordinates': [lng, lat], 'address': address, 'description': address}


def _dates(*dates):
    return [datetime.fromisoformat(d) for d in dates]


def content_samples():
    """ Generate content samples

        Start locations are real places; distances from Los Angeles (34.111745,-118.113491):
        Los Angeles ~20mi, Las Vegas ~220mi, San Francisco ~350mi, Aspen ~710mi, everything else is further away.
    """
    return [[
        Tour(id=1, name='The Forest Hiker', duration=5, max_group_size=25, difficulty='easy',
             ratings_average=4.7, ratings_quantity=37, price=397,
             summary='Breathtaking hike through the Canadian Banff National Park', image_cover='tour-1-cover.jpg',
             created_at=datetime(2024, 1, 1),
             start_location=_location(51.417611, -116.214531, 'Banff, CAN'),
             start_dates=_dates('2025-04-25T09:00', '2025-07-20T09:00', '2025-10-05T09:00')),
        Tour(id=2, name='The Sea Explorer', duration=7, max_group_size=15, difficulty='medium',
             ratings_average=4.8, ratings_quantity=23, price=497,
             summary='Exploring the jaw-dropping US east coast by foot and by boat', image_cover='tour-2-cover.jpg',
             created_at=datetime(2024, 1, 2),
             start_location=_location(25.781842, -80.128473, 'Miami, USA'),
             start_dates=_dates('2025-06-19T09:00', '2025-07-20T09:00', '2025-08-18T09:00')),
        Tour(id=3, name='The Snow Adventurer', duration=4, max_group_size=10, difficulty='difficult',
             ratings_average=4.5, ratings_quantity=13, price=897,
             summary='Exciting adventure in the snow with snowboarding and skiing', image_cover='tour-3-cover.jpg',
             created_at=datetime(2024, 1, 3),
             start_location=_location(39.182677, -106.855385, 'Aspen, USA'),
             start_dates=_dates('2026-01-05T10:00', '2026-02-12T10:00', '2027-01-06T10:00')),
        Tour(id=4, name='The City Wanderer', duration=9, max_group_size=20, difficulty='easy',
             ratings_average=4.6, ratings_quantity=54, price=1197,
             summary='Discover the secrets of the most famous city in the world', image_cover='tour-4-cover.jpg',
             created_at=datetime(2024, 1, 4),
             start_location=_location(40.782710, -73.965310, 'NYC, USA'),
             start_dates=_dates('2025-03-11T10:00', '2025-05-02T10:00', '2025-06-09T10:00')),
        Tour(id=5, name='The Park Camper', duration=10, max_group_size=15, difficulty='medium',
             ratings_average=4.9, ratings_quantity=19, price=1497,
             summary='Breathing in Nature in America\'s most spectacular National Parks', image_cover='tour-5-cover.jpg',
             created_at=datetime(2024, 1, 5),
             start_location=_location(36.110904, -115.172652, 'Las Vegas, USA'),
             start_dates=_dates('2025-08-05T10:00', '2025-03-20T10:00', '2025-08-12T10:00')),
        Tour(id=6, name='The Sports Lover', duration=14, max_group_size=8, difficulty='difficult',
             ratings_average=4.3, ratings_quantity=28, price=2997,
             summary='Surfing, skating, parajumping, rock climbing and more, all in one tour', image_cover='tour-6-cover.jpg',
             created_at=datetime(2024, 1, 6),
             start_location=_location(33.968109, -118.413921, 'California, USA'),
             start_dates=_dates('2025-07-19T10:00', '2025-09-06T10:00', '2026-03-18T10:00')),
        Tour(id=7, name='The Wine Taster', duration=5, max_group_size=8, difficulty='easy',
             ratings_average=4.4, ratings_quantity=7, price=1997,
             summary='Exquisite wines, scenic views, exclusive barrel tastings, and much more', image_cover='tour-7-cover.jpg',
             created_at=datetime(2024, 1, 7),
             start_location=_location(37.787750, -122.408600, 'San Francisco, USA'),
             start_dates=_dates('2025-02-12T10:00', '2025-04-14T10:00', '2025-09-01T10:00')),
        Tour(id=8, name='The Northern Lights', duration=3, max_group_size=12, difficulty='easy',
             ratings_average=4.9, ratings_quantity=33, price=1297,
             summary='Enjoy the Northern Lights in one of the best places in the world', image_cover='tour-8-cover.jpg',
             created_at=datetime(2024, 1, 8),
             start_location=_location(64.147917, -21.935410, 'Reykjavik, ISL'),
             start_dates=_dates('2025-12-16T10:00', '2026-01-16T10:00', '2026-12-12T10:00')),
        # Never listed
        Tour(id=9, name='The Secret Retreat', duration=6, max_group_size=10, difficulty='medium',
             ratings_average=5.0, ratings_quantity=3, price=99, secret_tour=True,
             summary='A tour nobody knows about', image_cover='tour-9-cover.jpg',
             created_at=datetime(2024, 1, 9),
             start_location=_location(34.011646, -118.491968, 'Santa Monica, USA'),
             start_dates=_dates('2025-07-20T10:00')),
    ], [
        Review(id=1, tour_id=1, review='Amazing views, would go again', rating=5, created_at=datetime(2024, 2, 1)),
        Review(id=2, tour_id=1, review='Good, but too many people', rating=4, created_at=datetime(2024, 2, 2)),
        Review(id=3, tour_id=2, review='Best boat trip ever', rating=5, created_at=datetime(2024, 2, 3)),
        Review(id=4, tour_id=9, review='Shh', rating=3, created_at=datetime(2024, 2, 4)),
    ]]


def get_empty_db():
    # Connect, create tables
    engine, Session = init_database()
    create_all(engine)
    return engine, Session


def get_working_db_for_tests():
    # Connect, create tables
    engine, Session = get_empty_db()

    # Fill DB
    ssn = Session()
    for entities_list in content_samples():
        ssn.add_all(entities_list)
        ssn.commit()
    ssn.close()

    # Done
    return engine, Session
