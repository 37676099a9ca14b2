from datetime import datetime
from math import floor

from slugify import slugify
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey
from sqlalchemy import event, func, select
from sqlalchemy.orm import declarative_base, relationship, validates

from .sa import DocumentQueryModelBase
from .util import DocumentQuerySettingsDict


Base = declarative_base(cls=DocumentQueryModelBase)


def _round_rating(value):
    """ 4.666 -> 4.7 ; halves are rounded up """
    if value is None:
        return None
    return floor(float(value) * 10 + 0.5) / 10


def _parse_datetime(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class Tour(Base):
    __tablename__ = 'tours'

    id = Column(Integer, primary_key=True)
    name = Column(String(40), unique=True, nullable=False)
    slug = Column(String, index=True)
    duration = Column(Integer, nullable=False)
    max_group_size = Column(Integer, nullable=False)
    difficulty = Column(String, nullable=False)
    ratings_average = Column(Float, default=4.5)
    ratings_quantity = Column(Integer, default=0)
    price = Column(Float, nullable=False)
    price_discount = Column(Float)
    summary = Column(String, nullable=False)
    description = Column(Text)
    image_cover = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    secret_tour = Column(Boolean, default=False)

    start_location_lat = Column(Float)
    start_location_lng = Column(Float)
    start_location_address = Column(String)
    start_location_description = Column(String)

    version_id = Column(Integer, nullable=False)

    tour_start_dates = relationship(lambda: TourStartDate, back_populates='tour',
                                    cascade='all, delete-orphan',
                                    order_by=lambda: TourStartDate.starts_at)
    reviews = relationship(lambda: Review, back_populates='tour',
                           cascade='all, delete-orphan',
                           order_by=lambda: Review.id)

    __mapper_args__ = {
        'version_id_col': version_id,
    }

    __document_query_settings__ = DocumentQuerySettingsDict(
        # Secret tours are never listed
        force_filter={'secret_tour': {'$ne': True}},
        default_exclude=('created_at',),
        allowed_relations=('reviews', 'tour_start_dates'),
    )

    DIFFICULTIES = ('easy', 'medium', 'difficult')

    @property
    def duration_weeks(self):
        """ Duration in weeks """
        return self.duration / 7 if self.duration is not None else None

    @property
    def start_dates(self):
        """ The dates the tour starts at """
        return [d.starts_at for d in self.tour_start_dates]

    @start_dates.setter
    def start_dates(self, dates):
        self.tour_start_dates = [TourStartDate(starts_at=_parse_datetime(d))
                                 for d in (dates or ())]

    @property
    def start_location(self):
        """ Start location, as a GeoJSON point. Coordinates are [lng, lat]. """
        if self.start_location_lat is None or self.start_location_lng is None:
            return None
        return {
            'type': 'Point',
            'coordinates': [self.start_location_lng, self.start_location_lat],
            'address': self.start_location_address,
            'description': self.start_location_description,
        }

    @start_location.setter
    def start_location(self, location):
        location = location or {}
        lng, lat = location.get('coordinates') or (None, None)
        self.start_location_lat = lat
        self.start_location_lng = lng
        self.start_location_address = location.get('address')
        self.start_location_description = location.get('description')

    @validates('name', 'summary', 'description')
    def _trim(self, key, value):
        return value.strip() if isinstance(value, str) else value

    @validates('ratings_average')
    def _round_ratings_average(self, key, value):
        return _round_rating(value)

    def validate(self):
        """ Validate the tour

        :return: {field: message}, empty when the tour is valid
        :rtype: dict
        """
        errors = {}

        if not self.name:
            errors['name'] = 'A tour must have a name'
        elif len(self.name) > 40:
            errors['name'] = 'A tour name must have less or equal than 40 characters'
        elif len(self.name) < 10:
            errors['name'] = 'A tour name must have more or equal than 10 characters'

        if self.duration is None:
            errors['duration'] = 'A tour must have a duration'
        if self.max_group_size is None:
            errors['max_group_size'] = 'A tour must have a group size'

        if not self.difficulty:
            errors['difficulty'] = 'A tour must have a difficulty'
        elif self.difficulty not in self.DIFFICULTIES:
            errors['difficulty'] = 'Difficulty is either: easy, medium or difficult'

        if self.ratings_average is not None:
            if self.ratings_average < 1:
                errors['ratings_average'] = 'Rating must be above 1.0'
            elif self.ratings_average > 5:
                errors['ratings_average'] = 'Rating must be below 5.0'

        if self.price is None:
            errors['price'] = 'A tour must have a price'
        elif self.price_discount is not None and not self.price_discount < self.price:
            errors['price_discount'] = 'Discount price {} should be below regular price.'.format(self.price_discount)

        if not self.summary:
            errors['summary'] = 'A tour must have a description'
        if not self.image_cover:
            errors['image_cover'] = 'A tour must have a cover image'

        return errors

    def __repr__(self):
        return 'Tour(id={}, name={!r})'.format(self.id, self.name)


@event.listens_for(Tour, 'before_insert')
@event.listens_for(Tour, 'before_update')
def _tour_slug(mapper, connection, tour):
    """ Slug is generated from the name every time the tour is saved """
    tour.slug = slugify(tour.name) if tour.name else None


class TourStartDate(Base):
    __tablename__ = 'tour_start_dates'

    id = Column(Integer, primary_key=True)
    tour_id = Column(Integer, ForeignKey('tours.id', ondelete='CASCADE'), nullable=False)
    starts_at = Column(DateTime, nullable=False)

    tour = relationship(Tour, back_populates='tour_start_dates')

    def __repr__(self):
        return 'TourStartDate(tour_id={}, starts_at={!r})'.format(self.tour_id, self.starts_at)


class Review(Base):
    __tablename__ = 'reviews'

    id = Column(Integer, primary_key=True)
    review = Column(Text, nullable=False)
    rating = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)
    tour_id = Column(Integer, ForeignKey('tours.id', ondelete='CASCADE'), nullable=False)

    version_id = Column(Integer, nullable=False)

    tour = relationship(Tour, back_populates='reviews')

    __mapper_args__ = {
        'version_id_col': version_id,
    }

    __document_query_settings__ = DocumentQuerySettingsDict(
        allowed_relations=('tour',),
    )

    def validate(self):
        """ Validate the review

        :return: {field: message}, empty when the review is valid
        :rtype: dict
        """
        errors = {}
        if not self.review or not self.review.strip():
            errors['review'] = 'Review can not be empty!'
        if self.rating is not None and not 1 <= self.rating <= 5:
            errors['rating'] = 'Rating must be between 1 and 5'
        if self.tour_id is None and self.tour is None:
            errors['tour_id'] = 'Review must belong to a tour.'
        return errors

    @staticmethod
    def calc_average_ratings(ssn, tour_id):
        """ Store the number of reviews and their average rating on the tour """
        n, avg = ssn.execute(
            select(func.count(Review.id), func.avg(Review.rating))
            .where(Review.tour_id == tour_id)
        ).one()

        tour = ssn.get(Tour, tour_id)
        if tour is None:
            return
        tour.ratings_quantity = n
        tour.ratings_average = avg if n else 4.5

    def __repr__(self):
        return 'Review(id={}, tour_id={})'.format(self.id, self.tour_id)
