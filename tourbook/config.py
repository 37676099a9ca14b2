"""
### Configuration

Process-level settings come from the environment:

* `TOURBOOK_ENV`: 'development' or 'production' (default)
* `DATABASE_URL`: SqlAlchemy database URL; `<PASSWORD>` in it is replaced with `DATABASE_PASSWORD`
* `TOURBOOK_MAX_PAGE_SIZE`: the largest `limit` a listing accepts (default: 1000)
* `TOURBOOK_SQL_ECHO`: log every SQL statement

Query-level settings are dicts: see tourbook.util.settings_dict
"""

import os
from logging import getLogger
from typing import Mapping

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tourbook.errors import DEVELOPMENT, PRODUCTION
from tourbook.util import APIFeaturesSettingsDict

logger = getLogger(__name__)


class Config:
    """ Process-level configuration """

    def __init__(self, env: str = PRODUCTION,
                 database_url: str = 'sqlite://',
                 max_page_size: int = 1000,
                 sql_echo: bool = False):
        if env not in (DEVELOPMENT, PRODUCTION):
            raise ValueError('Unknown environment: {!r}'.format(env))
        self.env = env
        self.database_url = database_url
        self.max_page_size = max_page_size
        self.sql_echo = sql_echo

    @classmethod
    def from_env(cls, environ: Mapping = None) -> 'Config':
        """ Load the configuration from environment variables """
        environ = os.environ if environ is None else environ

        database_url = environ.get('DATABASE_URL', 'sqlite://')
        if '<PASSWORD>' in database_url:
            database_url = database_url.replace('<PASSWORD>', environ.get('DATABASE_PASSWORD', ''))

        return cls(
            env=environ.get('TOURBOOK_ENV', PRODUCTION),
            database_url=database_url,
            max_page_size=int(environ.get('TOURBOOK_MAX_PAGE_SIZE', 1000)),
            sql_echo=environ.get('TOURBOOK_SQL_ECHO', '').lower() in ('1', 'true', 'yes'),
        )

    @property
    def is_development(self) -> bool:
        return self.env == DEVELOPMENT

    @property
    def api_features(self) -> APIFeaturesSettingsDict:
        """ Settings for APIFeatures """
        return APIFeaturesSettingsDict(max_limit=self.max_page_size)

    def make_session_factory(self) -> sessionmaker:
        """ Create the engine, and a factory for per-request sessions """
        engine = create_engine(self.database_url, echo=self.sql_echo)
        logger.info('Database: %s (env=%s, max_page_size=%s)',
                    engine.url.render_as_string(hide_password=True), self.env, self.max_page_size)
        return sessionmaker(bind=engine)

    def __repr__(self):
        return 'Config(env={!r}, max_page_size={!r})'.format(self.env, self.max_page_size)
