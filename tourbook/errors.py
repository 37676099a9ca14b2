"""
### Errors

Turns exceptions into API responses.

`normalize_error()` converts the errors the user can do something about into an `AppError`:

```python
normalize_error(InvalidValueError('price', 'cheap', 'float'))
# -> AppError('Invalid price: cheap', 400)
```

`error_response()` builds the `(status_code, body)` to send:
in development, everything is shown, with the traceback;
in production, only operational errors show their messages,
and anything else is logged and hidden behind a generic message.
"""

import re
import traceback
from logging import getLogger

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import NoResultFound

from tourbook import exc

logger = getLogger(__name__)


#: Mode: show everything
DEVELOPMENT = 'development'
#: Mode: show operational errors only
PRODUCTION = 'production'


def normalize_error(err: Exception) -> Exception:
    """ Convert a known error into an operational AppError

        Unknown errors are returned unchanged.
    """
    if isinstance(err, exc.AppError):
        return err
    if isinstance(err, exc.InvalidValueError):
        return exc.AppError('Invalid {}: {}'.format(err.path, err.value), 400)
    if isinstance(err, exc.DocumentValidationError):
        return exc.AppError('Invalid input data. {}'.format('. '.join(err.errors.values())), 400)
    if isinstance(err, (exc.InvalidQueryError, exc.InvalidColumnError)):
        return exc.AppError(str(err), 400)
    if isinstance(err, IntegrityError) and _is_unique_violation(err):
        return exc.AppError('Duplicate field value: {}. Please use another value!'.format(_duplicate_value(err)), 400)
    if isinstance(err, NoResultFound):
        return exc.AppError('No document found with that ID', 404)
    return err


def error_response(err: Exception, mode: str = PRODUCTION) -> tuple:
    """ Build the response for an error

    :param err: The exception
    :param mode: 'development' or 'production'
    :return: (status_code, body)
    """
    normalized = normalize_error(err)
    status_code = getattr(normalized, 'status_code', 500)
    status = getattr(normalized, 'status', 'error')

    if mode == DEVELOPMENT:
        return status_code, {
            'status': status,
            'error': repr(err),
            'message': getattr(normalized, 'message', str(err)),
            'stack': ''.join(traceback.format_exception(type(err), err, err.__traceback__)),
        }

    # Operational errors: the message is safe to show
    if getattr(normalized, 'is_operational', False):
        return status_code, {'status': status, 'message': normalized.message}

    # Programming or other unknown error: don't leak the details
    logger.error('Unexpected error: %r', err, exc_info=err)
    return 500, {'status': 'error', 'message': 'Something went very wrong!'}


# Postgres: DETAIL:  Key (name)=(The Forest Hiker) already exists.
_pg_duplicate_key = re.compile(r'Key \((?P<field>[^)]+)\)=\((?P<value>.*?)\) already exists')
# SQLite: UNIQUE constraint failed: tours.name
_sqlite_unique_failed = re.compile(r'UNIQUE constraint failed: (?:\w+\.)?(?P<field>\w+)')


def _is_unique_violation(err: IntegrityError) -> bool:
    msg = str(err.orig)
    return 'UNIQUE constraint failed' in msg or 'duplicate key value' in msg


def _duplicate_value(err: IntegrityError) -> str:
    """ Get the duplicate value from the database error message, or at least the field name """
    msg = str(err.orig)
    m = _pg_duplicate_key.search(msg)
    if m:
        return m.group('value')
    m = _sqlite_unique_failed.search(msg)
    if m:
        return m.group('field')
    return msg
