class BaseTourbookException(Exception):
    pass


class InvalidQueryError(BaseTourbookException):
    """ Invalid input provided by the User """

    def __init__(self, err: str):
        super(InvalidQueryError, self).__init__('Query object error: {err}'.format(err=err))


class DisabledError(InvalidQueryError):
    """ The feature is disabled """


class InvalidColumnError(BaseTourbookException):
    """ Query mentioned an invalid field name """

    def __init__(self, model: str, column_name: str, where: str):
        self.model = model
        self.column_name = column_name
        self.where = where

        super(InvalidColumnError, self).__init__(
            'Invalid field "{column_name}" for "{model}" specified in {where}'.format(
                column_name=column_name,
                model=model,
                where=where)
        )


class InvalidValueError(BaseTourbookException):
    """ A value could not be cast to the type of the field it was compared to """

    def __init__(self, path: str, value, type_name: str):
        self.path = path
        self.value = value
        self.type_name = type_name

        super(InvalidValueError, self).__init__(
            'Cast to {type_name} failed for value {value!r} at path "{path}"'.format(
                type_name=type_name,
                value=value,
                path=path)
        )


class DocumentValidationError(BaseTourbookException):
    """ A document failed model validation

        `errors` maps field names to messages, in the order they were found
    """

    def __init__(self, model: str, errors: dict):
        self.model = model
        self.errors = errors

        super(DocumentValidationError, self).__init__(
            '{model} validation failed: {messages}'.format(
                model=model,
                messages=', '.join('{}: {}'.format(k, v) for k, v in errors.items()))
        )


class AppError(Exception):
    """ Operational error: an expected failure with a message that is safe to show to the API user """

    is_operational = True

    def __init__(self, message: str, status_code: int):
        super(AppError, self).__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = 'fail' if str(status_code).startswith('4') else 'error'

    def __repr__(self):
        return '{}({!r}, {!r})'.format(self.__class__.__name__, self.message, self.status_code)
