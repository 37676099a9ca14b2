from .inspect import pluck_kwargs_from
from ..exc import DisabledError


class DocumentQuerySettingsHandler:
    """ Routes a flat settings dict to the directive handlers

        DocumentQuery settings are one flat dict: `force_filter`, `max_items`, `populate_enabled`, ...
        Every handler declares the settings it accepts as keyword arguments of its __init__(),
        and receives only those: `get_settings()` plucks them.

        `<handler>_enabled=False` disables a directive.
        A setting that no handler accepts is a typo, and `raise_if_invalid_handler_settings()` reports it.
    """

    def __init__(self, settings: dict):
        assert isinstance(settings, dict)
        self._settings = settings

        #: Setting names that some handler has accepted, `<handler>_enabled` included
        self._accepted = set()
        #: Names of the handlers that are turned off
        self._disabled_handlers = set()

    def get_settings(self, handler_name: str, handler_cls: type) -> dict:
        """ Pluck the kwargs for a handler's __init__(); missing ones get the handler's defaults """
        enabled_key = handler_name + '_enabled'
        self._accepted.add(enabled_key)
        if not self._settings.get(enabled_key, True):
            self._disabled_handlers.add(handler_name)

        kwargs = pluck_kwargs_from(self._settings, for_func=handler_cls.__init__)
        self._accepted.update(kwargs)
        return kwargs

    def is_handler_enabled(self, handler_name: str) -> bool:
        return handler_name not in self._disabled_handlers

    def raise_if_not_handler_enabled(self, model_name: str, handler_name: str):
        """ :raises DisabledError: the directive is turned off """
        if not self.is_handler_enabled(handler_name):
            raise DisabledError('Query directive "{}" is disabled for "{}"'
                                .format(handler_name, model_name))

    def raise_if_invalid_handler_settings(self, document_query):
        """ Call it after every handler got its settings

            :raises KeyError: a setting that no handler accepts
        """
        unknown = set(self._settings) - self._accepted
        if unknown:
            raise KeyError('Invalid settings were provided for {!r}: {}'
                           .format(document_query, ','.join(sorted(unknown))))

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, self._settings)
