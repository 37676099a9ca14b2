from typing import Union, Tuple, Mapping, Callable

from .inspect import pluck_kwargs_from


class _SettingsDict(dict):
    """ A dict of settings whose keys are documented as the kwargs of __init__()

        Subclasses only exist for autocompletion and documentation:
        the result is a plain dict with every setting, defaults included.
    """

    def _store(self, kwargs: dict, skip=()):
        # `kwargs` is the locals() of __init__()
        self.update({k: v
                     for k, v in kwargs.items()
                     if k not in {'__class__', 'self'} and k not in skip})

    @classmethod
    def pluck_from(cls, dct: Mapping, skip=()):
        """ Take the keys this class knows from a bigger dict; the rest is ignored """
        return cls(**pluck_kwargs_from(dct, for_func=cls.__init__, skip=skip))


class DocumentQuerySettingsDict(_SettingsDict):
    """ Settings for DocumentQuery

        Each setting is a keyword argument of some handler's __init__(),
        and DocumentQuerySettingsHandler gives it to that handler.
        `<directive>_enabled=False` turns a directive off: using it raises DisabledError.
    """

    def __init__(self,
                 # --- project
                 default_exclude: Tuple[str] = None,
                 force_include: Tuple[str] = None,
                 force_exclude: Tuple[str] = None,
                 # --- filter
                 force_filter: Union[dict, Callable] = None,
                 scalar_operators: Mapping[str, Callable] = None,
                 # --- limit
                 max_items: int = None,
                 # --- populate
                 allowed_relations: Tuple[str] = None,
                 # --- directives
                 filter_enabled: bool = True,
                 sort_enabled: bool = True,
                 project_enabled: bool = True,
                 limit_enabled: bool = True,
                 populate_enabled: bool = True,
                 ):
        """ How DocumentQuery treats a model

        Example:
            ```python
            Tour.__document_query_settings__ = DocumentQuerySettingsDict(
                force_filter={'secret_tour': {'$ne': True}},
                default_exclude=('created_at',),
                allowed_relations=('reviews', 'tour_start_dates'),
                max_items=500,
            )
            ```

        Args:
            default_exclude (list[str]): (project)
                Fields left out unless the projection names them.
            force_include (list[str]): (project)
                Fields that are always loaded and returned.
            force_exclude (list[str]): (project)
                Fields that are never loaded nor returned, even when requested.
            force_filter (dict | Callable): (filter)
                Criteria ANDed to every query, e.g. to hide secret tours;
                or a `callable(model)` that returns a list of SqlAlchemy conditions.
            scalar_operators (dict[str, Callable]): (filter)
                Additional operators: {'$operator': lambda column, value, original_value: condition}
            max_items (int | None): (limit)
                The most documents a query may load. Forced onto every query.
            allowed_relations (list[str] | None): (populate)
                The relationships that may be populated. Default: all of them.
            filter_enabled, sort_enabled, project_enabled, limit_enabled, populate_enabled (bool):
                Turn a directive on or off
        """
        super(DocumentQuerySettingsDict, self).__init__()
        self._store(locals())


class APIFeaturesSettingsDict(_SettingsDict):
    """ Settings for APIFeatures, the query-string translator

        Name only what you change:

            APIFeatures(query, params, APIFeaturesSettingsDict(max_limit=50))
    """

    def __init__(self,
                 reserved_params: Tuple[str] = ('page', 'sort', 'limit', 'fields'),
                 comparison_operators: Mapping[str, str] = None,
                 default_sort: Tuple[str] = ('-created_at', 'id'),
                 hidden_fields: Tuple[str] = ('version_id',),
                 default_page: int = 1,
                 default_limit: int = 100,
                 max_limit: Union[int, None] = 1000,
                 ):
        """
        Args:
            reserved_params (list[str]): Control parameters: never leak into the filter.
            comparison_operators (dict[str, str]): Sub-keys that are renamed into storage operators.
                Default: gte, gt, lte, lt -> $gte, $gt, $lte, $lt
            default_sort (list[str]): The sort used when none is given.
                The last field must be unique, so that pages never overlap.
            hidden_fields (list[str]): Fields excluded when no `fields` are requested.
            default_page (int): Page number when `page` is missing or malformed.
            default_limit (int): Page size when `limit` is missing or malformed.
            max_limit (int | None): Upper bound for `limit`; `None` honors any limit.
        """
        super(APIFeaturesSettingsDict, self).__init__()
        self._store(locals())


class CrudSettingsDict(DocumentQuerySettingsDict):
    """ Settings for the handler factory: CrudHelper settings, plus DocumentQuery settings """

    def __init__(self,
                 ro_fields: Tuple[str] = None,
                 populate: Tuple[str] = None,
                 api_features: Union[APIFeaturesSettingsDict, dict] = None,
                 # DocumentQuery settings; CrudHelper puts them apart
                 **document_query_settings
                 ):
        """
        Args:
            ro_fields (list[str]): Fields the user can't write: create and update handlers drop them.
            populate (list[str]): Relationships that get_one() loads with the document
            api_features (dict): Settings for the query-string translator, see APIFeaturesSettingsDict
            **document_query_settings: see DocumentQuerySettingsDict
        """
        super(CrudSettingsDict, self).__init__(**document_query_settings)
        self._store(locals(), skip=('document_query_settings',))
