"""
### CrudHelper

Turns the entity dicts that API users submit into model instances, and makes DocumentQueries for reading.
The handler factory (tourbook.crud.factory) is built on it.

```python
tour_crudhelper = CrudHelper(Tour, ro_fields=('slug', 'created_at'))

tour = tour_crudhelper.create_model({'name': 'The Desert Walker', 'price': '797', ...})
tour = tour_crudhelper.update_model({'price': 500}, tour)
tours = tour_crudhelper.query_model(ssn.query(Tour)).find({'difficulty': 'easy'}).all()
```

An entity dict goes through these steps:

1. Read-only fields are removed, silently. The primary key and the version column are always read-only.
2. Any other field must be writable: a column, or a @property with a setter.
   Unknown fields, relationships, and read-only properties raise `InvalidColumnError`.
3. Column values are cast to the column type: `'797'` becomes `797.0` for a Float column.
4. The instance is created or updated, and its `validate()` method is called, if the model has one.
"""

from typing import Union, Mapping, Iterable, Set

from sqlalchemy.orm import Query

from tourbook import exc
from tourbook.bag import ModelPropertyBags
from tourbook.query import DocumentQuery
from tourbook.handlers.filter import cast_value
from tourbook.util import Reusable, APIFeaturesSettingsDict


class CrudHelper:
    """ CRUD for one model

        Initialize it once per model, at the module level: it analyzes the model and parses the settings.
    """

    #: Model analysis
    BAGS_CLS = ModelPropertyBags
    #: The query class
    DOCUMENT_QUERY_CLS = DocumentQuery

    def __init__(self, model,
                 ro_fields: Iterable[str] = None,
                 populate: Iterable[str] = None,
                 api_features: Union[APIFeaturesSettingsDict, Mapping, None] = None,
                 writable_properties: bool = True,
                 **document_query_settings):
        """
        :param model: The model
        :param ro_fields: Fields the user can't write
        :param populate: Relationships that get_one() loads together with the document
        :param api_features: Settings for APIFeatures, see APIFeaturesSettingsDict
        :param writable_properties: May the user write @property attributes that have a setter?
        :param document_query_settings: DocumentQuery settings.
            Default: the model's `__document_query_settings__`
        :raises InvalidColumnError: unknown field in `ro_fields`
        """
        self.model = model
        self.bags = self.BAGS_CLS.for_model(model)

        if not document_query_settings:
            document_query_settings = getattr(model, '__document_query_settings__', None) or {}
        self.document_query_settings = document_query_settings
        self.reusable_document_query = Reusable(self.DOCUMENT_QUERY_CLS(model, document_query_settings))

        self.writable_properties = writable_properties
        self.populate = tuple(populate or ())
        self.api_features = APIFeaturesSettingsDict.pluck_from(api_features or {})

        self.ro_fields = self._check_names(ro_fields or (), self.bags.all_names, 'ro_fields')
        self.ro_fields |= self.bags.pk.names
        version_id_col = model.__mapper__.version_id_col
        if version_id_col is not None:
            self.ro_fields.add(model.__mapper__.get_property_by_column(version_id_col).key)

    @property
    def primary_key_name(self) -> str:
        """ The primary key column. Composite keys are not supported. """
        pk_name, = self.bags.pk.names
        return pk_name

    def query_model(self, from_query: Union[Query, None] = None) -> DocumentQuery:
        """ A new DocumentQuery, optionally starting from a Query """
        return self.reusable_document_query.from_query(from_query)

    def _check_names(self, names: Iterable[str], allowed: Iterable[str], where: str) -> Set[str]:
        """ :raises exc.InvalidColumnError: a name that is not allowed """
        names = set(names)
        unknown = names.difference(allowed)
        if unknown:
            raise exc.InvalidColumnError(self.bags.model_name, min(unknown), where)
        return names

    def validate_incoming_entity_dict_fields(self, entity_dict: Mapping, action: str) -> dict:
        """ Check the fields of an entity dict; cast column values to their types

            :param action: 'create' or 'update'
            :return: a new dict, without the read-only fields
            :raises exc.InvalidQueryError: not an object
            :raises exc.InvalidColumnError: unknown or non-writable field
            :raises exc.InvalidValueError: a value can't be cast to the column type
        """
        if action not in ('create', 'update'):
            raise ValueError(action)
        if not isinstance(entity_dict, Mapping):
            raise exc.InvalidQueryError('{} {}: the value has to be an object, not {}'
                                        .format(self.bags.model_name, action, type(entity_dict).__name__))

        entity_dict = {name: value
                       for name, value in entity_dict.items()
                       if name not in self.ro_fields}

        writable = self.bags.writable.names if self.writable_properties else self.bags.columns.names
        self._check_names(entity_dict, writable, action)

        for name, value in entity_dict.items():
            if name in self.bags.columns:
                entity_dict[name] = cast_value(self.bags.columns.get_python_type(name), value, name)
        return entity_dict

    def validate_instance(self, instance):
        """ Run the model's validate(), if it has one

            :raises exc.DocumentValidationError: validate() has reported errors
        """
        validate = getattr(instance, 'validate', None)
        errors = validate() if validate is not None else None
        if errors:
            raise exc.DocumentValidationError(self.bags.model_name, errors)
        return instance

    def create_model(self, entity_dict: Mapping):
        """ Create a new instance from an entity dict. Relationships can't be set.

            :return: The instance, validated; not added to any session
            :raises InvalidQueryError: the input is not an object
            :raises InvalidColumnError: unknown or non-writable field
            :raises InvalidValueError: a value can't be cast
            :raises DocumentValidationError: model validation failed
        """
        entity_dict = self.validate_incoming_entity_dict_fields(entity_dict, 'create')
        return self.validate_instance(self._create_model(entity_dict))

    def _create_model(self, entity_dict: Mapping):
        return self.model(**entity_dict)

    def update_model(self, entity_dict: Mapping, instance):
        """ Partial update: set the fields the entity dict has, leave the others alone

            :return: The same instance, validated
            :raises InvalidQueryError: the input is not an object
            :raises InvalidColumnError: unknown or non-writable field
            :raises InvalidValueError: a value can't be cast
            :raises DocumentValidationError: model validation failed
        """
        entity_dict = self.validate_incoming_entity_dict_fields(entity_dict, 'update')
        return self.validate_instance(self._update_model(entity_dict, instance))

    def _update_model(self, entity_dict: Mapping, instance):
        for name, value in entity_dict.items():
            setattr(instance, name, value)
        return instance
