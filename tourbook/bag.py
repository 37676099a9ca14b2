"""
### Model property bags

What a query may refer to, per model: columns, @property attributes, relationships.
Handlers validate field names against these bags, and the filter casts values with the column types.

```python
bags = ModelPropertyBags.for_model(Tour)
'price' in bags.columns  # -> True
bags.columns.get_python_type('price')  # -> float
bags.relations.get_target_model('reviews')  # -> Review
```
"""

from itertools import chain

from sqlalchemy import inspect, Column, TypeDecorator

from typing import Union, Set, Mapping, Iterable, Iterator, Tuple, FrozenSet


class ModelPropertyBags:
    """ All the fields of a model, sorted into bags

    * `columns`: column attributes
    * `properties`: @property attributes (virtual fields)
    * `writable_properties`: the @property attributes that have a setter
    * `relations`: relationships
    * `pk`: primary key columns
    * `writable`: columns + writable properties: what an entity dict may contain

    Inspecting a model isn't cheap: use `for_model()`, which does it once per model.
    """
    __cache = {}

    @classmethod
    def for_model(cls, model) -> 'ModelPropertyBags':
        """ Get the bags of a model; cached """
        try:
            return cls.__cache[model]
        except KeyError:
            cls.__cache[model] = bags = cls(model)
            return bags

    def __init__(self, model):
        mapper = inspect(model)

        self.model = model
        self.model_name = model.__name__

        self.columns = ColumnsBag({
            name: getattr(model, name)
            for name, attr in mapper.column_attrs.items()
            # column_property(select(...)) and other expressions are not columns
            if isinstance(attr.expression, Column)
        })
        self.properties = PropertiesBag(
            name
            for name in dir(model)
            if not name.startswith('_') and isinstance(getattr(model, name, None), property)
        )
        self.relations = RelationshipsBag({
            name: getattr(model, name)
            for name in mapper.relationships.keys()
        })

        pk_names = {mapper.get_property_by_column(c).key for c in mapper.primary_key}
        self.pk = PrimaryKeyBag({name: self.columns[name] for name in pk_names})

        self.writable_properties = PropertiesBag(
            name
            for name in self.properties.names
            if getattr(model, name).fset is not None
        )
        self.writable = CombinedBag(col=self.columns, prop=self.writable_properties)

    @property
    def all_names(self) -> Set[str]:
        """ Names of every field: columns, properties, relationships """
        return self.columns.names | self.properties.names | self.relations.names

    def __repr__(self):
        return 'ModelPropertyBags({})'.format(self.model_name)


class Bag:
    """ A named collection of model attributes: name -> attribute """

    def __init__(self, attributes: Mapping[str, object]):
        self._attributes = dict(attributes)
        self._names = frozenset(self._attributes)

    @property
    def names(self) -> FrozenSet[str]:
        return self._names

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __getitem__(self, name: str):
        return self._attributes[name]

    def __iter__(self) -> Iterator[Tuple[str, object]]:
        """ (name, attribute) pairs, in the order of declaration """
        return iter(self._attributes.items())

    def get_invalid_names(self, names: Iterable[str]) -> Set[str]:
        """ The names that are not in this bag """
        return set(names) - self._names


class PropertiesBag(Bag):
    """ @property attributes. Only their names are kept: every attribute is None """

    def __init__(self, names: Iterable[str]):
        super(PropertiesBag, self).__init__(dict.fromkeys(names))


class ColumnsBag(Bag):
    """ Column attributes, and the Python types they store """

    def __init__(self, columns: Mapping[str, object]):
        super(ColumnsBag, self).__init__(columns)
        self._python_types = {name: _column_python_type(column)
                              for name, column in self._attributes.items()}

    def get_python_type(self, name: str) -> Union[type, None]:
        """ The Python type of a column; None when SqlAlchemy can't tell """
        return self._python_types[name]


class PrimaryKeyBag(ColumnsBag):
    """ Primary key columns """


class RelationshipsBag(Bag):
    """ Relationship attributes """

    def is_relationship_array(self, name: str) -> bool:
        """ Does the relationship load a list? (one-to-many, many-to-many) """
        return self[name].property.uselist

    def get_target_model(self, name: str):
        """ The model on the other side of the relationship """
        return self[name].property.mapper.class_


class CombinedBag(Bag):
    """ Several bags looked up as one

    Used where a handler accepts more than one kind of field,
    e.g. the projection takes columns and properties:

        bag = CombinedBag(col=bags.columns, prop=bags.properties)
        bag_name, source_bag, attribute = bag['price']  # -> 'col', bags.columns, Tour.price
        bag.get('price')  # -> Tour.price

    The name tells which bag the field came from, so that the handler can treat it accordingly.
    """

    def __init__(self, **bags: Bag):
        self._bags = bags
        self._bag_name_by_field = {name: bag_name
                                   for bag_name, bag in bags.items()
                                   for name in bag.names}
        super(CombinedBag, self).__init__(chain.from_iterable(bags.values()))

    def bag(self, bag_name: str) -> Bag:
        """ Get one of the combined bags """
        return self._bags[bag_name]

    def __getitem__(self, name: str) -> Tuple[str, Bag, object]:
        bag_name = self._bag_name_by_field[name]
        bag = self._bags[bag_name]
        return bag_name, bag, bag[name]

    def get(self, name: str):
        """ Get the attribute, from whichever bag has it """
        return self[name][2]


def _column_python_type(column) -> Union[type, None]:
    column_type = column.type
    # Type decorators wrap the type that actually stores the value
    if isinstance(column_type, TypeDecorator):
        column_type = column_type.impl
    try:
        return column_type.python_type
    except NotImplementedError:
        return None
