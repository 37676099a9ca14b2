"""
### populate()

Related documents, loaded with the results and returned inside them.

```python
# a tour, and all of its reviews
Tour.find(ssn).find({'id': 1}).populate('reviews').one_or_none()
```

Related documents are loaded with a separate `SELECT .. WHERE .. IN (..)` query,
and are plucked with the default projection of the related model.
"""

from sqlalchemy.orm import selectinload

from .base import DocumentQueryHandlerBase
from ..exc import DisabledError, InvalidQueryError


class PopulateHandler(DocumentQueryHandlerBase):
    """ The populate() directive. Input: relationship names, as a list or a whitespace-separated string """

    directive_name = 'populate'

    def __init__(self, model, bags, allowed_relations=None):
        """
        :param allowed_relations: The relationships that may be populated; populating another one is a DisabledError.
            None: any of them.
        """
        super(PopulateHandler, self).__init__(model, bags)

        self.allowed_relations = set(allowed_relations) if allowed_relations is not None else None
        if self.allowed_relations:
            self.validate_properties(self.allowed_relations, where='populate:allowed_relations')

        #: Relationships to load, in order
        self.relations = []

    def _get_supported_bags(self):
        return self.bags.relations

    def input(self, relations):
        super(PopulateHandler, self).input(relations)

        relations = relations or []
        if isinstance(relations, str):
            relations = relations.split()

        if not isinstance(relations, (list, tuple)) or not all(isinstance(v, str) for v in relations):
            raise InvalidQueryError('{} must be a list of relationship names'.format(self.directive_name))

        self.validate_properties(relations)
        if self.allowed_relations is not None:
            disallowed = set(relations) - self.allowed_relations
            if disallowed:
                raise DisabledError('{}: relationship "{}" is not allowed'
                                    .format(self.directive_name, sorted(disallowed)[0]))

        self.relations = list(dict.fromkeys(relations))
        return self

    def compile_options(self, as_relation):
        """ selectinload() every relationship """
        return [selectinload(self.bags.relations[name])
                for name in self.relations]

    def alter_query(self, query, as_relation=None):
        if not self.relations:
            return query
        return query.options(*self.compile_options(as_relation))

    def get_final_input_value(self):
        return list(self.relations)

    def pluck_instance(self, instance, pluck_related):
        """ {relationship: related dict, or a list of them}

        :param pluck_related: callable(model, instance) -> dict
        """
        ret = {}
        for name in self.relations:
            target_model = self.bags.relations.get_target_model(name)
            value = getattr(instance, name)
            if self.bags.relations.is_relationship_array(name):
                ret[name] = [pluck_related(target_model, v) for v in value]
            else:
                ret[name] = pluck_related(target_model, value) if value is not None else None
        return ret
