from ..bag import ModelPropertyBags
from ..exc import InvalidColumnError


class DocumentQueryHandlerBase:
    """ Handles one DocumentQuery directive: find(), sort(), select(), skip()/limit(), populate()

        Lifecycle:

        1. __init__(model, bags, **settings): once per model. Keyword arguments with defaults are settings.
        2. copy(), then input(value): once per directive call. Validates the value; raises on bad input.
        3. alter_query(query, as_relation): applies the directive to an SqlAlchemy Query.

        A handler that has received its input is spent: copy the pristine one for the next value.
    """

    #: Name of the directive, as used in errors and in the `<name>_enabled` setting
    directive_name = None

    def __init__(self, model, bags: ModelPropertyBags):
        """
        :param model: The model the directive is applied to
        :param bags: Bags of the model. Given, not looked up, so that DocumentQuery may use its own bags class.
        """
        self.model = model
        self.bags = bags
        #: The fields this directive may refer to
        self.supported_bags = self._get_supported_bags()

        self.input_received = False
        self.input_value = None

    def __copy__(self):
        # A shallow copy: settings are shared, and input() replaces the input attributes instead of mutating them
        result = self.__class__.__new__(self.__class__)
        result.__dict__.update(self.__dict__)
        return result

    def _get_supported_bags(self):
        """ The bag of fields this handler accepts

        :rtype: tourbook.bag.Bag | None
        """
        raise NotImplementedError

    def validate_properties(self, prop_names, bag=None, where=None):
        """ Check field names against `bag` (default: `self.supported_bags`)

        :param where: The name of the directive or setting, for the error message
        :raises InvalidColumnError: the first unknown name, alphabetically
        """
        invalid = (bag or self.supported_bags).get_invalid_names(prop_names)
        if invalid:
            raise InvalidColumnError(self.bags.model_name, min(invalid), where or self.directive_name)

    def input(self, value):
        """ Receive the value of the directive

        Subclasses call it first, then parse and validate the value.

        :rtype: DocumentQueryHandlerBase
        :raises InvalidColumnError: unknown field
        :raises InvalidQueryError: malformed value
        """
        if self.input_received:
            raise RuntimeError('{}.input() was already called: copy() the handler to give it another value'
                               .format(self.__class__.__name__))
        self.input_received = True
        self.input_value = value
        return self

    def alter_query(self, query, as_relation):
        """ Apply the directive to the query

        :type query: sqlalchemy.orm.Query
        :param as_relation: Loader options interface for the model's attributes; not every handler needs it
        :type as_relation: sqlalchemy.orm.Load
        :rtype: sqlalchemy.orm.Query
        """
        raise NotImplementedError

    def get_final_input_value(self):
        """ The directive value after parsing, and after the settings were applied """
        return self.input_value
