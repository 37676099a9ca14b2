from copy import copy


class Reusable:
    """ A DocumentQuery template that is copied before every use

        Building a DocumentQuery parses its settings and initializes every handler.
        Do it once, at the module level, and let Reusable hand out copies:

            tour_query = Reusable(DocumentQuery(Tour, tour_settings))

            def handler(ssn):
                # a fresh copy: the template itself never receives any directives
                return tour_query.from_query(ssn.query(Tour)).find({'difficulty': 'easy'}).all()
    """
    __slots__ = ('_template',)

    def __init__(self, template):
        self._template = template

    def __getattr__(self, attr):
        # Every attribute access works on a new copy
        return getattr(copy(self._template), attr)

    def __repr__(self):
        return 'Reusable({!r})'.format(self._template)
