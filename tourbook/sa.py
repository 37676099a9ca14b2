from copy import copy
from typing import Union

from sqlalchemy.orm import Session, Query

from .query import DocumentQuery


class DocumentQueryModelBase:
    """ Model mixin: Tour.find(ssn) makes a DocumentQuery

            class Tour(Base, DocumentQueryModelBase):
                __document_query_settings__ = DocumentQuerySettingsDict(
                    force_filter={'secret_tour': {'$ne': True}},
                )
    """

    #: Settings for every DocumentQuery of the model
    __document_query_settings__ = None

    #: model -> its DocumentQuery. Not a class attribute of each model: subclasses must not inherit it.
    __document_queries = {}

    @classmethod
    def _init_document_query(cls) -> DocumentQuery:
        """ Make the model's DocumentQuery. Called once; override it to customize. """
        return DocumentQuery(cls, settings=cls.__document_query_settings__)

    @classmethod
    def _get_document_query(cls) -> DocumentQuery:
        """ A copy of the model's DocumentQuery """
        if cls not in cls.__document_queries:
            cls.__document_queries[cls] = cls._init_document_query()
        return copy(cls.__document_queries[cls])

    @classmethod
    def find(cls, query_or_session: Union[Query, Session] = None, criteria: dict = None) -> DocumentQuery:
        """ A DocumentQuery of this model

        :param query_or_session: A Session to query with, or a Query to build upon.
            With None, the query has no session: bind one to the result of .end()
        :param criteria: Base query criteria, see DocumentQuery.where()
        """
        if isinstance(query_or_session, Session):
            query_or_session = query_or_session.query(cls)
        elif query_or_session is not None and not isinstance(query_or_session, Query):
            raise ValueError('Argument must be Query or Session')

        return cls._get_document_query().from_query(query_or_session).where(criteria)
