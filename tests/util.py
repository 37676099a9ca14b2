from sqlalchemy import event
from sqlalchemy.orm import Query
from sqlalchemy.dialects import sqlite


def stmt2sql(stmt, *, literal: bool = False) -> str:
    """ Compile a statement or an expression into SQLite SQL """
    return stmt.compile(dialect=sqlite.dialect(),
                        compile_kwargs={'literal_binds': literal}).string


def q2sql(q: Query, *, literal: bool = False) -> str:
    """ Compile a Query into SQLite SQL """
    return stmt2sql(q.statement, literal=literal)


class TestQueryStringsMixin:
    """ unittest mixin for checking the SQL of a query """

    def assertQuery(self, qs, *expected_pieces, literal: bool = False) -> str:
        """ Check that every piece is found in the SQL

            Column lists come in no particular order, so the query is checked piece by piece.
            A trailing comma of a piece is ignored.

            :param qs: Query, or SQL
            :returns: SQL
        """
        if isinstance(qs, Query):
            qs = q2sql(qs, literal=literal)

        for piece in expected_pieces:
            self.assertIn(piece.strip().rstrip(','), qs, 'Not found in:\n{}'.format(qs))
        return qs


class ExpectedQueryCounter:
    """ Count the SQL statements an engine executes within a `with` block; fail if the number is unexpected

        with ExpectedQueryCounter(engine, 2, 'populate() must not do N+1'):
            Tour.find(ssn).populate('reviews').all()
    """

    def __init__(self, engine, expected_queries: int, comment: str):
        self.engine = engine
        self.expected_queries = expected_queries
        self.comment = comment
        self.n = 0

    def _count(self, *args, **kwargs):
        self.n += 1

    def __enter__(self):
        event.listen(self.engine, 'after_cursor_execute', self._count)
        return self

    def __exit__(self, *exc):
        event.remove(self.engine, 'after_cursor_execute', self._count)
        # Don't hide the error that has happened inside the block
        if exc[0] is None and self.n != self.expected_queries:
            raise AssertionError('{} (expected {} queries, actually had {})'
                                 .format(self.comment, self.expected_queries, self.n))
        return False
