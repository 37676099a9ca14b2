import nox.sessions

PYTHON_VERSIONS = ['3.8', '3.9', '3.10', '3.11', '3.12']
SQLALCHEMY_VERSIONS = [
    '1.4.52',
    '2.0.36',
]


nox.options.reuse_existing_virtualenvs = True
nox.options.sessions = [
    'tests',
    'tests_sqlalchemy',
]


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.sessions.Session, sqlalchemy=None):
    """ pytest, with the test extra installed """
    session.install('-e', '.[test]')

    # Pinned SqlAlchemy
    if sqlalchemy:
        session.install(f'sqlalchemy=={sqlalchemy}')

    session.run('pytest', 'tests/')


@nox.session(python=PYTHON_VERSIONS[-1])
@nox.parametrize('sqlalchemy', SQLALCHEMY_VERSIONS)
def tests_sqlalchemy(session: nox.sessions.Session, sqlalchemy):
    """ The test suite with a pinned SqlAlchemy release """
    tests(session, sqlalchemy)
