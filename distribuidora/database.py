"""Database configuration and initialization."""
from contextlib import contextmanager

from sqlalchemy import BigInteger, Integer, create_engine, text
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# BIGINT keys in PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
Identifier = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine = create_engine(
        database_uri,
        echo=app.config.get('SQLALCHEMY_ECHO', False),
        **app.config.get('SQLALCHEMY_ENGINE_OPTIONS', {})
    )

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def get_session():
    """Get database session."""
    return db_session


def get_engine():
    """Get the engine bound by init_db."""
    return engine


def create_all():
    """Create every table known to the models package."""
    import distribuidora.models  # noqa: F401  (registers mappers)
    Base.metadata.create_all(bind=engine)


def drop_all():
    import distribuidora.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def ping() -> bool:
    """Run a trivial query; used by the /api/health/db endpoint."""
    with engine.connect() as conn:
        return conn.execute(text('SELECT 1')).scalar() == 1


@contextmanager
def transaction(session):
    """
    Scoped unit of work.

    Commits when the block finishes and rolls back (re-raising) on any
    exception, so a multi-statement write is either fully applied or leaves
    no trace.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
