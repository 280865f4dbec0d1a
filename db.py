import os
from urllib.parse import urlsplit, parse_qs, urlunsplit

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

load_dotenv()

# fallback to a local sqlite for development if not configured
DEFAULT_DATABASE_URL = "sqlite:///./local.db"


def normalize_url(url):
    """Return ``(url, connect_args)`` ready for ``create_engine``."""
    connect_args = {}

    # Generic mysql:// would make SQLAlchemy look for MySQLdb; use pymysql instead.
    if url.startswith("mysql://"):
        url = url.replace("mysql://", "mysql+pymysql://", 1)

    # Provider URLs (e.g. Aiven) append params like `ssl-mode=REQUIRED` that are
    # not valid DBAPI kwargs. Strip the query and translate what we know.
    parts = urlsplit(url)
    if parts.query and not url.startswith("sqlite"):
        qs = parse_qs(parts.query)
        if qs.get("ssl-mode") or qs.get("ssl_mode"):
            # an empty dict asks pymysql for TLS without a custom CA
            connect_args["ssl"] = {}
        url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", parts.fragment))

    if url.startswith("sqlite"):
        # refreshes commit from worker threads
        connect_args["check_same_thread"] = False

    return url, connect_args


def make_engine(url):
    url, connect_args = normalize_url(url)
    kwargs = {"pool_pre_ping": True, "connect_args": connect_args}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


DATABASE_URL = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL

engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)


def init_db(Base, bind=None):
    """Create tables. Call with schema.Base."""
    Base.metadata.create_all(bind=bind or engine)
