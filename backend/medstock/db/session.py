"""Local session database. SQLite by default; holds only the key/value session cache."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medstock.core.config import settings


def make_engine(url: str):
    if url.startswith("sqlite"):
        # SQLite: Use StaticPool for in-memory URLs so every session sees the same database
        from sqlalchemy.pool import NullPool, StaticPool
        poolclass = StaticPool if ":memory:" in url or url == "sqlite://" else NullPool
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=poolclass)
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(settings.SESSION_DB_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
