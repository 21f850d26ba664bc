"""Create the local session tables. Run on app startup."""
from medstock.db.base import Base
from medstock.db.session import engine
from medstock.models import session_entry  # noqa: F401 - register models


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
