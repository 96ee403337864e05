"""SQLModel database engine and session management."""
from sqlmodel import SQLModel, create_engine, Session
from vendor_oms.core.config import settings

# Import models so SQLModel.metadata knows about all tables
import vendor_oms.models.order  # noqa: F401
import vendor_oms.models.assignment  # noqa: F401

# SQLite needs check_same_thread off because FastAPI runs sync routes in a threadpool
_connect_args = (
    {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
)

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    pool_pre_ping=True,
    echo=False,
)


def create_db_and_tables() -> None:
    """Create all tables defined in SQLModel models."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """FastAPI dependency: yields a SQLModel session."""
    with Session(engine) as session:
        yield session
