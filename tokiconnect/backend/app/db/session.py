from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from ..config import get_settings

settings = get_settings()

# sqlite connections are shared across the threadpool in dev and tests
connect_args = (
    {"check_same_thread": False} if settings.sqlalchemy_url.startswith("sqlite") else {}
)
engine = create_engine(
    settings.sqlalchemy_url,
    future=True,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
Base = declarative_base()


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
