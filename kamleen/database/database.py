from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from kamleen.core.config import DATABASE_URL

SQLALCHEMY_DATABASE_URL = DATABASE_URL

# SQLite connections are shared with FastAPI's threadpool and background tasks
connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base model for all ORM classes
Base = declarative_base()


# ✅ Dependency for FastAPI routes
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
