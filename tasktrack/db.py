from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from tasktrack.core.config import settings


# ---------- SQLAlchemy Setup ----------
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, future=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# ---------- Dependency ----------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
