from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from ev_charging.config import settings

connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    pool_pre_ping=True,
    connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """Provide a request-scoped database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
