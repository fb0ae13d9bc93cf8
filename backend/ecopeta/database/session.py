from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from ecopeta.core.config import DATABASE_URL

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL not configured. Set the environment variable before starting the API.")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
