"""Database connection setup for the account service using SQLAlchemy."""

import os
import logging
from fastapi import HTTPException
from sqlalchemy import create_engine, exc
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# Logger configuration
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Load environment variables from .env
load_dotenv()

# Database credentials (MariaDB) read from the environment
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_HOST = os.getenv("DB_HOST")
DB_NAME = os.getenv("DB_NAME")


def build_database_url() -> str:
    """
    Resolves the SQLAlchemy URL.

    DATABASE_URL wins when set. Otherwise the MariaDB URL is built from the
    DB_* variables, falling back to a local SQLite file when any is missing.
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    required_db_vars = {"DB_USER", "DB_PASS", "DB_HOST", "DB_NAME"}
    missing_vars = required_db_vars - set(os.environ)
    if missing_vars:
        logger.warning(f"Missing database environment variables: {', '.join(sorted(missing_vars))}. Using local SQLite.")
        return "sqlite:///./accounts.db"

    return f"mysql+pymysql://{DB_USER}:{DB_PASS}@{DB_HOST}/{DB_NAME}"


SQLALCHEMY_DATABASE_URL = build_database_url()

# The engine is the entry point to the database.
# pool_pre_ping=True handles stale connections in the pool.
try:
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {},
    )
    # Connect once to check credentials and availability at startup
    with engine.connect() as connection:
        logger.info("Database connection established.")
except exc.SQLAlchemyError as e:
    logger.error(f"Error connecting to the database: {e}", exc_info=True)
    engine = None


# Session factory: each web request gets its own session.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None

# Base class for the declarative models
Base = declarative_base()


# --- FastAPI dependency ---
def get_db():
    """
    FastAPI dependency that yields a database session.
    Rolls back on database errors and always closes the session.
    """
    if SessionLocal is None:
        logger.error("Database session factory is not initialized.")
        raise HTTPException(status_code=503, detail="Database service unavailable.")

    db = SessionLocal()
    try:
        yield db
    except exc.SQLAlchemyError as e:
        logger.error(f"Database error during request: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal database error.")
    finally:
        db.close()
