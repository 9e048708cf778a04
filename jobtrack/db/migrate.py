"""
Database migration runner for Alembic migrations.
"""
import logging
import os
from alembic.config import Config
from alembic import command
from sqlalchemy import create_engine, text

logger = logging.getLogger(__name__)

ADVISORY_LOCK_ID = 912873465


def run_migrations():
    """
    Run Alembic migrations to head revision.
    Uses a PostgreSQL advisory lock to prevent concurrent migrations.
    """
    from jobtrack.core import config as app_config

    if not app_config.DATABASE_URL:
        raise ValueError("DATABASE_URL is not set")

    logger.info("Running alembic upgrade head")

    alembic_ini_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "alembic.ini")
    alembic_cfg = Config(alembic_ini_path)
    alembic_cfg.set_main_option("sqlalchemy.url", app_config.DATABASE_URL)

    engine = create_engine(app_config.DATABASE_URL, pool_pre_ping=True)
    lock_conn = None
    is_postgres = app_config.DATABASE_URL.startswith("postgresql")

    try:
        if is_postgres:
            # Keep the connection open to hold the lock
            lock_conn = engine.connect()
            try:
                lock_conn.execute(text(f"SELECT pg_advisory_lock({ADVISORY_LOCK_ID})"))
                lock_conn.commit()
                logger.info("Migration lock acquired")
            except Exception as lock_error:
                logger.warning(f"Could not acquire advisory lock: {lock_error}")
                lock_conn.close()
                lock_conn = None

        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")

    except Exception:
        logger.exception("Migration failed")
        raise
    finally:
        if lock_conn is not None:
            try:
                lock_conn.execute(text(f"SELECT pg_advisory_unlock({ADVISORY_LOCK_ID})"))
                lock_conn.commit()
            except Exception as unlock_error:
                logger.warning(f"Could not release advisory lock: {unlock_error}")
            finally:
                lock_conn.close()
        engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_migrations()
