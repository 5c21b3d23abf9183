"""Create all database tables.

Usage: mytodos-init-db [--database-url URL]
"""
import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from mytodos.config import get_settings
from mytodos.database import create_db_engine, init_db

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Initialize the mytodos database")
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(levelname)s %(message)s")

    engine = create_db_engine(args.database_url)
    try:
        init_db(engine)
    except SQLAlchemyError:
        logger.exception("Database initialization failed")
        return 1
    finally:
        engine.dispose()

    logger.info("Database initialization completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
