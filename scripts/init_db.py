# scripts/init_db.py
"""
Drop and recreate every table on the configured DATABASE_URL.
"""

import logging

from repario.core.logging import setup_logging
from repario.db.engine import get_engine
from repario.db.schema import metadata

logger = logging.getLogger(__name__)


def main():
    setup_logging()
    engine = get_engine()
    metadata.drop_all(engine)
    metadata.create_all(engine)
    logger.info("DB schema created on %s", engine.url.render_as_string(hide_password=True))


if __name__ == "__main__":
    main()
