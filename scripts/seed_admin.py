# scripts/seed_admin.py
"""
Create an admin profile, or promote an existing one.

Usage:
    python -m scripts.seed_admin admin@example.com 'a-strong-password' --name "Admin"
"""

import argparse
import logging

from sqlalchemy import insert, select, update

from repario.core.logging import setup_logging
from repario.core.security import hash_password
from repario.db.engine import get_engine
from repario.db.schema import new_id, profiles, utcnow

logger = logging.getLogger(__name__)


def seed_admin(engine, email: str, password: str, name: str = None) -> str:
    email = email.strip().lower()
    with engine.begin() as conn:
        existing = conn.execute(
            select(profiles.c.id).where(profiles.c.email == email)
        ).scalar_one_or_none()

        if existing is not None:
            conn.execute(
                update(profiles)
                .where(profiles.c.id == existing)
                .values(role="admin", password_hash=hash_password(password), updated_at=utcnow())
            )
            logger.info("Promoted %s to admin", email)
            return existing

        user_id = new_id()
        conn.execute(
            insert(profiles).values(
                id=user_id,
                email=email,
                password_hash=hash_password(password),
                display_name=name,
                role="admin",
            )
        )
        logger.info("Created admin %s", email)
        return user_id


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default=None)
    args = parser.parse_args()

    setup_logging()
    seed_admin(get_engine(), args.email, args.password, args.name)


if __name__ == "__main__":
    main()
