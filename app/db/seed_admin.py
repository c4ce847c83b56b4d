"""
Seed script: create the tables (if missing) and the first admin account.

Usage:
  python -m app.db.seed_admin --email registrar@school.edu.ph --password 'S3cure!pass' --name "Registrar"

Running it again for an existing email leaves that account untouched.
"""
import argparse
import asyncio
import logging
from typing import Optional

from app.auth.services import create_admin
from app.core.exceptions import ServiceError
from app.db.session import AsyncSessionLocal, init_models

logger = logging.getLogger(__name__)


async def seed_admin(email: str, password: str, name: Optional[str] = None) -> None:
    await init_models()
    async with AsyncSessionLocal() as db:
        try:
            admin = await create_admin(db, email=email, password=password, name=name)
        except ServiceError as e:
            logger.info("%s; nothing to do", e.message)
            return
        logger.info("Created admin %s (%s)", admin.email, admin.id)


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the first admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default=None)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(seed_admin(args.email, args.password, args.name))


if __name__ == "__main__":
    main()
