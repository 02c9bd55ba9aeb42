"""Seed RBAC catalogs (permissions, default roles with base permissions, job titles).

Usage:
    python -m scripts.seed_rbac
Requires DATABASE_URL and a migrated schema (alembic upgrade head). Safe to re-run.
"""

import asyncio
import sys

from access_matrix.core.config import get_settings
from access_matrix.infrastructure.persistence.database import get_session_factory
from access_matrix.infrastructure.persistence.seed import seed_catalogs
from access_matrix.shared.telemetry.logging import setup_logging


async def main() -> None:
    """Seed catalogs in one transaction."""
    try:
        get_settings()
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)
    setup_logging()

    async with get_session_factory()() as session:
        async with session.begin():
            created = await seed_catalogs(session)
    print(
        f"Seeded {created['permissions']} permissions, {created['roles']} roles, "
        f"{created['job_titles']} job titles"
    )


if __name__ == "__main__":
    asyncio.run(main())
