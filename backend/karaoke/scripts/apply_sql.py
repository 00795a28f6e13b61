"""
Apply a SQL file to the configured database.

    python -m karaoke.scripts.apply_sql path/to/fix.sql

The file is first sent as one batch. Drivers that refuse multi-statement
batches fall back to running each `;`-separated statement on its own; failed
statements are logged and skipped.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from karaoke.core.logging import setup_logging
from karaoke.services.session_directory import generate_code

logger = logging.getLogger(__name__)


def split_statements(sql: str) -> List[str]:
    return [s.strip() for s in sql.split(";") if s.strip()]


async def apply_sql(sql: str, engine: AsyncEngine) -> Tuple[int, int]:
    """Returns (executed, failed) statement counts."""
    statements = split_statements(sql)
    if not statements:
        logger.info("Nothing to apply")
        return 0, 0

    try:
        async with engine.begin() as conn:
            await conn.exec_driver_sql(sql)
        logger.info("Applied SQL batch")
        return len(statements), 0
    except SQLAlchemyError as e:
        logger.warning(f"Batch failed ({e.__class__.__name__}), applying statements one by one")

    executed = failed = 0
    for statement in statements:
        try:
            async with engine.begin() as conn:
                await conn.exec_driver_sql(statement)
            executed += 1
        except SQLAlchemyError as e:
            failed += 1
            logger.error(f"Statement failed: {statement[:80]!r}: {e}")
    return executed, failed


async def run(path: Path, engine: Optional[AsyncEngine] = None) -> Tuple[int, int]:
    if engine is None:
        from karaoke.db.session import engine

    sql = path.read_text(encoding="utf-8")
    executed, failed = await apply_sql(sql, engine)
    logger.info(f"Executed {executed} statement(s), {failed} failed")

    code = generate_code()
    logger.info(f"Session code generator check: {code}")
    return executed, failed


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Apply a SQL file to the karaoke database")
    parser.add_argument("path", type=Path, help="SQL file to apply")
    args = parser.parse_args(argv)

    setup_logging()
    if not args.path.is_file():
        logger.error(f"No such file: {args.path}")
        return 2

    _, failed = asyncio.run(run(args.path))
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
