# storefront/utils/concurrency.py
import logging
from typing import Callable, Dict, TypeVar

import anyio
import anyio.to_thread
from sqlalchemy.orm import Session

from storefront.database import Database
from storefront.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_parallel_reads(db: Database, reads: Dict[str, Callable[[Session], T]]) -> Dict[str, T]:
    """Runs independent read queries concurrently and joins on all of them.

    Each branch gets its own session in a worker thread. Results and errors
    of every branch are collected before returning; if any branch failed the
    whole read fails with PersistenceFailure.
    """
    results: Dict[str, T] = {}
    errors: Dict[str, Exception] = {}

    def _run(name: str, read: Callable[[Session], T]):
        with db.session() as session:
            try:
                results[name] = read(session)
            except Exception as e:
                logger.exception("Parallel read '%s' failed", name)
                errors[name] = e

    async with anyio.create_task_group() as tg:
        for name, read in reads.items():
            tg.start_soon(anyio.to_thread.run_sync, _run, name, read)

    if errors:
        first = next(iter(errors.values()))
        raise PersistenceFailure() from first
    return results
