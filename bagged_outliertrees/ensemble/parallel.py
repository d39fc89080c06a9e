"""
Scoped Worker Pool
==================

Runs one batch of independent tasks (all fits, or all predictions) on a
bounded joblib pool. The pool only lives for the duration of the batch and
is released on every exit path, including when a task fails.

Results are consumed in completion order; callers must not rely on it.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence

from joblib import Parallel, cpu_count, delayed
from tqdm import tqdm

logger = logging.getLogger(__name__)


def resolve_n_jobs(nthreads: Optional[int], n_tasks: Optional[int] = None) -> int:
    """Number of workers: None / -1 mean all cores, never more than tasks."""
    n_jobs = cpu_count() if nthreads is None or nthreads == -1 else int(nthreads)
    n_jobs = max(1, n_jobs)
    if n_tasks is not None:
        n_jobs = max(1, min(n_jobs, n_tasks))
    return n_jobs


@contextmanager
def worker_pool(
    nthreads: Optional[int] = None,
    backend: str = 'threading',
    n_tasks: Optional[int] = None,
) -> Iterator[Parallel]:
    """Acquire a joblib pool yielding results as tasks complete."""
    n_jobs = resolve_n_jobs(nthreads, n_tasks)
    if backend == 'sequential':
        n_jobs = 1
    logger.debug(f"Starting worker pool: backend={backend}, n_jobs={n_jobs}")
    with Parallel(n_jobs=n_jobs, backend=backend, return_as='generator_unordered') as parallel:
        yield parallel
    logger.debug("Worker pool released")


def run_unordered(
    func: Callable[..., Any],
    tasks: Iterable[Sequence[Any]],
    nthreads: Optional[int] = None,
    backend: str = 'threading',
    desc: Optional[str] = None,
    show_progress: bool = True,
) -> List[Any]:
    """Call ``func(*args)`` for every ``args`` in ``tasks`` on a worker pool.

    Blocks until every task has completed. The first exception raised by a
    task aborts the batch and is re-raised here.

    Returns:
        Task results, in completion order.
    """
    tasks = list(tasks)
    if not tasks:
        return []

    results = []
    with worker_pool(nthreads, backend, n_tasks=len(tasks)) as parallel:
        outputs = parallel(delayed(func)(*args) for args in tasks)
        for output in tqdm(outputs, total=len(tasks), desc=desc, disable=not show_progress):
            results.append(output)
    return results
