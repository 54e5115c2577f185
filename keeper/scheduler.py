"""
Task dispatch and recurring scheduling for Keeper.

Manages:
- Concurrent execution of one batch (one TaskRunner per task)
- Recurring batches driven by a cron expression (APScheduler)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from keeper.models import BackupTask, RunResult

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


class Dispatcher:
    """
    Runs every task of a batch concurrently and waits for all of them.
    """

    def __init__(self, runner_factory: Callable[[BackupTask], object], max_workers: Optional[int] = None):
        """
        Initialize dispatcher.

        Args:
            runner_factory: Builds a TaskRunner for a task
            max_workers: Concurrency cap (None = one worker per task)

        Raises:
            ValueError: If max_workers is less than 1
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1: {max_workers}")

        self.runner_factory = runner_factory
        self.max_workers = max_workers

    def dispatch(self, tasks: Iterable[BackupTask]) -> List[RunResult]:
        """
        Execute all tasks and block until every one has finished.

        Returns:
            RunResults in task order
        """
        tasks = list(tasks)
        if not tasks:
            logger.info("No backup tasks configured")
            return []

        workers = min(self.max_workers or len(tasks), len(tasks))
        logger.info("Dispatching %d tasks (%d workers)", len(tasks), workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='keeper-task') as pool:
            futures = [pool.submit(self._run, task) for task in tasks]
            try:
                results = [future.result() for future in futures]
            except KeyboardInterrupt:
                logger.warning("Interrupted, cancelling tasks that have not started")
                pool.shutdown(wait=True, cancel_futures=True)
                raise

        failed = [r.task.label for r in results if not r.succeeded]
        logger.info(
            "Batch complete. Tasks: %d, succeeded: %d, failed: %d%s",
            len(results), len(results) - len(failed), len(failed),
            f" ({', '.join(failed)})" if failed else ""
        )
        return results

    def _run(self, task: BackupTask) -> RunResult:
        return self.runner_factory(task).execute()


def init_scheduler(job: Callable[[], object], cron: str, timezone: str = 'UTC'):
    """
    Initialize and configure APScheduler for recurring batches.

    Args:
        job: Callable running one batch
        cron: Crontab expression (five fields)
        timezone: Timezone for the cron trigger

    Raises:
        ValueError: If the cron expression is invalid
    """
    global scheduler

    if scheduler is not None:
        return scheduler

    trigger = CronTrigger.from_crontab(cron, timezone=timezone)

    job_defaults = {
        'coalesce': True,  # Combine multiple pending runs into one
        'max_instances': 1,  # Never overlap two batches
        'misfire_grace_time': 300  # 5 minutes grace period for misfires
    }

    scheduler = BlockingScheduler(job_defaults=job_defaults, timezone=timezone)
    scheduler.add_job(
        func=job,
        trigger=trigger,
        id='backup_batch',
        name='Backup batch',
        replace_existing=True
    )

    return scheduler


def start_scheduler():
    """
    Start the scheduler. Blocks until stop_scheduler() or an interrupt.
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    for job in scheduler.get_jobs():
        logger.info("Scheduled %s (%s)", job.name, job.trigger)

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler interrupted")


def stop_scheduler():
    """Stop the scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    scheduler = None
