import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from pydantic import BaseModel

from prisma import Prisma
from csr26_api.domains.billing.service import BillingService
from csr26_api.domains.corsair.service import CorsairExportService
from csr26_api.domains.cron.models import CronRunResult, CronTaskResult
from csr26_api.domains.impact.service import process_matured_impacts

logger = logging.getLogger(__name__)

DAILY_MATURATION = "daily-maturation"
MONTHLY_BILLING = "monthly-billing"
MONTHLY_CORSAIR_EXPORT = "monthly-corsair-export"


class CronService:
    """
    Scheduled batches, triggered from the admin API or an external scheduler.

    Each task is isolated: a failing task is reported in its result and the
    remaining tasks still run.
    """

    def __init__(self, db: Prisma):
        self.db = db

    async def _run_task(
        self, task: str, job: Callable[[], Awaitable[BaseModel]]
    ) -> CronTaskResult:
        started_at = datetime.now(timezone.utc)
        try:
            result = await job()
        except Exception as e:
            logger.exception("Cron task %s failed", task)
            return CronTaskResult(
                task=task,
                success=False,
                startedAt=started_at,
                completedAt=datetime.now(timezone.utc),
                error=str(e) or type(e).__name__,
            )
        logger.info("Cron task %s completed", task)
        return CronTaskResult(
            task=task,
            success=True,
            startedAt=started_at,
            completedAt=datetime.now(timezone.utc),
            result=result.model_dump(mode="json"),
        )

    async def run_daily_maturation(self) -> CronTaskResult:
        return await self._run_task(
            DAILY_MATURATION, lambda: process_matured_impacts(self.db)
        )

    async def run_monthly_billing(self) -> CronTaskResult:
        return await self._run_task(
            MONTHLY_BILLING, lambda: BillingService(self.db).run_monthly_billing()
        )

    async def run_monthly_corsair_export(self) -> CronTaskResult:
        return await self._run_task(
            MONTHLY_CORSAIR_EXPORT,
            lambda: CorsairExportService(self.db).export_pending_certified_users(),
        )

    async def _run(
        self, prefix: str, tasks: list[Callable[[], Awaitable[CronTaskResult]]]
    ) -> CronRunResult:
        run_id = f"{prefix}-{int(time.time() * 1000)}"
        started_at = datetime.now(timezone.utc)
        logger.info("Cron run %s started", run_id)

        results = [await task() for task in tasks]
        succeeded = sum(1 for r in results if r.success)

        logger.info(
            "Cron run %s finished: %d/%d tasks succeeded", run_id, succeeded, len(results)
        )
        return CronRunResult(
            runId=run_id,
            startedAt=started_at,
            completedAt=datetime.now(timezone.utc),
            tasksRun=len(results),
            tasksSucceeded=succeeded,
            tasksFailed=len(results) - succeeded,
            results=results,
        )

    async def run_daily_tasks(self) -> CronRunResult:
        return await self._run("daily", [self.run_daily_maturation])

    async def run_monthly_tasks(self) -> CronRunResult:
        return await self._run(
            "monthly", [self.run_monthly_billing, self.run_monthly_corsair_export]
        )

    async def run_all_tasks(self) -> CronRunResult:
        return await self._run(
            "all",
            [
                self.run_daily_maturation,
                self.run_monthly_billing,
                self.run_monthly_corsair_export,
            ],
        )
