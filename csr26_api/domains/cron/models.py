from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel


class CronTaskResult(BaseModel):
    task: str
    success: bool
    startedAt: datetime
    completedAt: datetime
    result: Optional[Any] = None
    error: Optional[str] = None


class CronRunResult(BaseModel):
    runId: str
    startedAt: datetime
    completedAt: datetime
    tasksRun: int
    tasksSucceeded: int
    tasksFailed: int
    results: List[CronTaskResult]
