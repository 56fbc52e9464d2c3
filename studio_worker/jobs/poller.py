"""
Poller: wait for a submitted job to reach a terminal state.

    Pending ──poll──▶ Pending
       │
       ├──▶ Completed (URL extracted)   → return url
       ├──▶ Failed                      → raise ProviderJobFailed
       └──▶ budget exhausted            → return None (timeout)

Completion has two independent signals, OR-combined: a "done" status word,
or a non-null ``completeTime``. They can disagree (timestamp set while the
status still says generating); both are honoured as observed on the provider.
A completed job without a URL yet keeps polling until the budget runs out.

The provider keeps running a job after we stop polling; a timeout here does
not mean the job was discarded.
"""

import time
import logging
from typing import Any, Callable, Optional

import requests

from .. import metrics
from ..kie import KieClient
from .errors import ProviderJobFailed
from .extract import extract_url
from .models import JobStatus, PollBudget, SubmittedJob

logger = logging.getLogger(__name__)

DONE_STATES = {"completed", "success"}
FAILED_STATES = {"failed", "fail", "error", "generate_failed", "create_task_failed", "sensitive_word_error"}
PENDING_STATES = {"pending", "wait", "waiting", "queueing", "queuing", "generating", "processing", "running"}


def task_data(payload: Any) -> dict:
    if not isinstance(payload, dict):
        return {}
    data = payload.get("data")
    return data if isinstance(data, dict) else payload


def classify_status(data: dict) -> JobStatus:
    state = str(data.get("status") or data.get("state") or "").strip().lower()
    flag = data.get("successFlag")

    if state in FAILED_STATES or flag in (2, 3):
        return JobStatus.FAILED
    if state in DONE_STATES or data.get("completeTime") is not None or flag == 1:
        return JobStatus.COMPLETED
    if state in PENDING_STATES or flag == 0:
        return JobStatus.PENDING
    return JobStatus.UNKNOWN


def failure_message(data: dict) -> str:
    for key in ("failMsg", "errorMessage", "error", "failReason"):
        if data.get(key):
            return str(data[key])
    return "Generation failed"


class Poller:
    def __init__(self, client: KieClient, sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.sleep = sleep

    def check(self, job: SubmittedJob) -> tuple[JobStatus, Optional[str], dict]:
        """One status request. Anything unusable counts as Pending."""
        try:
            response = self.client.get_task(job.route.status_path, job.job_id)
        except requests.RequestException as e:
            logger.warning(f"Poll transport error for {job.job_id}: {e}")
            return JobStatus.PENDING, None, {}

        if not response.ok or not isinstance(response.payload, dict):
            logger.info(f"Poll HTTP {response.status_code} for {job.job_id}")
            return JobStatus.PENDING, None, {}

        payload = response.payload
        code = payload.get("code")
        if code is not None and str(code) != "200":
            # 404 = task not visible yet
            return JobStatus.PENDING, None, {}

        data = task_data(payload)
        status = classify_status(data)
        url = extract_url(payload) if status == JobStatus.COMPLETED else None
        return status, url, data

    def poll(self, job: SubmittedJob, budget: PollBudget) -> Optional[str]:
        """Result URL, or None when the budget ran out. Raises ProviderJobFailed."""
        for attempt in range(1, budget.max_attempts + 1):
            self.sleep(budget.interval)
            metrics.inc_counter("poll.attempts")

            status, url, data = self.check(job)

            if attempt % 5 == 0 or attempt > budget.max_attempts - 3:
                logger.info(
                    f"Poll {attempt}/{budget.max_attempts} for {job.job_id}: "
                    f"{status.value} {str(data)[:300]}"
                )

            if status == JobStatus.COMPLETED and url:
                logger.info(f"Job {job.job_id} completed after {attempt} poll(s): {url[:100]}")
                return url
            if status == JobStatus.COMPLETED:
                logger.info(f"Job {job.job_id} reports completion but no URL yet")
            elif status == JobStatus.FAILED:
                message = failure_message(data)
                logger.error(f"Job {job.job_id} failed: {message}")
                raise ProviderJobFailed(message, task_id=job.job_id)

        logger.error(f"Job {job.job_id}: no result after {budget.max_attempts} attempts")
        return None
