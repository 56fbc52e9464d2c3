"""
GenerationService: end-to-end handler for one generation call.

  Image: resolve → submit (primary, then the fixed fallback route) → poll
  Video: resolve → rehost inline reference → submit (no fallback tier) → poll

Every call is independent: nothing is cached or shared between calls, and
each call returns exactly one GenerationResult.
"""

import time
import logging
from typing import Callable, Optional

from .. import config, metrics
from ..kie import KieClient
from .errors import MisconfigurationError, ProviderJobFailed
from .models import (
    GenerateRequest,
    GenerationRequest,
    GenerationResult,
    MediaType,
    PollBudget,
    SubmissionFailure,
    SubmittedJob,
)
from .poller import Poller
from .resolver import FALLBACK_ROUTE, IMAGE_MODELS, VIDEO_MODELS
from .storage import ReferenceAssets
from .submit import TaskSubmitter, failure_result, submit_with_fallback

logger = logging.getLogger(__name__)

NEUTRAL_STYLES = {"", "photorealism"}


def styled_prompt(prompt: str, style: Optional[str]) -> str:
    if not style or style in NEUTRAL_STYLES:
        return prompt
    return f"{prompt}, {style} style"


def poll_budget(media: MediaType, test_mode: bool,
                interval: Optional[float] = None) -> PollBudget:
    test_attempts, real_attempts = (
        config.IMAGE_POLL_ATTEMPTS if media == MediaType.IMAGE else config.VIDEO_POLL_ATTEMPTS
    )
    return PollBudget(
        max_attempts=test_attempts if test_mode else real_attempts,
        interval=config.POLL_INTERVAL_SECONDS if interval is None else interval,
    )


class GenerationService:
    """
    Usage:
        service = GenerationService()
        result = service.generate_image(GenerateRequest(prompt="a fox", model="Flux Kontext"))
        status_code, body = result.to_response()

    ``client_factory`` builds a KieClient from the API key; ``sleep`` is the
    poll delay function. Both exist so tests can run without network or waiting.
    """

    def __init__(
        self,
        client_factory: Callable[[str], KieClient] = KieClient,
        assets: Optional[ReferenceAssets] = None,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval: Optional[float] = None,
    ):
        self.client_factory = client_factory
        self.assets = assets if assets is not None else ReferenceAssets()
        self.sleep = sleep
        self.poll_interval = poll_interval

    # ── Public API ───────────────────────────────────────────────────────

    def generate_image(self, request: GenerateRequest) -> GenerationResult:
        return self._run(MediaType.IMAGE, request)

    def generate_video(self, request: GenerateRequest) -> GenerationResult:
        return self._run(MediaType.VIDEO, request)

    # ── Internals ────────────────────────────────────────────────────────

    def _client(self) -> KieClient:
        api_key = config.get_kie_api_key()
        if not api_key:
            raise MisconfigurationError("KIEAI_API_KEY is not configured")
        return self.client_factory(api_key)

    def _run(self, media: MediaType, request: GenerateRequest) -> GenerationResult:
        started = time.monotonic()
        metrics.inc_counter(f"requests.{media.value}")
        logger.info(f"=== GENERATE {media.value.upper()} === model={request.model!r} prompt={request.prompt[:100]!r}")

        try:
            client = self._client()
            if media == MediaType.IMAGE:
                result = self._image(client, request)
            else:
                result = self._video(client, request)
        except MisconfigurationError as e:
            logger.error(f"Misconfiguration: {e}")
            result = GenerationResult.misconfigured(media)
        except ProviderJobFailed as e:
            result = GenerationResult.provider_error(media, e.message)
        except Exception as e:
            logger.error(f"generate-{media.value} failed unexpectedly: {e}", exc_info=True)
            result = GenerationResult.provider_error(media, str(e) or "Unknown error")

        metrics.record_latency(f"generate.{media.value}", (time.monotonic() - started) * 1000)
        metrics.inc_counter(f"outcome.{result.outcome.value}")
        if not result.ok:
            metrics.record_error(f"generate.{media.value}", result.outcome.value, result.message or "")
        return result

    def _image(self, client: KieClient, request: GenerateRequest) -> GenerationResult:
        canonical = IMAGE_MODELS.canonical(request.model)
        route = IMAGE_MODELS.routes[canonical]
        job_request = GenerationRequest(
            media=MediaType.IMAGE,
            prompt=styled_prompt(request.prompt, request.style),
            canonical_model=canonical,
            aspect_ratio=request.aspect_ratio or "1:1",
            reference_asset=request.reference_image,
            test_mode=request.is_test,
        )
        logger.info(f"Image model {request.model!r} → {canonical} ({route.provider_model_id})")

        outcome = submit_with_fallback(TaskSubmitter(client), route, FALLBACK_ROUTE, job_request)
        if isinstance(outcome, GenerationResult):
            return outcome
        return self._finish(client, outcome, job_request)

    def _video(self, client: KieClient, request: GenerateRequest) -> GenerationResult:
        canonical = VIDEO_MODELS.canonical(request.model)
        route = VIDEO_MODELS.routes[canonical]
        job_request = GenerationRequest(
            media=MediaType.VIDEO,
            prompt=request.prompt,
            canonical_model=canonical,
            aspect_ratio=request.aspect_ratio,
            duration=request.duration,
            reference_asset=request.reference_image,
            params={"remove_watermark": request.remove_watermark},
            test_mode=request.is_test,
        )
        logger.info(f"Video model {request.model!r} → {canonical} ({route.provider_model_id})")

        outcome = TaskSubmitter(client, assets=self.assets).submit(route, job_request)
        if isinstance(outcome, SubmissionFailure):
            return failure_result(job_request, outcome)
        return self._finish(client, outcome, job_request)

    def _finish(self, client: KieClient, job: SubmittedJob,
                request: GenerationRequest) -> GenerationResult:
        if job.is_complete:
            return GenerationResult.success(request.media, job.result_url)

        budget = poll_budget(request.media, request.test_mode, self.poll_interval)
        logger.info(f"Polling {job.job_id} on {job.route.status_path} (max {budget.max_attempts} attempts)")
        url = Poller(client, sleep=self.sleep).poll(job, budget)

        if url is None:
            # the provider job may still finish server-side
            logger.error(f"Timeout waiting for {job.job_id} after {budget.max_attempts} attempts")
            return GenerationResult.timeout(request.media)
        return GenerationResult.success(request.media, url)
