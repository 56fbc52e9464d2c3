"""
Task Submitter and Fallback Router.

submit():               one creation call on one route → SubmittedJob | SubmissionFailure
submit_with_fallback(): PRIMARY → (on failure) SECONDARY → FAILED. Never a third route;
                        creation calls are billed, so this is not a retry loop.
"""

import json
import logging
from typing import Any, Optional, Union

import requests

from .. import metrics
from ..kie import KieClient
from .extract import extract_url
from .models import (
    FailureReason,
    GenerationRequest,
    GenerationResult,
    MediaType,
    ProviderRoute,
    RouteTier,
    SubmissionFailure,
    SubmittedJob,
)
from .storage import ReferenceAssets, is_data_uri

logger = logging.getLogger(__name__)

SubmitOutcome = Union[SubmittedJob, SubmissionFailure]


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def find_task_id(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if not isinstance(data, dict):
        data = {}
    task_id = (
        data.get("taskId")
        or data.get("task_id")
        or payload.get("taskId")
        or payload.get("task_id")
        or payload.get("id")
        or data.get("id")
    )
    return str(task_id) if task_id else None


def provider_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    message = payload.get("msg") or payload.get("message") or payload.get("error")
    return str(message) if message else None


def has_error_code(payload: Any) -> bool:
    """Kie.ai answers HTTP 200 with ``code != 200`` for most API-level errors."""
    if not isinstance(payload, dict):
        return False
    code = payload.get("code")
    return bool(code) and _as_int(code) != 200


class TaskSubmitter:
    def __init__(self, client: KieClient, assets: Optional[ReferenceAssets] = None):
        self.client = client
        self.assets = assets

    def prepare(self, request: GenerationRequest) -> GenerationRequest:
        """Video requests get inline reference assets rehosted to a public URL."""
        if request.media != MediaType.VIDEO or not is_data_uri(request.reference_asset):
            return request
        if self.assets is None:
            logger.warning("No object store configured, dropping inline reference asset")
            return request.model_copy(update={"reference_asset": None})
        return request.model_copy(update={"reference_asset": self.assets.rehost(request.reference_asset)})

    def submit(self, route: ProviderRoute, request: GenerationRequest,
               tier: RouteTier = RouteTier.PRIMARY) -> SubmitOutcome:
        request = self.prepare(request)
        body = route.build_body(
            request.prompt,
            duration=request.duration,
            aspect_ratio=request.aspect_ratio,
            asset_url=request.reference_asset,
            options=request.params,
        )
        logger.info(f"Submitting to route {route.name} ({tier.value}): {json.dumps(body)[:500]}")

        try:
            response = self.client.create_task(route.create_path, body)
        except requests.RequestException as e:
            logger.warning(f"Route {route.name}: transport error on create: {e}")
            return SubmissionFailure(
                reason=FailureReason.TRANSPORT,
                route_name=route.name,
                provider_message=str(e),
            )

        payload = response.payload
        logger.info(f"Route {route.name} create → HTTP {response.status_code}: {str(payload)[:500]}")

        if not response.is_json:
            return SubmissionFailure(
                reason=FailureReason.TRANSPORT,
                route_name=route.name,
                http_status=response.status_code,
                provider_message="Provider returned a non-JSON response",
            )

        if not response.ok or has_error_code(payload):
            return SubmissionFailure(
                reason=FailureReason.PROVIDER_ERROR,
                route_name=route.name,
                http_status=response.status_code,
                provider_code=_as_int(payload.get("code")) if isinstance(payload, dict) else None,
                provider_message=provider_message(payload),
            )

        task_id = find_task_id(payload)
        if task_id:
            logger.info(f"Route {route.name}: got taskId {task_id}")
            return SubmittedJob(job_id=task_id, route=route, tier=tier)

        # some endpoints answer synchronously
        immediate = extract_url(payload)
        if immediate:
            logger.info(f"Route {route.name}: immediate result {immediate[:100]}")
            return SubmittedJob(route=route, tier=tier, result_url=immediate)

        logger.error(f"Route {route.name}: no taskId in response: {str(payload)[:500]}")
        return SubmissionFailure(
            reason=FailureReason.NO_HANDLE,
            route_name=route.name,
            http_status=response.status_code,
            provider_message=None,
        )


def failure_result(request: GenerationRequest, *failures: SubmissionFailure) -> GenerationResult:
    """Terminal error for failed submissions; the first failure's details win."""
    primary = failures[0]
    message = primary.provider_message or next(
        (f.provider_message for f in failures[1:] if f.provider_message), None
    ) or primary.describe()
    status = primary.http_status if primary.http_status and primary.http_status >= 400 else primary.provider_code
    return GenerationResult.provider_error(request.media, message, status_code=status)


def submit_with_fallback(
    submitter: TaskSubmitter,
    primary: ProviderRoute,
    secondary: ProviderRoute,
    request: GenerationRequest,
) -> Union[SubmittedJob, GenerationResult]:
    failures: list[SubmissionFailure] = []
    tier = RouteTier.PRIMARY

    while tier != RouteTier.FAILED:
        route = primary if tier == RouteTier.PRIMARY else secondary
        outcome = submitter.submit(route, request, tier=tier)
        if isinstance(outcome, SubmittedJob):
            return outcome

        failures.append(outcome)
        logger.warning(f"{tier.value} route {route.name} failed ({outcome.reason.value}): {outcome.describe()}")

        if tier == RouteTier.PRIMARY and secondary.name != primary.name:
            metrics.inc_counter("submit.fallback")
            tier = RouteTier.SECONDARY
        else:
            tier = RouteTier.FAILED

    metrics.inc_counter("submit.failed")
    return failure_result(request, *failures)
