from unittest.mock import MagicMock

import pytest
import requests

from studio_worker import metrics
from studio_worker.jobs.models import (
    FailureReason,
    GenerationRequest,
    GenerationResult,
    MediaType,
    Outcome,
    RouteTier,
    SubmissionFailure,
    SubmittedJob,
)
from studio_worker.jobs.resolver import FALLBACK_ROUTE, IMAGE_ROUTES, VIDEO_ROUTES
from studio_worker.jobs.submit import (
    TaskSubmitter,
    find_task_id,
    has_error_code,
    submit_with_fallback,
)

PRIMARY = IMAGE_ROUTES["seedream-4.5"]


def image_request(**overrides):
    fields = dict(media=MediaType.IMAGE, prompt="a red fox", canonical_model="seedream-4.5", aspect_ratio="1:1")
    fields.update(overrides)
    return GenerationRequest(**fields)


class TestHelpers:
    @pytest.mark.parametrize("payload, expected", [
        ({"data": {"taskId": "a"}}, "a"),
        ({"data": {"task_id": "b"}}, "b"),
        ({"taskId": "c"}, "c"),
        ({"task_id": "d"}, "d"),
        ({"id": 7}, "7"),
        ({"data": {"id": "e"}}, "e"),
        ({"data": None, "taskId": "f"}, "f"),
        ({"data": {}}, None),
        ([], None),
    ])
    def test_find_task_id(self, payload, expected):
        assert find_task_id(payload) == expected

    @pytest.mark.parametrize("payload, expected", [
        ({"code": 200}, False),
        ({"code": "200"}, False),
        ({}, False),
        ({"code": 0}, False),
        ({"code": 500}, True),
        ({"code": 401, "msg": "bad key"}, True),
    ])
    def test_has_error_code(self, payload, expected):
        assert has_error_code(payload) is expected


class TestSubmit:
    def test_task_id_means_submitted(self, kie, reply):
        kie.create_task.return_value = reply({"code": 200, "data": {"taskId": "t-1"}})

        outcome = TaskSubmitter(kie).submit(PRIMARY, image_request())

        assert isinstance(outcome, SubmittedJob)
        assert outcome.job_id == "t-1"
        assert outcome.route is PRIMARY
        assert not outcome.is_complete
        kie.create_task.assert_called_once_with(
            "/api/v1/jobs/createTask",
            {"model": PRIMARY.provider_model_id, "input": {"prompt": "a red fox", "aspect_ratio": "1:1"}},
        )

    def test_immediate_result_without_handle(self, kie, reply):
        kie.create_task.return_value = reply({"code": 200, "data": {"output": {"url": "https://x/now.png"}}})

        outcome = TaskSubmitter(kie).submit(PRIMARY, image_request())

        assert isinstance(outcome, SubmittedJob)
        assert outcome.is_complete
        assert outcome.result_url == "https://x/now.png"
        assert outcome.job_id is None

    def test_http_error(self, kie, reply):
        kie.create_task.return_value = reply({"msg": "Not found"}, status=404)

        outcome = TaskSubmitter(kie).submit(PRIMARY, image_request())

        assert isinstance(outcome, SubmissionFailure)
        assert outcome.reason == FailureReason.PROVIDER_ERROR
        assert outcome.http_status == 404
        assert outcome.provider_message == "Not found"

    def test_provider_error_code_with_http_200(self, kie, reply):
        kie.create_task.return_value = reply({"code": 402, "msg": "Credits insufficient", "data": {"taskId": "x"}})

        outcome = TaskSubmitter(kie).submit(PRIMARY, image_request())

        assert isinstance(outcome, SubmissionFailure)
        assert outcome.reason == FailureReason.PROVIDER_ERROR
        assert outcome.provider_code == 402
        assert outcome.describe() == "Credits insufficient"

    def test_transport_error(self, kie):
        kie.create_task.side_effect = requests.ConnectionError("connection reset")

        outcome = TaskSubmitter(kie).submit(PRIMARY, image_request())

        assert outcome.reason == FailureReason.TRANSPORT
        assert "connection reset" in outcome.provider_message

    def test_non_json_body(self, kie, reply):
        kie.create_task.return_value = reply(None, status=200)

        outcome = TaskSubmitter(kie).submit(PRIMARY, image_request())

        assert outcome.reason == FailureReason.TRANSPORT

    def test_no_handle_and_no_url(self, kie, reply):
        kie.create_task.return_value = reply({"code": 200, "msg": "success", "data": {}})

        outcome = TaskSubmitter(kie).submit(PRIMARY, image_request())

        assert outcome.reason == FailureReason.NO_HANDLE
        assert outcome.describe() == "Provider did not return a task id"


class TestPrepare:
    def test_video_data_uri_is_rehosted(self, kie, reply):
        kie.create_task.return_value = reply({"code": 200, "data": {"taskId": "v"}})
        assets = MagicMock()
        assets.rehost.return_value = "https://cdn/ref.png"
        request = GenerationRequest(
            media=MediaType.VIDEO, prompt="p", canonical_model="runway",
            reference_asset="data:image/png;base64,AAAA",
        )

        TaskSubmitter(kie, assets=assets).submit(VIDEO_ROUTES["runway"], request)

        assets.rehost.assert_called_once_with("data:image/png;base64,AAAA")
        body = kie.create_task.call_args.args[1]
        assert body["imageUrl"] == "https://cdn/ref.png"

    def test_failed_rehost_submits_without_asset(self, kie, reply):
        kie.create_task.return_value = reply({"code": 200, "data": {"taskId": "v"}})
        assets = MagicMock()
        assets.rehost.return_value = None
        request = GenerationRequest(
            media=MediaType.VIDEO, prompt="p", canonical_model="runway",
            reference_asset="data:image/png;base64,AAAA",
        )

        outcome = TaskSubmitter(kie, assets=assets).submit(VIDEO_ROUTES["runway"], request)

        assert isinstance(outcome, SubmittedJob)
        assert "imageUrl" not in kie.create_task.call_args.args[1]

    def test_image_reference_is_passed_through(self, kie):
        assets = MagicMock()
        request = image_request(reference_asset="data:image/png;base64,AAAA")

        prepared = TaskSubmitter(kie, assets=assets).prepare(request)

        assert prepared is request
        assets.rehost.assert_not_called()

    def test_video_url_reference_untouched(self, kie):
        assets = MagicMock()
        request = GenerationRequest(
            media=MediaType.VIDEO, prompt="p", canonical_model="runway",
            reference_asset="https://x/ref.png",
        )
        assert TaskSubmitter(kie, assets=assets).prepare(request) is request
        assets.rehost.assert_not_called()


class TestFallbackRouter:
    def test_primary_success_never_touches_secondary(self, kie, reply):
        kie.create_task.return_value = reply({"code": 200, "data": {"taskId": "p-1"}})

        outcome = submit_with_fallback(TaskSubmitter(kie), PRIMARY, FALLBACK_ROUTE, image_request())

        assert outcome.tier == RouteTier.PRIMARY
        assert kie.create_task.call_count == 1
        assert kie.create_task.call_args.args[0] == PRIMARY.create_path
        assert metrics.get_counter("submit.fallback") == 0

    def test_primary_failure_uses_secondary_once(self, kie, reply):
        kie.create_task.side_effect = [
            reply({"code": 500, "msg": "Server error"}),
            reply({"data": {"taskId": "abc"}}),
        ]

        outcome = submit_with_fallback(TaskSubmitter(kie), PRIMARY, FALLBACK_ROUTE, image_request())

        assert isinstance(outcome, SubmittedJob)
        assert outcome.job_id == "abc"
        assert outcome.tier == RouteTier.SECONDARY
        assert outcome.route is FALLBACK_ROUTE
        paths = [c.args[0] for c in kie.create_task.call_args_list]
        assert paths == [PRIMARY.create_path, FALLBACK_ROUTE.create_path]
        assert metrics.get_counter("submit.fallback") == 1

    def test_both_fail_returns_primary_error_without_third_attempt(self, kie, reply):
        kie.create_task.side_effect = [
            reply({"msg": "model not available"}, status=422),
            reply({"code": 500, "msg": "fallback down"}),
        ]

        outcome = submit_with_fallback(TaskSubmitter(kie), PRIMARY, FALLBACK_ROUTE, image_request())

        assert isinstance(outcome, GenerationResult)
        assert outcome.outcome == Outcome.PROVIDER_ERROR
        assert outcome.message == "model not available"
        assert outcome.http_status() == 422
        assert kie.create_task.call_count == 2

    def test_secondary_message_used_when_primary_has_none(self, kie, reply):
        kie.create_task.side_effect = [
            requests.Timeout(""),
            reply({"code": 503, "msg": "busy"}),
        ]

        outcome = submit_with_fallback(TaskSubmitter(kie), PRIMARY, FALLBACK_ROUTE, image_request())

        assert outcome.message == "busy"
        assert outcome.http_status() == 500

    def test_same_route_is_not_retried(self, kie, reply):
        kie.create_task.return_value = reply({"code": 500})

        outcome = submit_with_fallback(TaskSubmitter(kie), FALLBACK_ROUTE, FALLBACK_ROUTE, image_request())

        assert isinstance(outcome, GenerationResult)
        assert kie.create_task.call_count == 1
        assert outcome.http_status() == 500
