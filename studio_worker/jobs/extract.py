"""
Result Extractor: find the finished asset URL in a provider payload.

Providers (and the create vs. status stage of the same provider) put the
result in different places. The candidate paths below are ordered from the
most specific successful shape to the most generic field, so a thumbnail or
preview is never picked over the final asset. The order is the contract:
tests pin it.
"""

import json
from typing import Any, Callable, Optional


def _get(obj: Any, *path) -> Any:
    """Walk dict keys / list indexes; None as soon as the shape does not match."""
    for step in path:
        if isinstance(step, int):
            if not isinstance(obj, list) or len(obj) <= step:
                return None
        elif not isinstance(obj, dict):
            return None
        obj = obj[step] if isinstance(step, int) else obj.get(step)
    return obj


def _result_json(task: Any) -> Any:
    raw = _get(task, "resultJson")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return None
    return raw


def _path(*steps) -> Callable[[Any], Any]:
    return lambda task: _get(task, *steps)


CANDIDATE_PATHS: tuple[tuple[str, Callable[[Any], Any]], ...] = (
    # universal job API, resultJson is a JSON string
    ("resultJson.resultUrls[0]", lambda task: _get(_result_json(task), "resultUrls", 0)),
    # model-specific endpoints
    ("response.resultUrls[0]", _path("response", "resultUrls", 0)),
    ("response.resultImageUrl", _path("response", "resultImageUrl")),
    ("response.originImageUrl", _path("response", "originImageUrl")),
    ("videoInfo.videoUrl", _path("videoInfo", "videoUrl")),
    ("resultImageUrl", _path("resultImageUrl")),
    ("originImageUrl", _path("originImageUrl")),
    ("resultUrl", _path("resultUrl")),
    # generic output shapes
    ("output.url", _path("output", "url")),
    ("output.image_url", _path("output", "image_url")),
    ("output.video_url", _path("output", "video_url")),
    ("output.images[0].url", _path("output", "images", 0, "url")),
    ("output.images[0]", _path("output", "images", 0)),
    ("images[0].url", _path("images", 0, "url")),
    ("images[0]", _path("images", 0)),
    ("works[0].resource.resource", _path("works", 0, "resource", "resource")),
    ("results[0].url", _path("results", 0, "url")),
    ("image_url", _path("image_url")),
    ("imageUrl", _path("imageUrl")),
    ("video_url", _path("video_url")),
    ("videoUrl", _path("videoUrl")),
    ("url", _path("url")),
    ("result.image_url", _path("result", "image_url")),
    ("result.url", _path("result", "url")),
)


def _is_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("http")


def find_url(payload: Any) -> Optional[tuple[str, str]]:
    """Like extract_url but also returns the name of the path that matched."""
    if not isinstance(payload, dict):
        return None

    # task data first, then the raw envelope
    scopes = []
    if isinstance(payload.get("data"), dict):
        scopes.append(payload["data"])
    scopes.append(payload)

    for scope in scopes:
        for name, accessor in CANDIDATE_PATHS:
            value = accessor(scope)
            if _is_url(value):
                return name, value
    return None


def extract_url(payload: Any) -> Optional[str]:
    """First well-formed absolute URL in ``payload``, or None."""
    match = find_url(payload)
    return match[1] if match else None
