"""
Model Resolver: free-form UI label → canonical model id → ProviderRoute.

All dispatch is table data:
  *_ALIASES   human / legacy label → canonical id
  *_ROUTES    canonical id → ProviderRoute

Unknown labels resolve to the resolver's default route instead of failing.
"""

import re
import logging
from typing import Optional

from .models import Envelope, ProviderRoute

logger = logging.getLogger(__name__)

UNIVERSAL_CREATE = "/api/v1/jobs/createTask"
UNIVERSAL_STATUS = "/api/v1/jobs/recordInfo"

RUNWAY_RATIOS = ("16:9", "4:3", "1:1", "3:4", "9:16")
VEO_RATIOS = ("16:9", "9:16")


def slugify(label: str) -> str:
    return re.sub(r"\s+", "-", label.strip().lower())


# ── Input builders ───────────────────────────────────────────────────────────
# Signature: (prompt, duration, aspect_ratio, asset_url, options) -> dict

def image_input(prompt, duration, aspect_ratio, asset_url, options) -> dict:
    payload = {"prompt": prompt, "aspect_ratio": aspect_ratio or "1:1"}
    if asset_url:
        payload["image_url"] = asset_url
    return payload


def _seconds(duration, default: int = 5) -> int:
    try:
        return int(str(duration).strip().rstrip("s"))
    except (TypeError, ValueError):
        return default


def runway_input(prompt, duration, aspect_ratio, asset_url, options) -> dict:
    """Runway accepts 5 or 10 seconds; 1080p is only available for 5s clips."""
    seconds = 10 if _seconds(duration) == 10 else 5
    payload = {
        "prompt": prompt,
        "duration": seconds,
        "quality": "720p" if seconds == 10 else "1080p",
        "aspectRatio": aspect_ratio if aspect_ratio in RUNWAY_RATIOS else "16:9",
    }
    if options.get("remove_watermark"):
        payload["waterMark"] = ""
    if asset_url:
        payload["imageUrl"] = asset_url
    return payload


def _veo_input(model_name: str):
    def build(prompt, duration, aspect_ratio, asset_url, options) -> dict:
        payload = {
            "prompt": prompt,
            "model": model_name,
            "aspectRatio": aspect_ratio if aspect_ratio in VEO_RATIOS else "16:9",
        }
        if asset_url:
            payload["mode"] = "REFERENCE_2_VIDEO"
            payload["imageUrls"] = [asset_url]
        return payload
    return build


def market_video_input(prompt, duration, aspect_ratio, asset_url, options) -> dict:
    payload = {
        "prompt": prompt,
        "duration": str(_seconds(duration)),
        "aspect_ratio": aspect_ratio or "16:9",
    }
    if asset_url:
        payload["image_urls"] = [asset_url]
    return payload


# ── Route factories ──────────────────────────────────────────────────────────

def _universal(name: str, provider_model_id: str, builder) -> ProviderRoute:
    return ProviderRoute(
        name=name,
        provider_model_id=provider_model_id,
        create_path=UNIVERSAL_CREATE,
        status_path=UNIVERSAL_STATUS,
        input_builder=builder,
        envelope=Envelope.TASK,
    )


def _direct(name: str, provider_model_id: str, family: str, builder,
            status: str = "record-info", create: str = "generate") -> ProviderRoute:
    return ProviderRoute(
        name=name,
        provider_model_id=provider_model_id,
        create_path=f"/api/v1/{family}/{create}",
        status_path=f"/api/v1/{family}/{status}",
        input_builder=builder,
        envelope=Envelope.DIRECT,
    )


# ── Image tables ─────────────────────────────────────────────────────────────

IMAGE_ROUTES = {
    "flux-kontext": _universal("flux-kontext", "flux-kontext-pro", image_input),
    "nano-banana": _universal("nano-banana", "google/nano-banana", image_input),
    "nano-banana-pro": _universal("nano-banana-pro", "nano-banana-pro", image_input),
    "seedream": _universal("seedream", "bytedance/seedream", image_input),
    "seedream-4.0": _universal("seedream-4.0", "bytedance/seedream-v4-text-to-image", image_input),
    "seedream-4.5": _universal("seedream-4.5", "bytedance/seedream-v4.5-text-to-image", image_input),
    "qwen-image": _universal("qwen-image", "qwen/text-to-image", image_input),
    "4o-image": _universal("4o-image", "openai/gpt-image-1", image_input),
    "midjourney-v7": _universal("midjourney-v7", "midjourney/imagine", image_input),
    "ideogram-v3": _universal("ideogram-v3", "ideogram/text-to-image", image_input),
    "recraft": _universal("recraft", "recraft-v3", image_input),
}

IMAGE_ALIASES = {
    "Flux Kontext": "flux-kontext",
    "flux": "flux-kontext",
    "flux-kontext-pro": "flux-kontext",
    "Nano Banana": "nano-banana",
    "Nano Banana Pro": "nano-banana-pro",
    "Seedream": "seedream",
    "Seedream 4.0": "seedream-4.0",
    "seedream-4": "seedream-4.0",
    "seedream-4.0.0": "seedream-4.0",
    "Seedream 4.5": "seedream-4.5",
    "seedream-4.5.0": "seedream-4.5",
    "qwen": "qwen-image",
    "Qwen Image": "qwen-image",
    "4o": "4o-image",
    "4o Image": "4o-image",
    "gpt-image-1": "4o-image",
    "midjourney": "midjourney-v7",
    "Midjourney V7": "midjourney-v7",
    "ideogram": "ideogram-v3",
    "Ideogram V3": "ideogram-v3",
    "Recraft": "recraft",
    "recraft-v3": "recraft",
}

# The one known-good route every failed image submission is retried on once.
FALLBACK_ROUTE = _direct(
    "flux-kontext-direct", "flux-kontext-pro", "flux/kontext", image_input
)


# ── Video tables ─────────────────────────────────────────────────────────────

RUNWAY_ROUTE = _direct("runway", "runway", "runway", runway_input, status="record-detail")

VIDEO_ROUTES = {
    "runway": RUNWAY_ROUTE,
    "runway-aleph": RUNWAY_ROUTE,
    "luma-dream": RUNWAY_ROUTE,
    "veo3-fast": _direct("veo3-fast", "veo3_fast", "veo", _veo_input("veo3_fast")),
    "veo3-quality": _direct("veo3-quality", "veo3", "veo", _veo_input("veo3")),
    "sora-2": _universal("sora-2", "sora-2-text-to-video", market_video_input),
    "sora-2-pro": _universal("sora-2-pro", "sora-2-pro-text-to-video", market_video_input),
    "kling-turbo": _universal("kling-turbo", "kling/v2-5-turbo-text-to-video-pro", market_video_input),
    "kling-2-6": _universal("kling-2-6", "kling-2.6/text-to-video", market_video_input),
    "seedance-lite": _universal("seedance-lite", "bytedance/v1-lite-text-to-video", market_video_input),
    "seedance-pro": _universal("seedance-pro", "bytedance/v1-pro-text-to-video", market_video_input),
    "seedance-pro-fast": _universal("seedance-pro-fast", "bytedance/v1-pro-fast-image-to-video", market_video_input),
    "wan-2-5": _universal("wan-2-5", "wan/2-5-text-to-video", market_video_input),
    "hailuo-2-3": _universal("hailuo-2-3", "hailuo/2-3-text-to-video-pro", market_video_input),
}

VIDEO_ALIASES = {
    "Runway Aleph": "runway-aleph",
    "Luma Dream Machine": "luma-dream",
    "veo3": "veo3-quality",
    "veo-3.1-fast": "veo3-fast",
    "veo-3.1-quality": "veo3-quality",
    "Veo 3 Fast": "veo3-fast",
    "Veo 3.1 Quality": "veo3-quality",
    "sora": "sora-2",
    "Sora 2": "sora-2",
    "Sora 2 Pro": "sora-2-pro",
    "kling": "kling-2-6",
    "kling-2.6": "kling-2-6",
    "Kling 2.6": "kling-2-6",
    "Kling 2.5 Turbo": "kling-turbo",
    "seedance": "seedance-pro",
    "Seedance V1 Lite": "seedance-lite",
    "Seedance 1.5 Pro": "seedance-pro",
    "Seedance Pro Fast": "seedance-pro-fast",
    "wan": "wan-2-5",
    "hailuo": "hailuo-2-3",
    "hailuo-2.3": "hailuo-2-3",
}


# ── Resolver ─────────────────────────────────────────────────────────────────

class ModelResolver:
    """Deterministic, total lookup over static tables. Never raises."""

    def __init__(self, aliases: dict, routes: dict, default: str):
        if default not in routes:
            raise ValueError(f"Default model {default!r} has no route")
        missing = sorted(set(aliases.values()) - set(routes))
        if missing:
            raise ValueError(f"Aliases point at models without a route: {missing}")
        self.aliases = aliases
        self.routes = routes
        self.default = default
        self._lowered = {key.lower(): value for key, value in aliases.items()}

    def canonical(self, ui_label: Optional[str]) -> str:
        if not ui_label or not ui_label.strip():
            return self.default

        if ui_label in self.aliases:
            return self.aliases[ui_label]
        lowered = ui_label.lower()
        if lowered in self._lowered:
            return self._lowered[lowered]

        slug = slugify(ui_label)
        if slug in self._lowered:
            return self._lowered[slug]
        if slug in self.routes:
            return slug

        logger.warning(f"Unknown model label {ui_label!r}, using default {self.default!r}")
        return self.default

    def resolve(self, ui_label: Optional[str]) -> ProviderRoute:
        return self.routes[self.canonical(ui_label)]


IMAGE_MODELS = ModelResolver(IMAGE_ALIASES, IMAGE_ROUTES, default="flux-kontext")
VIDEO_MODELS = ModelResolver(VIDEO_ALIASES, VIDEO_ROUTES, default="runway")
