"""
Generation job orchestration

Resolve a UI model label to a provider route, submit the job (with a single
fallback route for images), poll it under an attempt budget and extract the
result URL from whatever shape the provider answers with.
"""

from .orchestrator import GenerationService
from .routes import generate_router
from .models import GenerateRequest, GenerationResult, JobStatus, Outcome

__all__ = [
    "GenerationService",
    "generate_router",
    "GenerateRequest",
    "GenerationResult",
    "JobStatus",
    "Outcome",
]
