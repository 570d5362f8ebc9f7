"""Shared library for the plant-care relay services."""

from plantcare.models import (
    MultipartPayload,
    PredictionRequest,
    PredictionResult,
    ResolverOptions,
)
from plantcare.resolver import Resolver

__all__ = [
    "MultipartPayload",
    "PredictionRequest",
    "PredictionResult",
    "ResolverOptions",
    "Resolver",
]
