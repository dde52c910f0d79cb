"""External inference + statistical ensemble."""

from .blender import (
    EnsembleBlender,
    ExternalInferenceStrategy,
    ExternalPredictionResponse,
    PredictionStrategy,
    StatisticalStrategy,
    parse_external_response,
)
from .inference import (
    GeminiInferenceClient,
    HttpInferenceClient,
    InferenceClient,
    build_inference_client,
    strip_code_fences,
)
from .prompts import build_prediction_prompt

__all__ = [
    "EnsembleBlender",
    "ExternalInferenceStrategy",
    "ExternalPredictionResponse",
    "GeminiInferenceClient",
    "HttpInferenceClient",
    "InferenceClient",
    "PredictionStrategy",
    "StatisticalStrategy",
    "build_inference_client",
    "build_prediction_prompt",
    "parse_external_response",
    "strip_code_fences",
]
