"""LLM gateway: model catalog and client factory."""

from .catalog import MODELS, LLMModel, ModelConfig, get_default_model, get_model_by_id
from .factory import LLMFactory

__all__ = [
    "LLMFactory",
    "LLMModel",
    "MODELS",
    "ModelConfig",
    "get_default_model",
    "get_model_by_id",
]
