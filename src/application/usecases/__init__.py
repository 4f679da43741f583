# Use Cases
from src.application.usecases.clip_video import (
    ClipPipelineConfig,
    ClipVideoUseCase,
    map_error_to_response,
)

__all__ = [
    "ClipVideoUseCase",
    "ClipPipelineConfig",
    "map_error_to_response",
]
