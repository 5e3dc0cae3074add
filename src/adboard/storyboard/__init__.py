"""Storyboard state and frame generation."""

from .store import SceneStateStore
from .propagator import (
    ConsistencyPropagator,
    build_frame_prompt,
    build_reference_images,
    frame_resolution,
)

__all__ = [
    "SceneStateStore",
    "ConsistencyPropagator",
    "build_frame_prompt",
    "build_reference_images",
    "frame_resolution",
]
