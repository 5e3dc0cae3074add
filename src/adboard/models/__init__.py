"""Data models for the storyboard studio."""

from .scene import AssetType, FrameKind, GeneratedAsset, PromptFormat, Scene
from .project import (
    AnalysisResult,
    AspectRatio,
    GenerationMode,
    ImageResolution,
    MediaPayload,
    ProductContext,
    SceneDraft,
    StudioSettings,
    StudioState,
    StudioStep,
)
from .manifest import ProductionManifest
from .export import StoryboardExport, ExportedScene

__all__ = [
    "AssetType",
    "FrameKind",
    "GeneratedAsset",
    "PromptFormat",
    "Scene",
    "AnalysisResult",
    "AspectRatio",
    "GenerationMode",
    "ImageResolution",
    "MediaPayload",
    "ProductContext",
    "SceneDraft",
    "StudioSettings",
    "StudioState",
    "StudioStep",
    "ProductionManifest",
    "StoryboardExport",
    "ExportedScene",
]
