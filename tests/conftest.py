"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import base64
from typing import List

import pytest

from adboard.models import MediaPayload, ProductContext, Scene, StudioSettings
from adboard.storyboard import SceneStateStore

from .fakes import FakeRenderer


@pytest.fixture
def product() -> ProductContext:
    """Product with three images and no references."""
    return ProductContext(
        images=[MediaPayload(data=base64.b64encode(f"product-{i}".encode()).decode()) for i in range(3)],
        title="Glow Serum",
        description="Vitamin C face serum",
    )


@pytest.fixture
def sample_scenes() -> List[Scene]:
    """Three scripted scenes without frames."""
    return [
        Scene(
            id=f"s{i}",
            visual=f"Visual {i}",
            action=f"Action {i}",
            camera="Handheld",
            dialogue=f"Line {i}",
            dialogue_translation=f"台词 {i}",
            image_prompt=f"Prompt {i}",
        )
        for i in range(1, 4)
    ]


@pytest.fixture
def store(sample_scenes) -> SceneStateStore:
    return SceneStateStore(sample_scenes)


@pytest.fixture
def settings() -> StudioSettings:
    return StudioSettings()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()
