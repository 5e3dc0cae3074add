"""Tests for the studio controller and access gate."""

import json
import random

import pytest

from adboard.agents import ProductAnalyst, PromptFormatter
from adboard.errors import ValidationFailure
from adboard.models import (
    AspectRatio,
    FrameKind,
    GenerationMode,
    ImageResolution,
    MediaPayload,
    PromptFormat,
    StudioStep,
)
from adboard.services.gemini import GeminiClient
from adboard.studio import END_EDIT_SUFFIX, MIDDLE_EDIT_SUFFIX, AccessGate, StudioController

from .fakes import (
    FakeApiError,
    FakeRenderer,
    analysis_json,
    fake_genai,
    manifest_payload,
    no_sleep,
    text_response,
)


def make_controller(analysis=(), prompts=(), renderer=None):
    """Controller whose analyst and formatter talk to fake SDK clients."""
    analyst_client = GeminiClient(client=fake_genai(*analysis), sleep=no_sleep)
    formatter_client = GeminiClient(client=fake_genai(*prompts), sleep=no_sleep)
    renderer = renderer or FakeRenderer()
    controller = StudioController(
        client=renderer,
        analyst=ProductAnalyst(analyst_client, rng=random.Random(3)),
        formatter=PromptFormatter(formatter_client),
    )
    return controller, renderer


@pytest.fixture
def images():
    return [MediaPayload(data="cHJvZHVjdA==")]


async def analysed(controller, images, scene_count=1):
    controller.set_product_field("images", images)
    controller.set_scene_count(scene_count)
    result = await controller.start_analysis()
    assert result is not None
    return result


class TestSettings:
    """Tests for product fields and settings."""

    def test_scene_count_clamped(self):
        controller, _ = make_controller()

        assert controller.set_scene_count(0) == 1
        assert controller.set_scene_count(15) == 10
        assert controller.adjust_scene_count(-3) == 7
        assert controller.adjust_scene_count(+9) == 10

    def test_unknown_product_field(self):
        controller, _ = make_controller()

        with pytest.raises(ValidationFailure):
            controller.set_product_field("price", 10)

    def test_settings_setters(self):
        controller, _ = make_controller()

        controller.set_aspect_ratio("16:9")
        controller.set_resolution(ImageResolution.ULTRA)
        controller.set_generation_mode("intermediate")

        settings = controller.state.settings
        assert settings.aspect_ratio is AspectRatio.LANDSCAPE
        assert settings.image_resolution is ImageResolution.ULTRA
        assert settings.generation_mode is GenerationMode.INTERMEDIATE


class TestAnalysis:
    """Tests for the analysis trigger."""

    @pytest.mark.asyncio
    async def test_requires_images(self):
        controller, _ = make_controller()

        assert await controller.start_analysis() is None
        assert controller.state.error_message == "Upload at least one product image."
        assert controller.state.active_step is StudioStep.INPUT

    @pytest.mark.asyncio
    async def test_failure_returns_to_input(self, images):
        controller, _ = make_controller(analysis=[FakeApiError(400, "bad request")])
        controller.set_product_field("images", images)

        assert await controller.start_analysis() is None

        state = controller.state
        assert state.error_message.startswith("Analysis failed, please retry:")
        assert state.active_step is StudioStep.INPUT
        assert state.is_analyzing is False
        assert controller.scenes == ()

    @pytest.mark.asyncio
    async def test_success_seeds_scenes(self, images):
        controller, _ = make_controller(analysis=[text_response(analysis_json(4))])

        result = await analysed(controller, images, scene_count=2)

        assert [s.id for s in controller.scenes] == ["scene-1", "scene-2", "scene-3", "scene-4"]
        assert controller.state.settings.scene_count == 4
        assert controller.state.active_step is StudioStep.STORYBOARD
        assert controller.state.is_analyzing is False
        assert controller.voice == result.assigned_voice
        assert all(s.prompt_format is PromptFormat.PLAIN for s in controller.scenes)

    @pytest.mark.asyncio
    async def test_rerun_keeps_voice(self, images):
        controller, _ = make_controller(
            analysis=[text_response(analysis_json(1, "Kore")), text_response(analysis_json(2, "Puck"))]
        )

        first = await analysed(controller, images)
        second = await controller.start_analysis()

        assert second.assigned_voice == first.assigned_voice
        assert len(controller.scenes) == 2


class TestSceneOperations:
    """Tests for scene-level operations."""

    @pytest.mark.asyncio
    async def test_standard_flow_end_to_end(self, images):
        controller, renderer = make_controller(analysis=[text_response(analysis_json(1))])
        await analysed(controller, images)

        scenes = await controller.generate_storyboard()
        audio = await controller.generate_speech("scene-1")

        assert len(renderer.calls) == 1
        assert renderer.calls[0]["aspect_ratio"] is AspectRatio.PORTRAIT
        assert renderer.calls[0]["resolution"] is ImageResolution.HIGH
        assert scenes[0].start_image is not None
        assert scenes[0].end_image is None
        assert audio is not None
        assert renderer.speech_calls[0]["voice"] == controller.voice
        assert controller.scenes[0].audio == audio

    @pytest.mark.asyncio
    async def test_storyboard_chains_every_scene(self, images):
        controller, renderer = make_controller(analysis=[text_response(analysis_json(3))])
        controller.set_generation_mode(GenerationMode.START_END)
        await analysed(controller, images, scene_count=3)

        scenes = await controller.generate_storyboard()

        # 2 frames for the first scene, end only for the rest
        assert len(renderer.calls) == 4
        assert scenes[1].start_image == scenes[0].end_image
        assert scenes[2].start_image == scenes[1].end_image

    @pytest.mark.asyncio
    async def test_storyboard_skips_busy_scene(self, images):
        controller, renderer = make_controller(analysis=[text_response(analysis_json(2))])
        await analysed(controller, images, scene_count=2)
        controller.update_scene("scene-1", {"generating_start": True})

        scenes = await controller.generate_storyboard()

        assert len(renderer.calls) == 1
        assert scenes[0].start_image is None
        assert scenes[1].start_image is not None

    @pytest.mark.asyncio
    async def test_frame_not_in_mode_rejected(self, images):
        controller, renderer = make_controller(analysis=[text_response(analysis_json(1))])
        await analysed(controller, images)

        with pytest.raises(ValidationFailure):
            await controller.generate_image("scene-1", FrameKind.MIDDLE)
        assert renderer.calls == []

    @pytest.mark.asyncio
    async def test_busy_frame_not_restarted(self, images):
        controller, renderer = make_controller(analysis=[text_response(analysis_json(1))])
        await analysed(controller, images)
        controller.update_scene("scene-1", {"generating_start": True})

        assert await controller.generate_image("scene-1", FrameKind.START) is None
        scene = await controller.generate_all("scene-1")

        assert renderer.calls == []
        assert scene.start_image is None

    @pytest.mark.asyncio
    async def test_settings_change_applies_to_next_render(self, images):
        controller, renderer = make_controller(analysis=[text_response(analysis_json(1))])
        await analysed(controller, images)

        controller.set_aspect_ratio(AspectRatio.SQUARE)
        await controller.generate_image("scene-1", FrameKind.START)

        assert renderer.calls[0]["aspect_ratio"] is AspectRatio.SQUARE

    @pytest.mark.asyncio
    async def test_edit_and_regenerate(self, images):
        controller, renderer = make_controller(analysis=[text_response(analysis_json(2))])
        controller.set_generation_mode(GenerationMode.INTERMEDIATE)
        await analysed(controller, images, scene_count=2)

        end_prompt = controller.draft_edit_prompt("scene-1", FrameKind.END)
        middle_prompt = controller.draft_edit_prompt("scene-1", FrameKind.MIDDLE)
        assert end_prompt.endswith(END_EDIT_SUFFIX)
        assert middle_prompt.endswith(MIDDLE_EDIT_SUFFIX)
        assert controller.draft_edit_prompt("scene-1", FrameKind.START) == "Handheld selfie POV, shot 1"

        asset = await controller.regenerate("scene-1", FrameKind.END, end_prompt + " Golden hour.")

        assert renderer.calls[0]["prompt"].startswith(end_prompt + " Golden hour.")
        assert controller.scenes[1].start_image == asset

    @pytest.mark.asyncio
    async def test_manual_prompt_edit(self, images):
        controller, _ = make_controller(analysis=[text_response(analysis_json(1))])
        await analysed(controller, images)

        scene = controller.edit_prompt("scene-1", "Close-up of the bottle")

        assert scene.image_prompt == "Close-up of the bottle"
        assert controller.scenes[0].prompt_format is PromptFormat.PLAIN


class TestPromptFormats:
    """Tests for prompt refresh and format switching."""

    @pytest.mark.asyncio
    async def test_switch_to_manifest(self, images):
        controller, _ = make_controller(
            analysis=[text_response(analysis_json(1))],
            prompts=[text_response(json.dumps(manifest_payload()))],
        )
        await analysed(controller, images)

        scene = await controller.switch_prompt_format("scene-1", PromptFormat.MANIFEST)

        assert scene.prompt_format is PromptFormat.MANIFEST
        assert "veo_production_manifest" in json.loads(scene.image_prompt)
        assert scene.updating_prompt is False
        assert scene.last_error is None

    @pytest.mark.asyncio
    async def test_failed_switch_keeps_format(self, images):
        controller, _ = make_controller(
            analysis=[text_response(analysis_json(1))],
            prompts=[text_response("not a manifest")],
        )
        await analysed(controller, images)

        scene = await controller.switch_prompt_format("scene-1", PromptFormat.MANIFEST)

        assert scene.prompt_format is PromptFormat.PLAIN
        assert scene.image_prompt == "Handheld selfie POV, shot 1"
        assert scene.last_error.startswith("Could not switch prompt format:")
        assert scene.updating_prompt is False

    @pytest.mark.asyncio
    async def test_refresh_prompt(self, images):
        controller, _ = make_controller(
            analysis=[text_response(analysis_json(1))],
            prompts=[text_response("The video starts with the provided start frame. New take.")],
        )
        await analysed(controller, images)

        scene = await controller.refresh_prompt("scene-1")

        assert scene.image_prompt.endswith("New take.")
        assert scene.updating_prompt is False

    @pytest.mark.asyncio
    async def test_refresh_failure_recorded(self, images):
        controller, _ = make_controller(
            analysis=[text_response(analysis_json(1))],
            prompts=[FakeApiError(403, "permission denied")],
        )
        await analysed(controller, images)

        scene = await controller.refresh_prompt("scene-1")

        assert scene.image_prompt == "Handheld selfie POV, shot 1"
        assert scene.last_error.startswith("Prompt update failed:")


class TestAccessGate:
    """Tests for the placeholder lock screen."""

    def test_no_code_means_unlocked(self):
        assert AccessGate(code="").unlocked is True

    def test_unlock(self):
        gate = AccessGate(code="studio")

        assert gate.unlocked is False
        assert gate.unlock("wrong") is False
        assert gate.unlock("studio") is True
        assert gate.unlocked is True
