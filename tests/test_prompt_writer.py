"""Tests for the prompt formatter and production manifest."""

import json

import pytest

from adboard.agents import PromptFormatter
from adboard.agents.prompt_writer import LIP_SYNC_CLAUSE, START_FRAME_OPENING, plain_instruction
from adboard.errors import MalformedResponse
from adboard.models import PromptFormat, ProductionManifest
from adboard.models.manifest import CONSISTENCY_CHECK, START_FRAME_MANDATE, strip_code_fences
from adboard.services.gemini import GeminiClient

from .fakes import fake_genai, manifest_payload, no_sleep, text_response


def make_formatter(*responses):
    genai_client = fake_genai(*responses)
    formatter = PromptFormatter(GeminiClient(client=genai_client, sleep=no_sleep))
    return formatter, genai_client.aio.models.generate_content


class TestPlainFormat:
    """Tests for the single-paragraph format."""

    @pytest.mark.asyncio
    async def test_returns_model_text(self, sample_scenes):
        formatter, generate = make_formatter(text_response(f"  {START_FRAME_OPENING} A woman smiles.  "))

        text = await formatter.render(sample_scenes[0], PromptFormat.PLAIN)

        assert text == f"{START_FRAME_OPENING} A woman smiles."
        instruction = generate.call_args.kwargs["config"].system_instruction
        assert "Visual: Visual 1" in str(instruction)

    @pytest.mark.asyncio
    async def test_empty_response_keeps_prompt(self, sample_scenes):
        formatter, _ = make_formatter(text_response(""))

        text = await formatter.render(sample_scenes[0], PromptFormat.PLAIN)

        assert text == "Prompt 1"

    def test_lip_sync_only_with_dialogue(self, sample_scenes):
        speaking = sample_scenes[0]
        silent = speaking.model_copy(update={"dialogue": ""})

        assert LIP_SYNC_CLAUSE in plain_instruction(speaking)
        assert LIP_SYNC_CLAUSE not in plain_instruction(silent)
        assert START_FRAME_OPENING in plain_instruction(silent)


class TestManifestFormat:
    """Tests for the structured manifest format."""

    @pytest.mark.asyncio
    async def test_manifest_carries_checkpoints(self, sample_scenes):
        formatter, generate = make_formatter(text_response(json.dumps(manifest_payload())))

        text = await formatter.render(sample_scenes[0], PromptFormat.MANIFEST)

        manifest = ProductionManifest.from_text(text)
        assert manifest.consistency_checks() == [CONSISTENCY_CHECK]
        assert "0s, 2s, 4s, 6s" in manifest.consistency_checks()[0]
        mandates = manifest.veo_production_manifest.director_mandates.positive_mandates
        assert mandates[0] == START_FRAME_MANDATE
        assert generate.call_args.kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_unknown_sections_preserved(self, sample_scenes):
        formatter, _ = make_formatter(text_response("```json\n" + json.dumps(manifest_payload()) + "\n```"))

        text = await formatter.render(sample_scenes[0], PromptFormat.MANIFEST)

        data = json.loads(text)["veo_production_manifest"]
        assert data["global_settings"]["output_specifications"]["resolution"] == "1080p"
        entry = data["timeline_script"][0]
        assert entry["elements"]["camera"]["camera_movement"]["primary_movement"] == "Slow push in"

    @pytest.mark.asyncio
    async def test_malformed_manifest_rejected(self, sample_scenes):
        formatter, _ = make_formatter(text_response('{"veo_production_manifest": {"shot_summary": "x"}}'))

        with pytest.raises(MalformedResponse):
            await formatter.render(sample_scenes[0], PromptFormat.MANIFEST)

    @pytest.mark.asyncio
    async def test_non_json_rejected(self, sample_scenes):
        formatter, generate = make_formatter(text_response("Here is your manifest!"))

        with pytest.raises(MalformedResponse):
            await formatter.render(sample_scenes[0], PromptFormat.MANIFEST)
        assert generate.await_count == 1


class TestProductionManifest:
    """Tests for manifest parsing helpers."""

    def test_enforce_is_idempotent(self):
        manifest = ProductionManifest.model_validate(manifest_payload())

        manifest.enforce_consistency().enforce_consistency()

        mandates = manifest.veo_production_manifest.director_mandates.positive_mandates
        assert mandates.count(START_FRAME_MANDATE) == 1

    def test_array_rejected(self):
        with pytest.raises(MalformedResponse):
            ProductionManifest.from_text("[1, 2, 3]")

    def test_strip_code_fences(self):
        assert strip_code_fences("```json\n{}\n```") == "{}"
        assert strip_code_fences("  {}  ") == "{}"
