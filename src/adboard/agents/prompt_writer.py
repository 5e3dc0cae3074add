"""Prompt formatter agent: rewrites a scene's script into a video prompt."""

import json
import logging
from dataclasses import dataclass

from ..models import PromptFormat, ProductionManifest, Scene
from ..models.manifest import CONSISTENCY_CHECK, START_FRAME_MANDATE, manifest_template
from .base import BaseAgent

logger = logging.getLogger(__name__)

START_FRAME_OPENING = (
    "The video starts with the provided start frame. Maintain strict consistency in quality, "
    "resolution, and lighting with the start frame! Do not lower resolution."
)
LIP_SYNC_CLAUSE = "The character is speaking with accurate lip-sync."

MANIFEST_LANGUAGE = "English"


@dataclass
class PromptRequest:
    """Scene to rewrite and the target format."""

    scene: Scene
    format: PromptFormat


def _scene_block(scene: Scene) -> str:
    return "\n".join([
        f"Visual: {scene.visual}",
        f"Action: {scene.action}",
        f"Camera: {scene.camera}",
        f"Dialogue: {scene.dialogue}",
    ])


def plain_instruction(scene: Scene) -> str:
    """System instruction for the single-paragraph prompt format."""
    rules = [
        "You are an expert video prompt engineer.",
        "Rewrite the provided scene details into a single, high-quality, English text prompt "
        "for video generation.",
        "",
        "MANDATORY FORMAT RULES:",
        f'1. Start Frame: The prompt MUST START with: "{START_FRAME_OPENING}"',
        "2. Scene Description: Clear, cinematic description of the subject, action and camera "
        "movement based on the provided inputs.",
    ]
    if scene.dialogue.strip():
        rules.append(f'3. Dialogue: The scene has dialogue, so you MUST add: "{LIP_SYNC_CLAUSE}"')
    rules.extend(["", "Input Data:", _scene_block(scene)])
    return "\n".join(rules)


def manifest_instruction() -> str:
    """System instruction for the structured manifest format."""
    return "\n".join([
        "You are an elite Video Prompt Engineer for the 'Veo Production Manifest V4.0'.",
        "",
        "Convert the user's Scene Details (Visual, Action, Camera, Dialogue) into a STRICT JSON "
        'document called "veo_production_manifest".',
        "",
        "RULES:",
        "1. Output Format: Pure JSON only. No Markdown. No Explanations.",
        f"2. Language: ALL content inside the JSON must be {MANIFEST_LANGUAGE.upper()}. "
        "Translate any other-language inputs accurately.",
        "3. Mandatory Consistency Check: strictly enforce consistency with the Start Frame.",
        f'   - In director_mandates.positive_mandates include: "{START_FRAME_MANDATE}"',
        "   - Every timeline_script entry's elements.visuals MUST carry a consistency_check field "
        f'stating exactly: "{CONSISTENCY_CHECK}"',
        "4. Structure: follow the schema template below.",
        "",
        "SCHEMA TEMPLATE:",
        json.dumps(manifest_template(), indent=2),
    ])


class PromptFormatter(BaseAgent[PromptRequest, str]):
    """Agent that renders a scene's script fields as a plain or manifest prompt."""

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "PromptFormatter"

    @property
    def system_prompt(self) -> str:
        return manifest_instruction()

    async def render(self, scene: Scene, fmt: PromptFormat) -> str:
        return await self.run(PromptRequest(scene=scene, format=fmt))

    async def run(self, input_data: PromptRequest) -> str:
        """Rewrite the scene into the requested prompt format.

        Returns:
            Plain prompt text, or the serialized manifest JSON.

        Raises:
            MalformedResponse: If a manifest response is not a valid manifest.
        """
        scene = input_data.scene
        self._logger.info(f"Rendering {input_data.format.value} prompt for scene {scene.id}")

        if input_data.format is PromptFormat.PLAIN:
            response = await self._create_message(
                ["Generate the plain text prompt."],
                system_prompt=plain_instruction(scene),
            )
            return response.strip() or scene.image_prompt

        response = await self._create_message(
            [f"Convert this scene to a production manifest:\n{_scene_block(scene)}"],
            response_mime_type="application/json",
        )
        manifest = ProductionManifest.from_text(response).enforce_consistency()
        return manifest.to_text()
