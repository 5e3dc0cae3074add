"""Per-scene frame generation with continuity across frames and scenes."""

import asyncio
import logging
from typing import List, Optional

from ..models import (
    FrameKind,
    GeneratedAsset,
    GenerationMode,
    ImageResolution,
    ProductContext,
    PromptFormat,
    Scene,
    StudioSettings,
)
from ..models.scene import FRAME_FLAGS, FRAME_SLOTS
from ..services.gemini import GeminiClient, ReferenceImage, resolve_voice
from .store import SceneStateStore

logger = logging.getLogger(__name__)

MAX_PRODUCT_REFERENCES = 2

MODEL_HINT = " (Use the provided Reference Model image for the character)."
BACKGROUND_HINT = " (Use the provided Reference Background image for the environment)."
SKETCH_DIRECTIVE = (
    " (Technical storyboard sketch sheet, rough line art style, English annotations only. "
    "Break down the action: {action} into keyframes. NO realistic photos, NO photorealism, "
    "monochrome sketch style.)"
)
START_LAYOUT_HINT = " (Reference the provided Start Frame for environment layout and character features.)"
PHOTOREAL_DIRECTIVE = (
    " (Photorealistic, 8k uhd, cinematic lighting. NO TEXT, NO SUBTITLES, NO WATERMARK, "
    "pure photography.)"
)
END_CONSISTENCY_DIRECTIVE = (
    " (Final frame of the action. STRICT VISUAL CONSISTENCY REQUIRED: You must use the EXACT "
    "SAME BACKGROUND (room, furniture, lighting) and CHARACTER as the provided reference image "
    "(Start Frame). Do not change the environment. Same location, different angle/action only.)"
)


def build_frame_prompt(
    scene: Scene,
    kind: FrameKind,
    product: ProductContext,
    prompt_override: Optional[str] = None,
    start_image: Optional[GeneratedAsset] = None,
) -> str:
    """Return the prompt sent for one frame.

    Plain prompts get kind-specific style directives appended; manifest
    prompts are sent unchanged because the manifest carries its own mandates.
    """
    prompt = prompt_override or scene.image_prompt
    if scene.prompt_format is PromptFormat.MANIFEST:
        return prompt

    if product.model_images and "Reference Model" not in prompt:
        prompt += MODEL_HINT
    if product.background_images and "Reference Background" not in prompt:
        prompt += BACKGROUND_HINT

    if kind is FrameKind.MIDDLE:
        prompt += SKETCH_DIRECTIVE.format(action=scene.action)
        if start_image is not None:
            prompt += START_LAYOUT_HINT
        return prompt

    prompt += PHOTOREAL_DIRECTIVE
    if kind is FrameKind.END:
        prompt += END_CONSISTENCY_DIRECTIVE
    return prompt


def build_reference_images(
    scene: Scene,
    kind: FrameKind,
    product: ProductContext,
    start_image: Optional[GeneratedAsset] = None,
) -> List[ReferenceImage]:
    """Return reference images in priority order.

    Model references, then background references, then up to two product
    images. End and middle frames put the start frame first so the client's
    reference cap never drops it; middle frames also append the end frame.
    """
    references: List[ReferenceImage] = []
    references.extend(product.model_images)
    references.extend(product.background_images)
    references.extend(product.images[:MAX_PRODUCT_REFERENCES])

    if kind in (FrameKind.MIDDLE, FrameKind.END) and start_image is not None:
        references.insert(0, start_image)
    if kind is FrameKind.MIDDLE and scene.end_image is not None:
        references.append(scene.end_image)
    return references


def frame_resolution(kind: FrameKind, settings: StudioSettings) -> ImageResolution:
    """Middle frames are drafts and always render at the lowest tier."""
    if kind is FrameKind.MIDDLE:
        return ImageResolution.lowest()
    return settings.image_resolution


class ConsistencyPropagator:
    """Generates scene frames in dependency order and carries continuity forward.

    Reads ``product`` and ``settings`` at call time, so changes made by the
    owning controller apply to the next generation.
    """

    def __init__(
        self,
        client: GeminiClient,
        store: SceneStateStore,
        product: ProductContext,
        settings: StudioSettings,
    ) -> None:
        self._client = client
        self._store = store
        self._product = product
        self._settings = settings

    async def generate_all(self, scene_id: str) -> Scene:
        """Generate every missing frame the active mode allows for one scene.

        The start frame is generated (and awaited) first; middle and end then
        run concurrently against that start frame. If no start frame can be
        produced, dependent frames are not attempted.

        Returns:
            Snapshot of the scene afterwards.
        """
        scene = self._store.find(scene_id)
        mode = self._settings.generation_mode

        start_image = scene.start_image
        if start_image is None:
            start_image = await self.generate_image(scene_id, FrameKind.START)

        if start_image is None:
            if mode is not GenerationMode.STANDARD:
                logger.warning(f"Scene {scene_id}: no start frame, skipping dependent frames")
            return self._store.find(scene_id)

        pending = []
        if mode is GenerationMode.INTERMEDIATE and scene.middle_image is None:
            pending.append(self.generate_image(scene_id, FrameKind.MIDDLE, start_image_override=start_image))
        if mode.chains_scenes and scene.end_image is None:
            pending.append(self.generate_image(scene_id, FrameKind.END, start_image_override=start_image))

        await asyncio.gather(*pending)
        return self._store.find(scene_id)

    async def generate_image(
        self,
        scene_id: str,
        kind: FrameKind,
        prompt_override: Optional[str] = None,
        start_image_override: Optional[GeneratedAsset] = None,
    ) -> Optional[GeneratedAsset]:
        """Render one frame and store it on the scene.

        Failures are recorded on the scene as ``last_error`` and not raised.
        The kind's loading flag is always cleared afterwards.

        Args:
            scene_id: Target scene.
            kind: Which frame to render.
            prompt_override: Prompt to use instead of the stored one.
            start_image_override: Start frame to anchor on instead of the stored one.

        Returns:
            The new asset, or None if generation failed.
        """
        scene = self._store.find(scene_id)
        flag = FRAME_FLAGS[kind]
        self._store.update(scene_id, {flag: True, "last_error": None})

        try:
            start_image = start_image_override or scene.start_image
            prompt = build_frame_prompt(scene, kind, self._product, prompt_override, start_image)
            references = build_reference_images(scene, kind, self._product, start_image)
            resolution = frame_resolution(kind, self._settings)

            logger.info(f"Scene {scene_id}: generating {kind.value} frame at {resolution.value}")
            asset = await self._client.render_image(
                prompt,
                self._settings.aspect_ratio,
                resolution,
                references,
            )

            self._store.update(scene_id, {FRAME_SLOTS[kind]: asset})
            if kind is FrameKind.END and self._settings.generation_mode.chains_scenes:
                self._propagate_end_frame(scene_id, asset)
            return asset

        except Exception as e:
            logger.error(f"Scene {scene_id}: {kind.value} frame failed: {e}")
            self._store.update(scene_id, {"last_error": f"Image generation failed: {e}"})
            return None

        finally:
            self._store.update(scene_id, {flag: False})

    def _propagate_end_frame(self, scene_id: str, asset: GeneratedAsset) -> None:
        next_id = self._store.next_scene_id(scene_id)
        if next_id is None:
            return
        self._store.update(next_id, {"start_image": asset})
        logger.info(f"Scene {scene_id}: end frame set as start frame of {next_id}")

    async def generate_speech(self, scene_id: str, voice: Optional[str]) -> Optional[GeneratedAsset]:
        """Synthesize the scene's dialogue and store the audio.

        Returns:
            The audio asset, or None if the scene has no dialogue or synthesis failed.
        """
        scene = self._store.find(scene_id)
        if not scene.dialogue.strip():
            logger.info(f"Scene {scene_id}: no dialogue, skipping speech")
            return None

        self._store.update(scene_id, {"generating_audio": True, "last_error": None})
        try:
            asset = await self._client.synthesize_speech(scene.dialogue, resolve_voice(voice))
            self._store.update(scene_id, {"audio": asset})
            return asset
        except Exception as e:
            logger.error(f"Scene {scene_id}: speech failed: {e}")
            self._store.update(scene_id, {"last_error": f"Speech generation failed: {e}"})
            return None
        finally:
            self._store.update(scene_id, {"generating_audio": False})
