"""Studio controller: owns the session state and exposes its mutations."""

import logging
import random
from typing import Any, Mapping, Optional, Tuple

from .agents import AnalysisInput, ProductAnalyst, PromptFormatter
from .config import config
from .errors import ValidationFailure
from .models import (
    AnalysisResult,
    AspectRatio,
    FrameKind,
    GeneratedAsset,
    GenerationMode,
    ImageResolution,
    ProductContext,
    PromptFormat,
    Scene,
    StudioState,
    StudioStep,
)
from .models.project import clamp_scene_count
from .services.gemini import GeminiClient
from .storyboard import ConsistencyPropagator, SceneStateStore

logger = logging.getLogger(__name__)

END_EDIT_SUFFIX = " (Final frame. Maintain consistency with Start frame. NO TEXT.)"
MIDDLE_EDIT_SUFFIX = " (Technical storyboard sketch sheet, English annotations)"


class AccessGate:
    """Client-side lock screen placeholder.

    Compares a typed code against ``ADBOARD_ACCESS_CODE``. It keeps casual
    users out of a shared studio and is not an authentication mechanism.
    """

    def __init__(self, code: Optional[str] = None) -> None:
        self._code = config.access_code if code is None else code
        self._unlocked = not self._code

    @property
    def unlocked(self) -> bool:
        return self._unlocked

    def unlock(self, attempt: str) -> bool:
        if not self._unlocked and attempt == self._code:
            self._unlocked = True
        return self._unlocked


class StudioController:
    """Single owner of a studio session.

    Product fields and settings change through their setters, scenes only
    through :meth:`update_scene` (which targets one scene by id). Generation
    entry points refuse to start a (scene, frame) pair that is already
    running.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        analyst: Optional[ProductAnalyst] = None,
        formatter: Optional[PromptFormatter] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client or GeminiClient()
        self.state = StudioState()
        self.store = SceneStateStore()
        self._analyst = analyst or ProductAnalyst(self._client, rng=rng)
        self._formatter = formatter or PromptFormatter(self._client)
        self._propagator = ConsistencyPropagator(
            self._client, self.store, self.state.product, self.state.settings
        )

    # -- product and settings ------------------------------------------------

    @property
    def product(self) -> ProductContext:
        return self.state.product

    def set_product_field(self, field: str, value: Any) -> None:
        """Set one product field (images, title, reference video, ...)."""
        if field not in ProductContext.model_fields:
            raise ValidationFailure(f"Unknown product field: {field}")
        setattr(self.state.product, field, value)

    def set_aspect_ratio(self, value: AspectRatio) -> None:
        self.state.settings.aspect_ratio = AspectRatio(value)

    def set_resolution(self, value: ImageResolution) -> None:
        self.state.settings.image_resolution = ImageResolution(value)

    def set_generation_mode(self, value: GenerationMode) -> None:
        self.state.settings.generation_mode = GenerationMode(value)

    def set_scene_count(self, value: int) -> int:
        self.state.settings.scene_count = clamp_scene_count(value)
        return self.state.settings.scene_count

    def adjust_scene_count(self, delta: int) -> int:
        """Shift the requested scene count by ``delta``, clamped to 1-10."""
        return self.set_scene_count(self.state.settings.scene_count + delta)

    # -- analysis --------------------------------------------------------------

    @property
    def voice(self) -> str:
        """Narrator voice of this session."""
        if self.state.analysis is not None:
            return self.state.analysis.assigned_voice
        return self._analyst.session_voice

    async def start_analysis(self) -> Optional[AnalysisResult]:
        """Analyse the product and seed the storyboard.

        Failures set ``state.error_message`` and return to the input step.

        Returns:
            The analysis result, or None if it failed.
        """
        if not self.product.images:
            self.state.error_message = "Upload at least one product image."
            logger.warning("Analysis rejected: no product images")
            return None

        self.state.is_analyzing = True
        self.state.active_step = StudioStep.STORYBOARD
        self.state.error_message = None

        try:
            result = await self._analyst.run(
                AnalysisInput(product=self.product, scene_count=self.state.settings.scene_count)
            )
        except Exception as e:
            logger.error(f"Analysis failed: {e}")
            self.state.error_message = f"Analysis failed, please retry: {e}"
            self.state.is_analyzing = False
            self.state.active_step = StudioStep.INPUT
            return None

        self.store.replace_all(draft.to_scene() for draft in result.scenes)
        self.state.analysis = result
        self.state.is_analyzing = False
        self.state.settings.scene_count = clamp_scene_count(len(result.scenes))
        return result

    # -- scenes ----------------------------------------------------------------

    @property
    def scenes(self) -> Tuple[Scene, ...]:
        return self.store.get()

    def update_scene(self, scene_id: str, fields: Mapping[str, Any]) -> Scene:
        return self.store.update(scene_id, fields)

    def _check_frame(self, kind: FrameKind) -> None:
        mode = self.state.settings.generation_mode
        if kind not in mode.frames:
            raise ValidationFailure(f"{kind.value} frames are not used in {mode.value} mode")

    async def generate_all(self, scene_id: str) -> Scene:
        """Generate every missing frame of one scene."""
        scene = self.store.find(scene_id)
        if scene.is_busy:
            logger.warning(f"Scene {scene_id} is already generating")
            return scene
        return await self._propagator.generate_all(scene_id)

    async def generate_storyboard(self) -> Tuple[Scene, ...]:
        """Generate every missing frame of every scene, in order."""
        for scene in self.store.get():
            await self.generate_all(scene.id)
        return self.store.get()

    async def generate_image(
        self,
        scene_id: str,
        kind: FrameKind,
        prompt_override: Optional[str] = None,
    ) -> Optional[GeneratedAsset]:
        """Generate (or regenerate) a single frame."""
        self._check_frame(kind)
        if self.store.find(scene_id).is_generating(kind):
            logger.warning(f"Scene {scene_id}: {kind.value} frame is already generating")
            return None
        return await self._propagator.generate_image(scene_id, kind, prompt_override=prompt_override)

    def draft_edit_prompt(self, scene_id: str, kind: FrameKind) -> str:
        """Return an editable prompt for regenerating one frame."""
        scene = self.store.find(scene_id)
        prompt = scene.image_prompt
        if scene.prompt_format is PromptFormat.PLAIN:
            if kind is FrameKind.END:
                prompt += END_EDIT_SUFFIX
            elif kind is FrameKind.MIDDLE:
                prompt += MIDDLE_EDIT_SUFFIX
        return prompt

    async def regenerate(self, scene_id: str, kind: FrameKind, prompt: str) -> Optional[GeneratedAsset]:
        """Regenerate one frame from an edited prompt."""
        return await self.generate_image(scene_id, kind, prompt_override=prompt)

    async def generate_speech(self, scene_id: str) -> Optional[GeneratedAsset]:
        """Synthesize the scene's dialogue with the session voice."""
        if self.store.find(scene_id).generating_audio:
            logger.warning(f"Scene {scene_id}: speech is already generating")
            return None
        return await self._propagator.generate_speech(scene_id, self.voice)

    # -- prompts ---------------------------------------------------------------

    def edit_prompt(self, scene_id: str, text: str) -> Scene:
        """Replace the stored prompt text by hand."""
        return self.store.update(scene_id, {"image_prompt": text})

    async def refresh_prompt(self, scene_id: str) -> Scene:
        """Re-render the prompt from the script fields in the current format."""
        scene = self.store.find(scene_id)
        if scene.updating_prompt:
            return scene

        self.store.update(scene_id, {"updating_prompt": True, "last_error": None})
        try:
            text = await self._formatter.render(scene, scene.prompt_format)
            self.store.update(scene_id, {"image_prompt": text})
        except Exception as e:
            logger.error(f"Scene {scene_id}: prompt refresh failed: {e}")
            self.store.update(scene_id, {"last_error": f"Prompt update failed: {e}"})
        finally:
            self.store.update(scene_id, {"updating_prompt": False})
        return self.store.find(scene_id)

    async def switch_prompt_format(self, scene_id: str, fmt: PromptFormat) -> Scene:
        """Switch the scene's prompt format and re-render its prompt.

        The format only changes together with the new prompt text; on failure
        the scene keeps its previous format and prompt.
        """
        fmt = PromptFormat(fmt)
        scene = self.store.find(scene_id)
        if scene.updating_prompt:
            return scene

        self.store.update(scene_id, {"updating_prompt": True, "last_error": None})
        try:
            text = await self._formatter.render(scene, fmt)
            self.store.update(scene_id, {"prompt_format": fmt, "image_prompt": text})
        except Exception as e:
            logger.error(f"Scene {scene_id}: switching to {fmt.value} failed: {e}")
            self.store.update(scene_id, {"last_error": f"Could not switch prompt format: {e}"})
        finally:
            self.store.update(scene_id, {"updating_prompt": False})
        return self.store.find(scene_id)
