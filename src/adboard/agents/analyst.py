"""Product analysis agent: marketing strategy and scene drafts."""

import json
import logging
import random
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from google.genai import types
from pydantic import ValidationError

from ..errors import MalformedResponse, ValidationFailure
from ..models import AnalysisResult, ProductContext
from ..models.manifest import strip_code_fences
from ..models.project import VOICE_OPTIONS, clamp_scene_count
from ..services.gemini import GeminiClient, media_part
from .base import BaseAgent

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE_PATH = Path(__file__).parent.parent / "prompts" / "analysis.txt"

REFERENCE_LANGUAGE = "Chinese"


def _load_system_prompt(reference_language: str = REFERENCE_LANGUAGE) -> str:
    """Load the system prompt from template file."""
    if PROMPT_TEMPLATE_PATH.exists():
        template = PROMPT_TEMPLATE_PATH.read_text(encoding="utf-8")
    else:
        template = """You are a TikTok e-commerce creative team.
Write a product video script as strict JSON with no markdown formatting.
Analysis fields and shot descriptions are written in {reference_language};
dialogue is English with a {reference_language} dialogueTranslation."""
    return template.replace("{reference_language}", reference_language)


def _string(description: Optional[str] = None) -> types.Schema:
    return types.Schema(type=types.Type.STRING, description=description)


SCENE_FIELDS = ["id", "visual", "action", "camera", "dialogue", "dialogueTranslation", "prompt"]
RESULT_FIELDS = [
    "productType",
    "sellingPoints",
    "targetAudience",
    "hook",
    "painPoints",
    "strategy",
    "assignedVoice",
    "scenes",
]

ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "productType": _string("Detected product type"),
        "sellingPoints": _string("Main selling points"),
        "targetAudience": _string("Target audience"),
        "hook": _string("Opening hook of the video"),
        "painPoints": _string("User pain points solved"),
        "strategy": _string("Six-dimension marketing strategy"),
        "assignedVoice": _string("Voice-over voice name (e.g. Kore, Fenrir)"),
        "scenes": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "id": _string(),
                    "visual": _string(),
                    "action": _string(),
                    "camera": _string(),
                    "dialogue": _string("English dialogue"),
                    "dialogueTranslation": _string("Reference-language dialogue gloss"),
                    "prompt": types.Schema(
                        type=types.Type.OBJECT,
                        properties={"imagePrompt": _string()},
                        required=["imagePrompt"],
                    ),
                },
                required=SCENE_FIELDS,
                property_ordering=SCENE_FIELDS,
            ),
        ),
    },
    required=RESULT_FIELDS,
    property_ordering=RESULT_FIELDS,
)


@dataclass
class AnalysisInput:
    """Input data for the analyst agent."""

    product: ProductContext
    scene_count: int = 1


class ProductAnalyst(BaseAgent[AnalysisInput, AnalysisResult]):
    """Agent that turns product media into a marketing strategy and scene drafts.

    A voice is drawn once per analyst (one studio session) and overrides
    whatever voice the model suggests, so repeated analyses keep the same
    narrator.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        rng: Optional[random.Random] = None,
        reference_language: str = REFERENCE_LANGUAGE,
    ) -> None:
        super().__init__(client)
        self._rng = rng or random.Random()
        self._reference_language = reference_language
        self._session_voice: Optional[str] = None

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "ProductAnalyst"

    @property
    def system_prompt(self) -> str:
        return _load_system_prompt(self._reference_language)

    @property
    def session_voice(self) -> str:
        """Voice used for every scene in this session."""
        if self._session_voice is None:
            self._session_voice = self._rng.choice(VOICE_OPTIONS)
            self._logger.info(f"Assigned session voice: {self._session_voice}")
        return self._session_voice

    async def run(self, input_data: AnalysisInput) -> AnalysisResult:
        """Analyse the product and draft the storyboard.

        Args:
            input_data: Product context and requested scene count.

        Returns:
            Validated analysis result with the session voice applied.

        Raises:
            ValidationFailure: If no product image was supplied.
            MalformedResponse: If the response cannot be parsed (never retried).
            TransportUnavailable: If the model stays unavailable after retries.
        """
        product = input_data.product
        if not product.images:
            raise ValidationFailure("Upload at least one product image before analysis.")

        voice = self.session_voice
        contents = self._build_contents(product, clamp_scene_count(input_data.scene_count))
        self._logger.info(
            f"Analysing product '{product.title or 'untitled'}' "
            f"({len(product.images)} product, {len(product.model_images)} model, "
            f"{len(product.background_images)} background images, "
            f"video: {'yes' if product.reference_video else 'no'})"
        )

        response = await self._create_message(
            contents,
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
        )

        result = self._parse_response(response)
        result.assigned_voice = voice
        self._logger.info(f"Drafted {len(result.scenes)} scenes")
        return result

    def _build_contents(self, product: ProductContext, scene_count: int) -> list:
        """Order media as product, model reference, background reference, video, then text."""
        contents = [media_part(image) for image in product.images]
        contents.extend(media_part(image) for image in product.model_images)
        contents.extend(media_part(image) for image in product.background_images)
        if product.reference_video:
            contents.append(media_part(product.reference_video))

        contents.append(types.Part.from_text(text=self._build_prompt(product, scene_count)))
        return contents

    def _build_prompt(self, product: ProductContext, scene_count: int) -> str:
        prompt_parts = [
            "Input Data:",
            f"- First {len(product.images)} images: PRODUCT IMAGES.",
            f"- Next {len(product.model_images)} images: REFERENCE MODEL (Use this person for ALL scenes).",
            f"- Next {len(product.background_images)} images: REFERENCE BACKGROUND (Use this location for ALL scenes).",
        ]

        if product.reference_video:
            prompt_parts.extend([
                "- Last item is a REFERENCE VIDEO.",
                "",
                "[INSTRUCTION]:",
                "1. Analyze the REFERENCE VIDEO frame-by-frame for pacing, editing style, and viral hook structure.",
                "2. IGNORE the user's default scene count setting. Instead, DETERMINE the optimal number "
                "of scenes based on the reference video's duration and complexity.",
                "3. Generate a script that matches the reference video's style/vibe but sells the current PRODUCT.",
            ])
        else:
            prompt_parts.extend([
                "",
                f"Generate a viral TikTok video script with exactly {scene_count} scenes.",
            ])

        prompt_parts.extend([
            "",
            "Product Info:",
            f"Title: {product.title or 'Not provided'}",
            f"Description: {product.description or 'Not provided'}",
            f"Creative ideas: {product.creative_ideas or 'Free choice'}",
            "",
            "If a Reference Model or Background is provided, say \"matching reference model\" or "
            "\"matching reference background\" in the imagePrompt and describe its visual traits in "
            "detail to keep every scene consistent.",
        ])
        return "\n".join(prompt_parts)

    def _parse_response(self, response: str) -> AnalysisResult:
        """Parse and validate the analysis JSON.

        Raises:
            MalformedResponse: If JSON is invalid or any required field is missing.
        """
        json_str = strip_code_fences(response or "")

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            self._logger.error(f"Failed to parse JSON: {e}")
            self._logger.debug(f"Raw response: {response}")
            raise MalformedResponse("Could not parse the analysis result returned by the model. Please retry.") from e

        if not isinstance(data, dict):
            raise MalformedResponse("Analysis result must be a JSON object")

        try:
            result = AnalysisResult.model_validate(data)
        except ValidationError as e:
            self._logger.error(f"Analysis result failed validation: {e}")
            raise MalformedResponse(f"Analysis result is missing required fields: {e}") from e

        self._ensure_unique_ids(result)
        return result

    def _ensure_unique_ids(self, result: AnalysisResult) -> None:
        seen = set()
        for i, draft in enumerate(result.scenes):
            scene_id = draft.id.strip()
            if not scene_id or scene_id in seen:
                scene_id = f"scene-{i + 1}-{uuid.uuid4().hex[:8]}"
            draft.id = scene_id
            seen.add(scene_id)
