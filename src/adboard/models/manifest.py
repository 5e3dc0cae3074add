"""Structured video-prompt manifest."""

import json
from typing import Any, Dict, List
from pydantic import BaseModel, Field, ValidationError

from ..errors import MalformedResponse

MANIFEST_VERSION = "4.0"
CHECKPOINTS = ("0s", "2s", "4s", "6s")
CONSISTENCY_CHECK = (
    f"At {', '.join(CHECKPOINTS)}: Ensure absolute consistency in lighting, resolution, "
    "and character appearance with the start frame. Do not lower resolution."
)
START_FRAME_MANDATE = "The video MUST start with the provided start frame."


class _Open(BaseModel):
    """Base for manifest sections; unknown keys are kept verbatim."""

    class Config:
        """Pydantic config."""
        extra = "allow"


class ManifestVisuals(_Open):
    subject_action: str = ""
    background_action: str = ""
    consistency_check: str = ""


class ManifestElements(_Open):
    visuals: ManifestVisuals


class TimelineEntry(_Open):
    time_start: str = "0.0s"
    time_end: str = "8.0s"
    description: str = ""
    elements: ManifestElements


class DirectorMandates(_Open):
    positive_mandates: List[str] = Field(default_factory=list)
    negative_mandates: List[str] = Field(default_factory=list)


class ManifestBody(_Open):
    version: str = MANIFEST_VERSION
    shot_summary: str
    director_mandates: DirectorMandates = Field(default_factory=DirectorMandates)
    timeline_script: List[TimelineEntry] = Field(..., min_length=1)


class ProductionManifest(BaseModel):
    """Root document; serialized under the ``veo_production_manifest`` key."""

    veo_production_manifest: ManifestBody

    @classmethod
    def from_text(cls, text: str) -> "ProductionManifest":
        """Parse and validate manifest JSON.

        Raises:
            MalformedResponse: If the text is not JSON or misses required sections.
        """
        try:
            data = json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise MalformedResponse(f"Manifest is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedResponse("Manifest must be a JSON object")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(f"Manifest is missing required fields: {e}") from e

    def to_text(self) -> str:
        return json.dumps(self.model_dump(mode="json"), indent=2, ensure_ascii=False)

    def enforce_consistency(self) -> "ProductionManifest":
        """Stamp the start-frame mandate and the checkpoint clause on every entry."""
        body = self.veo_production_manifest
        if START_FRAME_MANDATE not in body.director_mandates.positive_mandates:
            body.director_mandates.positive_mandates.insert(0, START_FRAME_MANDATE)
        for entry in body.timeline_script:
            entry.elements.visuals.consistency_check = CONSISTENCY_CHECK
        return self

    def consistency_checks(self) -> List[str]:
        return [
            entry.elements.visuals.consistency_check
            for entry in self.veo_production_manifest.timeline_script
        ]


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence wrappers from a model response."""
    cleaned = text.replace("```json", "").replace("```JSON", "").replace("```", "")
    return cleaned.strip()


def manifest_template() -> Dict[str, Any]:
    """Schema template shown to the model."""
    return {
        "veo_production_manifest": {
            "version": MANIFEST_VERSION,
            "shot_summary": "[English summary of action and setting]",
            "global_settings": {
                "input_assets": {"reference_image": "Start Frame"},
                "output_specifications": {
                    "resolution": "1080p",
                    "aspect_ratio_lock": {"enabled": True},
                    "color_space": "Rec. 2020",
                    "dynamic_range": "HDR",
                },
            },
            "director_mandates": {
                "positive_mandates": [
                    START_FRAME_MANDATE,
                    "Maintenance of texture, lighting, and resolution from the start "
                    "frame is critical at 0s, 2s, 4s, and 6s.",
                    "[Add specific visual mandates based on input]",
                ],
                "negative_mandates": [
                    "NO morphing of character features.",
                    "NO lowering of resolution or quality.",
                ],
            },
            "aesthetic_filter": {
                "name": "[e.g., Cinematic Hyper-Realism, Found Footage]",
                "visual_mandates": {
                    "lighting_style": "[e.g., Natural, Low-key, Studio]",
                    "atmosphere": "[e.g., Clean, Hazy, Vibrant]",
                    "color_palette": "[e.g., Matches start frame]",
                },
            },
            "timeline_script": [
                {
                    "time_start": "0.0s",
                    "time_end": "8.0s",
                    "description": "[Full scene description]",
                    "elements": {
                        "visuals": {
                            "subject_action": "[Translated Action]",
                            "background_action": "[Background details]",
                            "consistency_check": CONSISTENCY_CHECK,
                        },
                        "camera": {
                            "shot_composition": {"shot_type": "[e.g. Wide, Close-up]", "angle": "..."},
                            "camera_movement": {
                                "primary_movement": "[Translated Camera Move]",
                                "speed": "[e.g. Slow, Fast]",
                            },
                        },
                        "audio_scape": {
                            "dialogue": {"transcript": "[English Dialogue]"},
                            "sfx": ["[Sound effects]"],
                            "ambient": "[Ambient sounds]",
                        },
                    },
                }
            ],
        }
    }
