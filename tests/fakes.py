"""Fakes for the Gemini SDK and canned model responses."""

import base64
import json
from types import SimpleNamespace
from typing import Any, Dict, List
from unittest.mock import AsyncMock

from adboard.models import AssetType, GeneratedAsset


class FakeApiError(Exception):
    """Stands in for an SDK error carrying an HTTP status code."""

    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"{code} error")
        self.code = code


async def no_sleep(delay: float) -> None:
    return None


def image_response(data: bytes = b"\x89PNG-fake", mime_type: str = "image/png") -> SimpleNamespace:
    """Response shaped like ``GenerateContentResponse`` with one inline image."""
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))], text=None)


def text_response(text: str) -> SimpleNamespace:
    return SimpleNamespace(candidates=[], text=text)


def empty_response() -> SimpleNamespace:
    part = SimpleNamespace(inline_data=None, text="I cannot draw that.")
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))], text=None)


def fake_genai(*responses: Any) -> SimpleNamespace:
    """Fake ``genai.Client`` whose ``aio.models.generate_content`` yields ``responses``."""
    generate = AsyncMock(side_effect=list(responses))
    return SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))


def make_asset(tag: str) -> GeneratedAsset:
    return GeneratedAsset(
        kind=AssetType.IMAGE,
        data=base64.b64encode(tag.encode()).decode("ascii"),
        mime_type="image/png",
    )


class FakeRenderer:
    """Records ``render_image`` / ``synthesize_speech`` calls made by the propagator."""

    def __init__(self, fail_markers: tuple = ()) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.speech_calls: List[Dict[str, Any]] = []
        self.fail_markers = fail_markers
        self._count = 0

    async def render_image(self, prompt, aspect_ratio, resolution, reference_images=()):
        self.calls.append({
            "prompt": prompt,
            "aspect_ratio": aspect_ratio,
            "resolution": resolution,
            "references": list(reference_images),
        })
        for marker in self.fail_markers:
            if marker in prompt:
                raise FakeApiError(400, f"rejected: {marker}")
        self._count += 1
        return make_asset(f"frame-{self._count}")

    async def synthesize_speech(self, text, voice_name="Kore"):
        self.speech_calls.append({"text": text, "voice": voice_name})
        return GeneratedAsset(kind=AssetType.AUDIO, data="UklGRg==", mime_type="audio/wav")


def analysis_payload(scene_count: int = 2, voice: str = "Puck") -> Dict[str, Any]:
    """Analysis JSON as the model returns it."""
    return {
        "productType": "护肤精华",
        "sellingPoints": "提亮肤色",
        "targetAudience": "25-35岁女性",
        "hook": "你的脸为什么总是暗沉?",
        "painPoints": "肤色不均",
        "strategy": "六维策略",
        "assignedVoice": voice,
        "scenes": [
            {
                "id": f"scene-{i}",
                "visual": f"画面 {i}",
                "action": f"动作 {i}",
                "camera": "手持",
                "dialogue": f"Line {i}",
                "dialogueTranslation": f"台词 {i}",
                "prompt": {"imagePrompt": f"Handheld selfie POV, shot {i}"},
            }
            for i in range(1, scene_count + 1)
        ],
    }


def analysis_json(scene_count: int = 2, voice: str = "Puck") -> str:
    return json.dumps(analysis_payload(scene_count, voice), ensure_ascii=False)


def manifest_payload() -> Dict[str, Any]:
    return {
        "veo_production_manifest": {
            "version": "4.0",
            "shot_summary": "Woman applies serum in a bright bathroom",
            "global_settings": {"output_specifications": {"resolution": "1080p"}},
            "director_mandates": {
                "positive_mandates": ["Keep lighting soft."],
                "negative_mandates": ["NO morphing of character features."],
            },
            "timeline_script": [
                {
                    "time_start": "0.0s",
                    "time_end": "8.0s",
                    "description": "Close-up of serum application",
                    "elements": {
                        "visuals": {
                            "subject_action": "Applies two drops",
                            "background_action": "Steam on the mirror",
                        },
                        "camera": {"camera_movement": {"primary_movement": "Slow push in"}},
                    },
                }
            ],
        }
    }
