"""Session state models: product inputs, settings and analysis results."""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from .scene import FrameKind, PromptFormat, Scene

MIN_SCENES = 1
MAX_SCENES = 10

VOICE_OPTIONS = ["Kore", "Fenrir", "Puck", "Charon", "Zephyr"]
DEFAULT_VOICE = "Kore"


class AspectRatio(str, Enum):
    """Output aspect ratio."""
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"
    SQUARE = "1:1"
    CLASSIC = "4:3"
    TALL = "3:4"


class ImageResolution(str, Enum):
    """Render resolution tier."""
    LOW = "1K"
    HIGH = "2K"
    ULTRA = "4K"

    @classmethod
    def lowest(cls) -> "ImageResolution":
        return cls.LOW


class GenerationMode(str, Enum):
    """Which frames each scene carries."""
    STANDARD = "standard"
    START_END = "start_end"
    INTERMEDIATE = "intermediate"

    @property
    def frames(self) -> tuple:
        """Frame kinds eligible to exist in this mode, in render order."""
        if self is GenerationMode.INTERMEDIATE:
            return (FrameKind.START, FrameKind.MIDDLE, FrameKind.END)
        if self is GenerationMode.START_END:
            return (FrameKind.START, FrameKind.END)
        return (FrameKind.START,)

    @property
    def chains_scenes(self) -> bool:
        """Whether a scene's end frame seeds the next scene's start frame."""
        return self is not GenerationMode.STANDARD


class StudioStep(str, Enum):
    """Which page of the studio is active."""
    INPUT = "input"
    STORYBOARD = "storyboard"


class MediaPayload(BaseModel):
    """Base64 media sent to the remote model."""

    data: str = Field(..., description="Base64-encoded bytes")
    mime_type: str = Field(default="image/jpeg")

    class Config:
        """Pydantic config."""
        frozen = True


class ProductContext(BaseModel):
    """Product inputs that ground every remote call."""

    images: List[MediaPayload] = Field(default_factory=list, description="Product images")
    model_images: List[MediaPayload] = Field(default_factory=list, description="Reference model images")
    background_images: List[MediaPayload] = Field(default_factory=list, description="Reference background images")
    reference_video: Optional[MediaPayload] = Field(None, description="Reference video")
    title: str = ""
    description: str = ""
    creative_ideas: str = ""

    class Config:
        """Pydantic config."""
        validate_assignment = True
        protected_namespaces = ()


class StudioSettings(BaseModel):
    """User-selected generation settings."""

    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    image_resolution: ImageResolution = ImageResolution.HIGH
    generation_mode: GenerationMode = GenerationMode.STANDARD
    scene_count: int = Field(default=MIN_SCENES, ge=MIN_SCENES, le=MAX_SCENES)

    class Config:
        """Pydantic config."""
        validate_assignment = True


def clamp_scene_count(value: int) -> int:
    return max(MIN_SCENES, min(MAX_SCENES, value))


class ScenePrompt(BaseModel):
    """Prompt block of a scene draft."""

    class Config:
        """Pydantic config."""
        populate_by_name = True

    image_prompt: str = Field(..., alias="imagePrompt")


class SceneDraft(BaseModel):
    """Scene as returned by the analysis call."""

    class Config:
        """Pydantic config."""
        populate_by_name = True

    id: str
    visual: str
    action: str
    camera: str
    dialogue: str
    dialogue_translation: str = Field(..., alias="dialogueTranslation")
    prompt: ScenePrompt

    def to_scene(self) -> Scene:
        """Seed a storyboard scene from this draft."""
        return Scene(
            id=self.id,
            visual=self.visual,
            action=self.action,
            camera=self.camera,
            dialogue=self.dialogue,
            dialogue_translation=self.dialogue_translation,
            image_prompt=self.prompt.image_prompt,
            prompt_format=PromptFormat.PLAIN,
        )


class AnalysisResult(BaseModel):
    """Marketing strategy and scene drafts returned by the analysis call."""

    class Config:
        """Pydantic config."""
        populate_by_name = True

    product_type: str = Field(..., alias="productType")
    selling_points: str = Field(..., alias="sellingPoints")
    target_audience: str = Field(..., alias="targetAudience")
    hook: str
    pain_points: str = Field(..., alias="painPoints")
    strategy: str
    assigned_voice: str = Field(..., alias="assignedVoice")
    scenes: List[SceneDraft] = Field(..., min_length=1)


class StudioState(BaseModel):
    """Everything one studio session holds besides the scenes themselves."""

    product: ProductContext = Field(default_factory=ProductContext)
    settings: StudioSettings = Field(default_factory=StudioSettings)
    analysis: Optional[AnalysisResult] = None
    is_analyzing: bool = False
    active_step: StudioStep = StudioStep.INPUT
    error_message: Optional[str] = None
