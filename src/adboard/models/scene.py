"""Scene data model."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class AssetType(str, Enum):
    """Kind of generated asset."""
    IMAGE = "image"
    AUDIO = "audio"


class FrameKind(str, Enum):
    """Which rendered frame of a scene."""
    START = "start"
    MIDDLE = "middle"
    END = "end"


class PromptFormat(str, Enum):
    """Representation of a scene's stored prompt."""
    PLAIN = "plain"
    MANIFEST = "manifest"


class GeneratedAsset(BaseModel):
    """A rendered image or synthesized speech clip."""

    kind: AssetType = Field(..., description="Asset type")
    data: str = Field(..., description="Base64-encoded payload")
    mime_type: str = Field(..., description="MIME type of the payload")

    class Config:
        """Pydantic config."""
        frozen = True

    @property
    def data_url(self) -> str:
        """Return the asset as a data URL."""
        return f"data:{self.mime_type};base64,{self.data}"


# Scene attribute names per frame kind
FRAME_SLOTS = {
    FrameKind.START: "start_image",
    FrameKind.MIDDLE: "middle_image",
    FrameKind.END: "end_image",
}

FRAME_FLAGS = {
    FrameKind.START: "generating_start",
    FrameKind.MIDDLE: "generating_middle",
    FrameKind.END: "generating_end",
}


class Scene(BaseModel):
    """One shot of the storyboard."""

    id: str = Field(..., description="Unique scene identifier")
    visual: str = Field(default="", description="What is on screen")
    action: str = Field(default="", description="Performance / movement")
    camera: str = Field(default="", description="Camera work")
    dialogue: str = Field(default="", description="Spoken line in the target language")
    dialogue_translation: str = Field(default="", description="Reference-language gloss")
    image_prompt: str = Field(default="", description="Plain prompt text or serialized manifest")
    prompt_format: PromptFormat = Field(default=PromptFormat.PLAIN)

    start_image: Optional[GeneratedAsset] = None
    middle_image: Optional[GeneratedAsset] = None
    end_image: Optional[GeneratedAsset] = None
    audio: Optional[GeneratedAsset] = None

    generating_start: bool = False
    generating_middle: bool = False
    generating_end: bool = False
    generating_audio: bool = False
    updating_prompt: bool = False
    last_error: Optional[str] = None

    class Config:
        """Pydantic config."""
        frozen = False

    def frame(self, kind: FrameKind) -> Optional[GeneratedAsset]:
        """Return the stored frame for ``kind``."""
        return getattr(self, FRAME_SLOTS[kind])

    def is_generating(self, kind: FrameKind) -> bool:
        return getattr(self, FRAME_FLAGS[kind])

    @property
    def is_busy(self) -> bool:
        """True while any frame of this scene is being rendered."""
        return self.generating_start or self.generating_middle or self.generating_end
