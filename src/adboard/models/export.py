"""Storyboard export written alongside generated assets."""

from typing import Dict, List, Optional
from pathlib import Path
from pydantic import BaseModel, Field
import yaml


class ExportedScene(BaseModel):
    """Script, prompt and asset paths of one scene."""

    id: str
    visual: str = ""
    action: str = ""
    camera: str = ""
    dialogue: str = ""
    dialogue_translation: str = ""
    prompt_format: str = "plain"
    image_prompt: str = ""
    assets: Dict[str, str] = Field(default_factory=dict, description="Asset slot -> file path")
    error: Optional[str] = None


class StoryboardExport(BaseModel):
    """Summary of a studio session."""

    project_name: str = Field(..., description="Project name")
    product_type: str = ""
    hook: str = ""
    strategy: str = ""
    assigned_voice: str = ""
    generation_mode: str = "standard"
    aspect_ratio: str = "9:16"
    image_resolution: str = "2K"
    scenes: List[ExportedScene] = Field(default_factory=list, description="List of scenes")

    class Config:
        """Pydantic config."""
        frozen = False

    @classmethod
    def from_yaml(cls, path: Path) -> "StoryboardExport":
        """Load export from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save export to YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False, allow_unicode=True, sort_keys=False)
