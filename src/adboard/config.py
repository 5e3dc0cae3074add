"""Configuration management."""

import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config(BaseModel):
    """Application configuration."""

    # Credentials
    google_api_key: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY", ""),
        description="Gemini API key"
    )
    google_cloud_project: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""),
        description="Google Cloud project ID (enables Vertex AI mode)"
    )
    google_cloud_location: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        description="Vertex AI region"
    )

    # Model settings
    analysis_model: str = Field(
        default_factory=lambda: os.getenv("ADBOARD_ANALYSIS_MODEL", "gemini-3-pro-preview"),
        description="Model used for product analysis and prompt rewriting"
    )
    image_model: str = Field(
        default_factory=lambda: os.getenv("ADBOARD_IMAGE_MODEL", "gemini-3-pro-image-preview"),
        description="Model used for frame rendering"
    )
    speech_model: str = Field(
        default_factory=lambda: os.getenv("ADBOARD_SPEECH_MODEL", "gemini-2.5-flash-preview-tts"),
        description="Model used for text-to-speech"
    )

    # Resilience
    max_retries: int = Field(
        default_factory=lambda: int(os.getenv("ADBOARD_MAX_RETRIES", "3")),
        description="Retries after the first attempt for transient failures"
    )
    initial_retry_delay: float = Field(
        default_factory=lambda: float(os.getenv("ADBOARD_RETRY_DELAY", "2.0")),
        description="First backoff delay in seconds (doubles on each retry)"
    )

    # Placeholder gate, not an authentication mechanism
    access_code: str = Field(
        default_factory=lambda: os.getenv("ADBOARD_ACCESS_CODE", ""),
        description="Studio access code (empty disables the gate)"
    )

    class Config:
        """Pydantic config."""
        frozen = False

    @property
    def use_vertex(self) -> bool:
        """Whether requests go through Vertex AI instead of the Gemini API."""
        return bool(self.google_cloud_project) and not self.google_api_key

    def validate_required(self) -> None:
        """Validate that credentials for the remote model are set.

        Raises:
            ValueError: If neither an API key nor a cloud project is configured.
        """
        if not self.google_api_key and not self.google_cloud_project:
            raise ValueError(
                "GOOGLE_API_KEY not set. Set GOOGLE_API_KEY (or GOOGLE_CLOUD_PROJECT "
                "for Vertex AI)."
            )


# Global config instance
config = Config()
