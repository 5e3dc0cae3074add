"""Google Gemini API client wrapper."""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from google import genai
from google.genai import types

from ..config import config
from ..errors import NoAudioReturned, NoImageReturned
from ..models import AspectRatio, GeneratedAsset, ImageResolution, MediaPayload
from ..models.project import DEFAULT_VOICE, VOICE_OPTIONS
from ..models.scene import AssetType
from .audio import pcm_to_wav_base64
from .retry import with_retry

logger = logging.getLogger(__name__)

MAX_REFERENCE_IMAGES = 5

ReferenceImage = Union[MediaPayload, GeneratedAsset]


def resolve_voice(voice_name: Optional[str]) -> str:
    """Return ``voice_name`` if it is a known voice, else the default voice."""
    if voice_name in VOICE_OPTIONS:
        return voice_name
    logger.debug(f"Unknown voice {voice_name!r}, using {DEFAULT_VOICE}")
    return DEFAULT_VOICE


def _to_bytes(data: Union[str, bytes]) -> bytes:
    if isinstance(data, bytes):
        return data
    return base64.b64decode(data)


def _to_base64(data: Union[str, bytes]) -> str:
    if isinstance(data, bytes):
        return base64.b64encode(data).decode("ascii")
    return data


def media_part(media: Any) -> types.Part:
    """Build an inline content part from a payload with ``data``/``mime_type``."""
    return types.Part.from_bytes(data=_to_bytes(media.data), mime_type=media.mime_type)


def _inline_parts(response: Any) -> list:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    return [part for part in parts if getattr(part, "inline_data", None) is not None]


class GeminiClient:
    """Client wrapper for Gemini text, image and speech generation with retry logic."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        analysis_model: Optional[str] = None,
        image_model: Optional[str] = None,
        speech_model: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            api_key: Gemini API key. Defaults to GOOGLE_API_KEY env var.
            analysis_model: Model for analysis and prompt rewriting.
            image_model: Model for frame rendering.
            speech_model: Model for text-to-speech.
            max_retries: Retries after the first attempt for transient errors.
            retry_delay: Initial backoff delay in seconds (doubles per retry).
            client: Pre-built ``genai.Client`` (or compatible object).
            sleep: Awaitable used between retries.
        """
        self._analysis_model = analysis_model or config.analysis_model
        self._image_model = image_model or config.image_model
        self._speech_model = speech_model or config.speech_model
        self._max_retries = config.max_retries if max_retries is None else max_retries
        self._retry_delay = config.initial_retry_delay if retry_delay is None else retry_delay
        self._sleep = sleep

        if client is not None:
            self._client = client
        else:
            self._client = self._build_client(api_key or config.google_api_key)

    @staticmethod
    def _build_client(api_key: str) -> "genai.Client":
        if api_key:
            return genai.Client(api_key=api_key)
        if config.use_vertex:
            logger.info(
                f"Using Vertex AI for project {config.google_cloud_project} "
                f"in {config.google_cloud_location}"
            )
            return genai.Client(
                vertexai=True,
                project=config.google_cloud_project,
                location=config.google_cloud_location,
            )
        raise ValueError("Gemini API key not provided. Set GOOGLE_API_KEY env var.")

    @property
    def analysis_model(self) -> str:
        """Return the model used for text generation."""
        return self._analysis_model

    @property
    def image_model(self) -> str:
        return self._image_model

    async def _generate(self, description: str, **kwargs: Any) -> Any:
        return await with_retry(
            lambda: self._client.aio.models.generate_content(**kwargs),
            max_retries=self._max_retries,
            initial_delay=self._retry_delay,
            description=description,
            sleep=self._sleep,
        )

    async def generate_text(
        self,
        contents: Sequence[Any],
        system_instruction: Optional[str] = None,
        response_mime_type: Optional[str] = None,
        response_schema: Optional[Any] = None,
        model: Optional[str] = None,
    ) -> str:
        """Generate text (or JSON text) from mixed content parts.

        Args:
            contents: Content parts (``types.Part`` or plain strings).
            system_instruction: Optional system instruction.
            response_mime_type: e.g. ``"application/json"``.
            response_schema: Optional structured-output schema.
            model: Model override. Defaults to the analysis model.

        Returns:
            The response text, or an empty string if the model returned none.

        Raises:
            TransportUnavailable: If the API stays unavailable after all retries.
        """
        generation_config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type=response_mime_type,
            response_schema=response_schema,
        )
        logger.debug(f"Sending text request ({len(contents)} parts) to {model or self._analysis_model}")
        response = await self._generate(
            "Gemini text generation",
            model=model or self._analysis_model,
            contents=list(contents),
            config=generation_config,
        )
        return getattr(response, "text", None) or ""

    async def render_image(
        self,
        prompt: str,
        aspect_ratio: AspectRatio,
        resolution: ImageResolution,
        reference_images: Sequence[ReferenceImage] = (),
    ) -> GeneratedAsset:
        """Render one image from a prompt and reference images.

        Only the first five reference images are sent, in list order, ahead
        of the prompt text.

        Args:
            prompt: Text description of the frame.
            aspect_ratio: Target aspect ratio.
            resolution: Target resolution tier.
            reference_images: Ordered references; the first is the strongest anchor.

        Returns:
            The rendered image asset.

        Raises:
            NoImageReturned: If the response carried no inline image.
            TransportUnavailable: If the API stays unavailable after all retries.
        """
        references = list(reference_images)[:MAX_REFERENCE_IMAGES]
        parts = [media_part(ref) for ref in references]
        parts.append(types.Part.from_text(text=prompt))

        logger.info(
            f"Rendering image ({aspect_ratio.value}, {resolution.value}, "
            f"{len(references)} refs): {prompt[:50]}..."
        )
        response = await self._generate(
            "Gemini image render",
            model=self._image_model,
            contents=parts,
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE"],
                image_config=types.ImageConfig(
                    aspect_ratio=aspect_ratio.value,
                    image_size=resolution.value,
                ),
            ),
        )

        for part in _inline_parts(response):
            if part.inline_data.data:
                return GeneratedAsset(
                    kind=AssetType.IMAGE,
                    data=_to_base64(part.inline_data.data),
                    mime_type=part.inline_data.mime_type or "image/png",
                )
        raise NoImageReturned("No image was generated. Check the inputs or retry later.")

    async def synthesize_speech(self, text: str, voice_name: Optional[str] = DEFAULT_VOICE) -> GeneratedAsset:
        """Synthesize speech and return it as a playable WAV asset.

        Args:
            text: Line to speak.
            voice_name: Prebuilt voice; unknown names fall back to the default voice.

        Returns:
            Audio asset with ``audio/wav`` payload.

        Raises:
            NoAudioReturned: If the response carried no audio samples.
            TransportUnavailable: If the API stays unavailable after all retries.
        """
        voice = resolve_voice(voice_name)
        logger.info(f"Synthesizing speech with voice {voice}: {text[:50]}...")
        response = await self._generate(
            "Gemini speech synthesis",
            model=self._speech_model,
            contents=[types.Part.from_text(text=text)],
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice),
                    ),
                ),
            ),
        )

        parts = _inline_parts(response)
        if not parts or not parts[0].inline_data.data:
            raise NoAudioReturned("The speech service returned no audio data.")

        pcm = _to_bytes(parts[0].inline_data.data)
        return GeneratedAsset(
            kind=AssetType.AUDIO,
            data=pcm_to_wav_base64(pcm),
            mime_type="audio/wav",
        )
