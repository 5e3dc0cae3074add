"""Audio container framing for synthesized speech."""

import base64
import io
import wave

SAMPLE_RATE = 24000
SAMPLE_WIDTH = 2  # 16-bit
CHANNELS = 1


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = SAMPLE_RATE,
    channels: int = CHANNELS,
    sample_width: int = SAMPLE_WIDTH,
) -> bytes:
    """Wrap raw little-endian PCM samples in a WAV container.

    Args:
        pcm: Raw sample bytes as returned by the speech model.
        sample_rate: Samples per second.
        channels: Channel count.
        sample_width: Bytes per sample.

    Returns:
        Complete WAV file bytes (44-byte header followed by the samples).
    """
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def pcm_to_wav_base64(pcm: bytes, sample_rate: int = SAMPLE_RATE) -> str:
    return base64.b64encode(pcm_to_wav(pcm, sample_rate=sample_rate)).decode("ascii")
