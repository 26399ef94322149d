"""
Decoding of text-to-speech payloads into playable audio clips.
"""

from __future__ import annotations

import sys
import wave
from array import array
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

DEFAULT_SAMPLE_RATE = 24000
PCM16_SCALE = 32768.0


@dataclass(frozen=True)
class AudioClip:
    """
    Mono or interleaved multi-channel float samples in ``[-1.0, 1.0)``.
    """

    samples: tuple[float, ...]
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = 1

    @property
    def frame_count(self) -> int:
        return len(self.samples) // self.channels

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.frame_count / float(self.sample_rate)

    def to_pcm16(self) -> bytes:
        pcm = array(
            "h",
            (max(-32768, min(32767, int(round(value * PCM16_SCALE)))) for value in self.samples),
        )
        if sys.byteorder != "little":
            pcm.byteswap()
        return pcm.tobytes()

    def to_wav_bytes(self) -> bytes:
        buffer = BytesIO()
        with wave.open(buffer, "wb") as wav_file:
            wav_file.setnchannels(self.channels)
            wav_file.setsampwidth(2)
            wav_file.setframerate(self.sample_rate)
            wav_file.writeframes(self.to_pcm16())
        return buffer.getvalue()

    def save(self, path: str | Path) -> Path:
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(self.to_wav_bytes())
        return output


def decode_pcm16(
    data: bytes,
    *,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = 1,
) -> AudioClip:
    """
    Decode little-endian signed 16-bit PCM into an :class:`AudioClip`.

    A RIFF/WAVE payload is recognised and decoded using its own header. A trailing odd
    byte from a truncated stream is dropped.
    """
    if data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return _decode_wav(data)

    usable = len(data) - (len(data) % 2)
    pcm = array("h")
    pcm.frombytes(data[:usable])
    if sys.byteorder != "little":
        pcm.byteswap()

    return AudioClip(
        samples=tuple(value / PCM16_SCALE for value in pcm),
        sample_rate=sample_rate,
        channels=channels,
    )


def _decode_wav(data: bytes) -> AudioClip:
    with wave.open(BytesIO(data), "rb") as wav_file:
        if wav_file.getsampwidth() != 2:
            raise ValueError("Only 16-bit WAV narration is supported.")
        frames = wav_file.readframes(wav_file.getnframes())
        return decode_pcm16(
            frames,
            sample_rate=wav_file.getframerate(),
            channels=wav_file.getnchannels(),
        )
