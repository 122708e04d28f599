"""
TTS byte cache: memoize synthesized audio per normalized text.

Synthesis itself happens client-side through an external AI service; the
server only stores and returns bytes. Keys are lower-cased and trimmed so
"Delta Lake " and "delta lake" share one entry. Re-posting a key overwrites.
"""
from __future__ import annotations

import base64
import binascii
from typing import Optional

from core.errors import NotFound, ValidationError
from persistence.ports import StoreProtocol


def cache_key(text: object) -> str:
    if text is None:
        return ""
    return str(text).strip().lower()


class SpeechCache:
    def __init__(self, store: StoreProtocol) -> None:
        self._store = store

    def fetch_base64(self, text: str) -> str:
        key = cache_key(text)
        audio: Optional[bytes] = self._store.get_tts_audio(key) if key else None
        if audio is None:
            raise NotFound("audio_not_cached")
        return base64.b64encode(audio).decode("ascii")

    def store_base64(self, text: object, audio_b64: object) -> str:
        key = cache_key(text)
        if not key or not audio_b64 or not isinstance(audio_b64, str):
            raise ValidationError("missing_term_or_audio")
        try:
            audio = base64.b64decode(audio_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("invalid_audio") from exc
        if not audio:
            raise ValidationError("invalid_audio")
        self._store.put_tts_audio(key, audio)
        return key


__all__ = ["SpeechCache", "cache_key"]
