"""
Synthesis Backend Request/Response Schemas.

The backend's /api/tts endpoint speaks the same envelope as the rest of
the platform API: successful responses carry their payload under "data",
failures carry a message under "error".

Example Request:
    {
        "text": "这是第一句。",
        "languageCode": "cmn-CN",
        "voiceName": "cmn-CN-Chirp3-HD-Despina"
    }

Example Response:
    {"data": {"audioContent": "data:audio/mp3;base64,SUQz..."}}

Example Error:
    {"error": "Sentence is too long"}
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SynthesisRequest(BaseModel):
    """
    One chunk submitted for synthesis.

    Field names follow the backend's camelCase wire format; Python code
    uses the snake_case attributes.
    """
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1, description="Chunk text, already within the byte budget")
    language: str = Field(..., alias="languageCode", description="BCP-47 language tag, e.g. cmn-CN")
    voice: str = Field(..., alias="voiceName", description="Backend voice identifier")


class SynthesisPayload(BaseModel):
    """
    Audio produced for one chunk.

    The backend returns either a ready data URL / URL ("audioUrl") or
    base64 content ("audioContent", with or without a data: prefix).
    """
    model_config = ConfigDict(populate_by_name=True)

    audio_content: str | None = Field(default=None, alias="audioContent")
    audio_url: str | None = Field(default=None, alias="audioUrl")
    mime_type: str | None = Field(default=None, alias="mimeType")

    @model_validator(mode="after")
    def _require_audio(self) -> "SynthesisPayload":
        if not (self.audio_content or self.audio_url):
            raise ValueError("response carries neither audioContent nor audioUrl")
        return self


class SynthesisResponse(BaseModel):
    """Response envelope: payload under data, or a message under error."""
    data: SynthesisPayload | None = None
    error: str | None = None
