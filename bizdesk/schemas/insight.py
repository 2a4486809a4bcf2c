"""
schemas/insight.py
------------------
Request bodies for the business assistant.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


class ChatMessage(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    conversation_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("conversation_id", "conversationId")
    )
