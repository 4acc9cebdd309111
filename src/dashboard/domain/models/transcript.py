from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Sender(str, Enum):
    USER = "user"
    AI = "ai"


class TranscriptEntry(BaseModel):
    id: str
    text: str
    sender: Sender
    timestamp: datetime
