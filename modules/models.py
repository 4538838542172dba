import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class CaptureState(Enum):
    UNINITIALIZED = "uninitialized"
    STREAMING = "streaming"
    STREAM_ERROR = "stream_error"
    ANALYZING = "analyzing"


class AppView(Enum):
    SETUP = "setup"
    CAPTURE = "capture"
    LOGS = "logs"


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2026-10-19T08:30:00.123Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AnalysisRecord:
    """One capture and the description Gemini returned for it."""

    id: str
    timestamp: str
    image: str  # data URL, stored inline
    description: str

    @classmethod
    def create(cls, image: str, description: str) -> "AnalysisRecord":
        return cls(
            id=str(uuid.uuid4()),
            timestamp=utc_timestamp(),
            image=image,
            description=description,
        )

    @property
    def short_id(self) -> str:
        return self.id[:8]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "imageData": self.image,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisRecord":
        image = data.get("imageData", data.get("image", ""))
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            image=image,
            description=data.get("description", ""),
        )
