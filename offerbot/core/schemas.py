"""Core value models for the offer clicker."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class CandidateRecord(BaseModel):
    """Text flattened from one on-screen job offer.

    Ephemeral: built per scan and discarded after one decision.
    """

    model_config = ConfigDict(frozen=True)

    raw_text: tuple[str, ...] = ()
    joined_text: str = ""

    @classmethod
    def from_texts(cls, texts: list[str]) -> "CandidateRecord":
        return cls(raw_text=tuple(texts), joined_text="\n".join(texts))


class TouchAction(str, Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CANCEL = "cancel"


class TouchEvent(BaseModel):
    """One raw touch sample from the floating control surface."""

    model_config = ConfigDict(frozen=True)

    action: TouchAction
    x: float = 0.0
    y: float = 0.0


class Reposition(BaseModel):
    """Move the control surface by this offset from where the drag began."""

    model_config = ConfigDict(frozen=True)

    dx: float
    dy: float


class Hide(BaseModel):
    """Remove the control surface (long press)."""

    model_config = ConfigDict(frozen=True)


class ToggleRequested(BaseModel):
    """Flip the service enabled flag (short tap)."""

    model_config = ConfigDict(frozen=True)


SurfaceEvent = Reposition | Hide | ToggleRequested
