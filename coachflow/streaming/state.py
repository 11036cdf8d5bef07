"""Explicit per-stream state and its allowed phase transitions."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StreamStage(str, Enum):
    IDLE = "idle"
    RESUMING = "resuming"
    PROFILE = "profile"
    SPLIT = "split"
    FINALIZE = "finalize"
    COMPLETE = "complete"
    ERROR = "error"
    HANDED_OFF = "handed_off"  # closed without a terminal frame; client polls


TERMINAL_STAGES = {StreamStage.COMPLETE, StreamStage.ERROR, StreamStage.HANDED_OFF}

TRANSITIONS = {
    StreamStage.IDLE: {StreamStage.RESUMING, StreamStage.PROFILE, StreamStage.COMPLETE, StreamStage.ERROR},
    StreamStage.RESUMING: {StreamStage.HANDED_OFF, StreamStage.ERROR},
    StreamStage.PROFILE: {StreamStage.SPLIT, StreamStage.ERROR},
    StreamStage.SPLIT: {StreamStage.FINALIZE, StreamStage.HANDED_OFF, StreamStage.ERROR},
    StreamStage.FINALIZE: {StreamStage.COMPLETE, StreamStage.ERROR},
    StreamStage.COMPLETE: set(),
    StreamStage.ERROR: set(),
    StreamStage.HANDED_OFF: set(),
}


class InvalidTransition(RuntimeError):
    pass


@dataclass
class StreamState:
    """Everything one stream invocation knows about its generation."""

    user_id: str
    request_id: Optional[str] = None
    stage: StreamStage = StreamStage.IDLE
    resuming: bool = False
    metrics_open: bool = False
    queue_row_created: bool = False
    split_plan_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    def advance(self, stage: StreamStage) -> None:
        if stage not in TRANSITIONS[self.stage]:
            raise InvalidTransition(f"Cannot move from {self.stage.value} to {stage.value}")
        self.stage = stage
