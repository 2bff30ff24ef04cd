"""
OptSolv Backend — Pipeline State Machine
==========================================

What:  The states a note goes through on its way from image to tasks, and
       the only transitions allowed between them.

    idle ──START──▶ uploading ──UPLOADED──▶ ocr ──TEXT_EXTRACTED──▶ analyzing ──ANALYZED──▶ success
                        │                    │                          │
                        └──────FAILED────────┴──────────FAILED──────────┴──▶ idle

Any in-progress state may abort back to idle; success is terminal for a run.
"""

from enum import Enum
from typing import Dict, Tuple

from optsolv.exceptions import InvalidTransitionError


class PipelineState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    OCR = "ocr"
    ANALYZING = "analyzing"
    SUCCESS = "success"


class PipelineEvent(str, Enum):
    START = "start"
    UPLOADED = "uploaded"
    TEXT_EXTRACTED = "text_extracted"
    ANALYZED = "analyzed"
    FAILED = "failed"


TRANSITIONS: Dict[Tuple[PipelineState, PipelineEvent], PipelineState] = {
    (PipelineState.IDLE, PipelineEvent.START): PipelineState.UPLOADING,
    (PipelineState.UPLOADING, PipelineEvent.UPLOADED): PipelineState.OCR,
    (PipelineState.OCR, PipelineEvent.TEXT_EXTRACTED): PipelineState.ANALYZING,
    (PipelineState.ANALYZING, PipelineEvent.ANALYZED): PipelineState.SUCCESS,
    (PipelineState.UPLOADING, PipelineEvent.FAILED): PipelineState.IDLE,
    (PipelineState.OCR, PipelineEvent.FAILED): PipelineState.IDLE,
    (PipelineState.ANALYZING, PipelineEvent.FAILED): PipelineState.IDLE,
}

IN_PROGRESS = frozenset({PipelineState.UPLOADING, PipelineState.OCR, PipelineState.ANALYZING})


def advance(state: PipelineState, event: PipelineEvent) -> PipelineState:
    """
    Raises:
        InvalidTransitionError: The event is not valid in `state`.
    """
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(state.value, event.value)


def is_in_progress(state: PipelineState) -> bool:
    return state in IN_PROGRESS
