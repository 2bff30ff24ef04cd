"""
OptSolv Backend — Pipeline State Machine Tests
"""

import pytest

from optsolv.exceptions import InvalidTransitionError
from optsolv.services.pipeline_state import (
    PipelineEvent,
    PipelineState,
    advance,
    is_in_progress,
)


def test_happy_path():
    state = PipelineState.IDLE
    visited = [state]
    for event in (
        PipelineEvent.START,
        PipelineEvent.UPLOADED,
        PipelineEvent.TEXT_EXTRACTED,
        PipelineEvent.ANALYZED,
    ):
        state = advance(state, event)
        visited.append(state)

    assert [s.value for s in visited] == ["idle", "uploading", "ocr", "analyzing", "success"]


@pytest.mark.parametrize(
    "state", [PipelineState.UPLOADING, PipelineState.OCR, PipelineState.ANALYZING]
)
def test_every_in_progress_state_can_fail_to_idle(state):
    assert is_in_progress(state)
    assert advance(state, PipelineEvent.FAILED) == PipelineState.IDLE


@pytest.mark.parametrize(
    "state, event",
    [
        (PipelineState.IDLE, PipelineEvent.FAILED),
        (PipelineState.IDLE, PipelineEvent.UPLOADED),
        (PipelineState.UPLOADING, PipelineEvent.ANALYZED),
        (PipelineState.SUCCESS, PipelineEvent.START),
        (PipelineState.SUCCESS, PipelineEvent.FAILED),
    ],
)
def test_invalid_transitions_raise(state, event):
    with pytest.raises(InvalidTransitionError):
        advance(state, event)


def test_idle_and_success_are_not_in_progress():
    assert not is_in_progress(PipelineState.IDLE)
    assert not is_in_progress(PipelineState.SUCCESS)
