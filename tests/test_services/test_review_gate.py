"""Tests for ReviewGate selection, timeout default and abort."""

import asyncio

import pytest

from clipflow.exceptions import ImageSelectionError, PipelineAbortedError
from clipflow.services.review_gate import ReviewGate


@pytest.mark.asyncio
async def test_selection_before_timeout_returns_exact_index():
    gate = ReviewGate(clip_index=0, candidate_count=4)
    abort = asyncio.Event()

    waiter = asyncio.create_task(gate.wait(timeout=5.0, abort_event=abort))
    await asyncio.sleep(0)
    gate.resolve(3)

    assert await waiter == 3
    assert not gate.is_open


@pytest.mark.asyncio
async def test_no_selection_defaults_to_first_candidate():
    gate = ReviewGate(clip_index=1, candidate_count=4)

    selected = await gate.wait(timeout=0.05, abort_event=asyncio.Event())

    assert selected == 0
    assert not gate.is_open


@pytest.mark.asyncio
async def test_abort_while_waiting_fails_fast():
    gate = ReviewGate(clip_index=0, candidate_count=4)
    abort = asyncio.Event()

    waiter = asyncio.create_task(gate.wait(timeout=30.0, abort_event=abort))
    await asyncio.sleep(0)
    abort.set()

    with pytest.raises(PipelineAbortedError):
        await asyncio.wait_for(waiter, timeout=1.0)

    with pytest.raises(ImageSelectionError):
        gate.resolve(1)


@pytest.mark.asyncio
async def test_out_of_range_index_rejected_and_gate_stays_open():
    gate = ReviewGate(clip_index=0, candidate_count=4)

    with pytest.raises(ImageSelectionError, match="Invalid image index 4"):
        gate.resolve(4)
    with pytest.raises(ImageSelectionError):
        gate.resolve(-1)

    assert gate.is_open


@pytest.mark.asyncio
async def test_second_selection_rejected():
    gate = ReviewGate(clip_index=0, candidate_count=2)
    gate.resolve(1)

    with pytest.raises(ImageSelectionError, match="not awaiting"):
        gate.resolve(0)
