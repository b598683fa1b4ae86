"""Tests for the bounded return-address stack."""

from __future__ import annotations

import pytest

from chip8emu.cpu.stack import DEFAULT_STACK_DEPTH, CallStack
from chip8emu.errors import StackOverflowError, StackUnderflowError


def test_push_pop_is_lifo() -> None:
    stack = CallStack()
    assert stack.push(0x202) == 1
    assert stack.push(0x404) == 2
    assert stack.peek() == 0x404
    assert stack.pop() == 0x404
    assert stack.pop() == 0x202
    assert len(stack) == 0


def test_overflow_at_capacity_keeps_contents() -> None:
    stack = CallStack()
    for value in range(DEFAULT_STACK_DEPTH):
        stack.push(value)
    assert stack.is_full()

    with pytest.raises(StackOverflowError):
        stack.push(0xFFF)
    assert stack.depth == DEFAULT_STACK_DEPTH
    assert stack.peek() == DEFAULT_STACK_DEPTH - 1


def test_underflow_on_empty() -> None:
    stack = CallStack(4)
    with pytest.raises(StackUnderflowError):
        stack.pop()
    with pytest.raises(StackUnderflowError):
        stack.peek()


def test_clear_and_repr() -> None:
    stack = CallStack(2)
    stack.push(0x202)
    assert repr(stack) == "[0x202]"
    assert stack.to_list() == [0x202]
    stack.clear()
    assert stack.to_list() == []
    assert stack.capacity == 2


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CallStack(0)
