"""Keyboard edge detection: which keys went down since the previous frame."""

from typing import Iterable


class KeyEdges:
    """Keeps the previous frame's held keys and reports fresh presses."""

    def __init__(self) -> None:
        self.held: frozenset = frozenset()

    def update(self, pressed: Iterable[int]) -> set:
        """*pressed* is every key held this frame; returns those that were not held last frame."""
        current = frozenset(pressed)
        fresh = set(current - self.held)
        self.held = current
        return fresh


def held_keys(state, keys: Iterable[int]) -> set:
    """Filter a pygame key-state sequence down to the watched *keys* that are held."""
    return {k for k in keys if state[k]}
