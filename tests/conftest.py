import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chip8_cpu import Chip8


def program(*words):
    """Big-endian bytes for a list of instruction words."""
    out = bytearray()
    for w in words:
        out += bytes([(w >> 8) & 0xFF, w & 0xFF])
    return bytes(out)


@pytest.fixture
def chip():
    return Chip8(seed=1234)


@pytest.fixture
def run(chip):
    """Load the given words at 0x200 and execute that many steps."""
    def _run(*words, steps=None):
        chip.load_program(program(*words))
        for _ in range(len(words) if steps is None else steps):
            chip.step()
        return chip
    return _run
