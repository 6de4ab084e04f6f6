import sys
from pathlib import Path

import pytest

# Make the in-memory chart builder importable from every test package.
sys.path.insert(0, str(Path(__file__).resolve().parent))

from enc_builder import EncBuilder  # noqa: E402


@pytest.fixture
def builder() -> EncBuilder:
    """A builder with a DSPM record using the usual ENC scaling (COMF=1e7, SOMF=10)."""
    return EncBuilder()


@pytest.fixture
def point_chart() -> EncBuilder:
    """One isolated node at 55N 009E referenced by one POINT feature."""
    b = EncBuilder(comf=10, somf=1)
    b.node(1, 55.0, 9.0)
    b.feature(1, 1, 75, fidn=1001, spatial=[(110, 1, 255, 255, 255)])
    return b
