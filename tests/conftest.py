import math
from types import SimpleNamespace

import numpy as np
import pytest

from heartfield.gestures import FINGERTIPS, MIDDLE_MCP, PALM_JOINTS, WRIST


def build_hand(tip_ratios, size=0.2, as_objects=False):
    """Synthetic 21-point hand whose fingertip / palm distances are tip_ratios x hand size."""
    pts = np.zeros((21, 3))
    pts[WRIST] = (0.5, 0.8, 0.0)
    pts[MIDDLE_MCP] = (0.5, 0.8 - size, 0.0)
    pts[5] = (0.5 - 0.25 * size, 0.8 - 0.95 * size, 0.0)
    pts[13] = (0.5 + 0.25 * size, 0.8 - 0.95 * size, 0.0)
    pts[17] = (0.5 + 0.45 * size, 0.8 - 0.85 * size, 0.0)
    center = pts[list(PALM_JOINTS)].mean(axis=0)

    # Remaining joints sit on the palm; only tips matter for classification.
    for i in range(21):
        if i not in PALM_JOINTS:
            pts[i] = center
    for k, (tip, ratio) in enumerate(zip(FINGERTIPS, tip_ratios)):
        angle = math.pi * (0.9 - 0.2 * k)
        direction = np.array([math.cos(angle), -math.sin(angle), 0.0])
        pts[tip] = center + direction * ratio * size

    if as_objects:
        return [SimpleNamespace(x=p[0], y=p[1], z=p[2]) for p in pts]
    return pts


@pytest.fixture
def make_hand():
    return build_hand


@pytest.fixture
def open_hand():
    return build_hand([1.6] * 5)


@pytest.fixture
def fist_hand():
    return build_hand([1.0] * 5)


class RecordingRenderer:
    def __init__(self):
        self.calls = []

    def render(self, state, rotation):
        self.calls.append((state.positions.copy(), rotation.copy()))


@pytest.fixture
def renderer():
    return RecordingRenderer()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
