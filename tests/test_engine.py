import logging
import math

import numpy as np
import pytest

from heartfield.config import Config
from heartfield.engine import AnimationEngine, Mode, rotation_matrix
from heartfield.gestures import GestureLabel


@pytest.fixture
def engine(renderer, rng):
    return AnimationEngine(count=400, radius=5.0, renderer=renderer, rng=rng)


def test_initial_state(engine):
    state = engine.state
    assert engine.get_mode() is Mode.STARFIELD
    assert state.positions.shape == (400, 3)
    assert state.targets.heart.shape == (400, 3)
    assert state.targets.starfield.shape == (400, 3)
    assert np.array_equal(state.positions, state.targets.starfield)
    assert engine.is_running()


def test_targets_are_read_only(engine):
    with pytest.raises(ValueError):
        engine.state.targets.heart[0, 0] = 1.0


def test_tick_renders_and_advances_clock(engine, renderer):
    assert engine.tick()
    assert engine.state.time == pytest.approx(Config.TIME_STEP)
    assert len(renderer.calls) == 1
    positions, rotation = renderer.calls[0]
    assert positions.shape == (400, 3)
    assert rotation.shape == (3, 3)


def test_geometric_convergence(engine):
    # Start every particle on the heart, then ease toward the fixed starfield.
    engine.state.positions[:] = engine.state.targets.heart
    target = engine.state.targets.starfield.astype(np.float64)
    initial = np.abs(engine.state.positions - target)

    for k in range(1, 61):
        engine.tick()
        remaining = np.abs(engine.state.positions - target)
        bound = initial * (1 - engine.easing) ** k
        assert np.all(remaining <= bound + 1e-4)


def test_heart_target_includes_heartbeat(engine):
    engine.set_mode(Mode.HEART)
    before = engine.state.positions.astype(np.float64).copy()
    engine.tick()
    beat = 1 + Config.HEARTBEAT_AMPLITUDE * math.sin(Config.TIME_STEP * Config.HEARTBEAT_SPEED)
    assert engine.state.heartbeat == pytest.approx(beat)
    target = engine.state.targets.heart * beat
    expected = before + (target - before) * engine.easing
    assert np.allclose(engine.state.positions, expected, atol=1e-5)


def test_starfield_has_no_pulse(engine):
    engine.tick()
    assert engine.state.heartbeat == 1.0


def test_mode_switch_never_teleports(engine):
    for _ in range(20):
        engine.tick()
    engine.set_mode(Mode.HEART)
    for _ in range(3):
        before = engine.state.positions.astype(np.float64).copy()
        engine.tick()
        step = np.linalg.norm(engine.state.positions - before, axis=1)
        heart = engine.state.targets.heart * engine.state.heartbeat
        remaining = np.linalg.norm(heart - before, axis=1)
        assert np.all(step <= remaining * engine.easing + 1e-4)


def test_mode_switch_keeps_positions_and_clock(engine):
    for _ in range(5):
        engine.tick()
    positions = engine.state.positions.copy()
    clock = engine.state.time
    engine.set_mode(Mode.HEART)
    assert np.array_equal(engine.state.positions, positions)
    assert engine.state.time == clock


@pytest.mark.parametrize("value, expected", [
    ("heart", Mode.HEART),
    ("space", Mode.STARFIELD),
    ("starfield", Mode.STARFIELD),
    (Mode.HEART, Mode.HEART),
])
def test_set_mode_accepts_names_and_values(engine, value, expected):
    assert engine.set_mode(value)
    assert engine.get_mode() is expected


def test_invalid_mode_is_ignored(engine, caplog):
    engine.set_mode(Mode.HEART)
    with caplog.at_level(logging.WARNING):
        assert not engine.set_mode("sparkles")
        assert not engine.set_mode(None)
    assert engine.get_mode() is Mode.HEART
    assert "Invalid mode" in caplog.text


def test_gestures_map_to_modes(engine):
    engine.handle_gesture(GestureLabel.FIST)
    assert engine.get_mode() is Mode.HEART
    engine.handle_gesture(GestureLabel.UNKNOWN)
    assert engine.get_mode() is Mode.HEART
    engine.handle_gesture(GestureLabel.OPEN)
    assert engine.get_mode() is Mode.STARFIELD


def test_rotation_eases_toward_target(engine):
    engine.set_target_rotation(0.5, 0.5)
    rot = engine.state.rotation
    target_yaw, target_pitch = rot.target_yaw, rot.target_pitch
    assert rot.yaw == 0.0 and rot.pitch == 0.0

    engine.tick()
    assert rot.yaw == pytest.approx(target_yaw * Config.ROTATION_EASING)
    assert rot.pitch == pytest.approx(target_pitch * Config.ROTATION_EASING)
    for _ in range(300):
        engine.tick()
    assert rot.yaw == pytest.approx(target_yaw, abs=1e-6)
    assert rot.pitch == pytest.approx(target_pitch, abs=1e-6)


def test_rotation_is_rigid(engine):
    engine.set_target_rotation(0.3, -0.2)
    for _ in range(10):
        engine.tick()
    m = engine.rotation_matrix()
    assert np.allclose(m @ m.T, np.eye(3))
    assert np.linalg.det(m) == pytest.approx(1.0)


def test_rotation_matrix_identity_at_rest():
    assert np.allclose(rotation_matrix(0.0, 0.0), np.eye(3))


def test_regenerate_swaps_targets_whole(engine):
    old = engine.state.targets
    positions = engine.state.positions.copy()
    engine.regenerate_targets()
    new = engine.state.targets
    assert new is not old
    assert new.heart.shape == old.heart.shape == (400, 3)
    assert not np.array_equal(new.heart, old.heart)
    assert not np.array_equal(new.starfield, old.starfield)
    # Live particles are not snapped; they drift to the new targets.
    assert np.array_equal(engine.state.positions, positions)


def test_regeneration_from_render_lands_on_next_tick(engine):
    old = engine.state.targets

    class Regenerating:
        def render(self, state, rotation):
            engine.regenerate_targets()

    engine.renderer = Regenerating()
    before = engine.state.positions.astype(np.float64).copy()
    engine.tick()
    assert np.allclose(engine.state.positions, before + (old.starfield - before) * engine.easing, atol=1e-5)

    new = engine.state.targets
    assert new is not old
    engine.renderer = None
    before = engine.state.positions.astype(np.float64).copy()
    engine.tick()
    assert np.allclose(engine.state.positions, before + (new.starfield - before) * engine.easing, atol=1e-5)


def test_stop_is_immediate_and_idempotent(engine, renderer):
    engine.stop()
    engine.stop()
    positions = engine.state.positions.copy()
    assert not engine.tick()
    assert np.array_equal(engine.state.positions, positions)
    assert renderer.calls == []
    engine.start()
    engine.start()
    assert engine.tick()


def test_engines_are_independent(rng):
    a = AnimationEngine(count=50, radius=2.0, rng=rng)
    b = AnimationEngine(count=50, radius=2.0, rng=rng)
    a.set_mode(Mode.HEART)
    a.set_target_rotation(1.0, 1.0)
    assert b.get_mode() is Mode.STARFIELD
    assert b.state.rotation.target_yaw == 0.0


def test_invalid_construction():
    with pytest.raises(ValueError):
        AnimationEngine(count=0)
    with pytest.raises(ValueError):
        AnimationEngine(count=10, easing=0.0)
