import math

import numpy as np
import pytest

from phic_chart.math.transform import (
    FLIP_Y,
    ScopedTransformStack,
    matrix_angle,
    matrix_scale,
    rotation,
    scaling,
    transform_point,
    translation,
)


def test_scope_restores_on_normal_exit():
    stack = ScopedTransformStack()
    with stack.scope(translation(1.0, 2.0)):
        assert stack.map_point(0.0, 0.0) == (1.0, 2.0)
        assert stack.depth == 1
    assert stack.depth == 0
    assert np.array_equal(stack.current, np.identity(3))


def test_scope_restores_when_body_raises():
    stack = ScopedTransformStack()
    before = stack.current

    def body():
        with stack.scope(rotation(1.0)):
            raise KeyError("boom")

    with stack.scope(translation(3.0, 0.0)):
        with pytest.raises(KeyError):
            body()
        assert stack.map_point(0.0, 0.0) == (3.0, 0.0)
    assert stack.current is before
    assert stack.depth == 0


def test_children_compose_in_the_parent_frame():
    stack = ScopedTransformStack()
    with stack.scope(translation(1.0, 0.0)):
        with stack.scope(rotation(math.pi / 2)):
            x, y = stack.map_point(1.0, 0.0)
    assert x == pytest.approx(1.0)
    assert y == pytest.approx(1.0)


def test_apply_returns_the_body_result():
    stack = ScopedTransformStack(base=scaling(2.0, 2.0))
    assert stack.apply(translation(1.0, 1.0), lambda: stack.map_point(0.0, 0.0)) == (2.0, 2.0)
    assert stack.map_point(1.0, 1.0) == (2.0, 2.0)


def test_flip_is_an_ordinary_scale():
    stack = ScopedTransformStack()
    with stack.scope(rotation(math.pi / 2)):
        with stack.scope(FLIP_Y):
            x, y = stack.map_point(0.0, 1.0)
            sx, sy = matrix_scale(stack.current)
    # local +y under the flip points along world +x once rotated
    assert (x, y) == pytest.approx((1.0, 0.0))
    assert sx == pytest.approx(1.0)
    assert sy == pytest.approx(-1.0)


def test_current_and_flip_are_read_only():
    stack = ScopedTransformStack()
    with pytest.raises(ValueError):
        stack.current[0, 0] = 5.0
    with pytest.raises(ValueError):
        FLIP_Y[1, 1] = 1.0


def test_matrix_helpers():
    m = translation(0.5, -0.5) @ rotation(0.3) @ scaling(2.0, 3.0)
    assert matrix_angle(m) == pytest.approx(0.3)
    assert matrix_scale(m) == pytest.approx((2.0, 3.0))
    assert transform_point(m, 0.0, 0.0) == pytest.approx((0.5, -0.5))
