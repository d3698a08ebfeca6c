import numpy as np
import pytest

from irrisync.util import PULSES_PER_LITER, compute_volumes


def test_calibration_constant():
    assert PULSES_PER_LITER == 396.0


def test_compute_volumes():
    assert compute_volumes([396, 0, 792]) == (1.0, 0.0, 2.0)


def test_compute_volumes_empty():
    assert compute_volumes([]) == ()


def test_compute_volumes_is_unrounded():
    volumes = compute_volumes([1, 100])
    assert volumes[0] == 1 / 396.0
    assert volumes[1] == 100 / 396.0


def test_compute_volumes_random():
    rng = np.random.default_rng(1234)
    flows = rng.integers(0, 100_000, size=50).tolist()
    volumes = compute_volumes(flows)
    assert len(volumes) == len(flows)
    assert all(v == f / 396.0 for f, v in zip(flows, volumes))
    assert all(isinstance(v, float) for v in volumes)


def test_compute_volumes_custom_calibration():
    assert compute_volumes([10], pulses_per_liter=5.0) == (2.0,)


def test_compute_volumes_rejects_nested():
    with pytest.raises(ValueError):
        compute_volumes([[1, 2], [3, 4]])
