from collections.abc import Sequence

import numpy as np

from .defaults import PULSES_PER_LITER


def compute_volumes(
    flows: Sequence[float], pulses_per_liter: float = PULSES_PER_LITER
) -> tuple[float, ...]:
    """
    Convert raw flow meter pulse counts to litres.

    Parameters:
    - flows: the raw pulse count of each flow meter
    - pulses_per_liter: flow meter calibration divisor

    Returns:
    - one volume (L) per flow meter, same order, unrounded
    """
    flows = np.asarray(flows, dtype=float)
    if flows.ndim != 1:
        raise ValueError(f"Expected a flat sequence of flow readings, got {flows.shape}")
    return tuple((flows / pulses_per_liter).tolist())
