# conftest.py

import numpy as np
import pytest

from FineGrid import FineGrid
from CoarseGridModel import CoarseGridModel
from utils import getI_J_K


def build_line_grid(volumes):
    """1D chain of cells 1-2-...-N with boundary faces at both ends."""
    n = len(volumes)
    neighbors = [[0, 1]]
    for c in range(1, n):
        neighbors.append([c, c + 1])
    neighbors.append([n, 0])
    return FineGrid(neighbors=neighbors, volumes=volumes)


def eroded_actnum(NX, NY, NZ):
    """Active cells below a surface h(i,j) in 1..NZ, bottom layer always active."""
    i, j, k = getI_J_K(np.arange(NX * NY * NZ), NX, NY, NZ)
    h = 1 + (i + 2 * j) % NZ
    return (k < h).astype(int)


@pytest.fixture
def line_grid():
    return build_line_grid


@pytest.fixture
def cart_model():
    model = CoarseGridModel()
    model.buildCartGrid([40.0, 40.0, 10.0], [4, 4, 2])
    return model


@pytest.fixture
def eroded_model():
    """12x6x4 grid with an eroded top, 4x2x2 uniform blocks split into connected pieces."""
    model = CoarseGridModel()
    model.buildCartGrid([120.0, 60.0, 40.0], [12, 6, 4], eroded_actnum(12, 6, 4))
    model.partitionUI([4, 2, 2])
    model.processPartition()
    return model
