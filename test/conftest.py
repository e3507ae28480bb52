import os
import sys

import numpy as np
import pytest

# Ensure local package import works for pytest collection without colcon.
_TEST_DIR = os.path.dirname(__file__)
_PKG_ROOT = os.path.abspath(os.path.join(_TEST_DIR, ".."))
if _PKG_ROOT not in sys.path:
    sys.path.insert(0, _PKG_ROOT)


@pytest.fixture(autouse=True)
def _seed():
    np.random.seed(1234)
    yield
