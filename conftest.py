"""
Pytest configuration for the Intcode test suite.

    python -m pytest                 # everything
    python -m pytest -m "not network"  # skip the multi-node runs

Set INTCODE_TRACE=1 to log every executed instruction (use with
``--log-level=DEBUG``).
"""

import pytest

# Reproduces itself on the output channel
QUINE = "109,1,204,-1,1001,100,1,100,1008,100,16,101,1006,101,0,99"

# 999 if input < 8, 1000 if input == 8, 1001 if input > 8
COMPARE_TO_8 = (
    "3,21,1008,21,8,20,1005,20,22,107,8,21,20,1006,20,31,"
    "1106,0,36,98,0,0,1002,21,125,20,4,20,1105,1,46,104,"
    "999,1105,1,46,1101,1000,1,20,4,20,1105,1,46,98,99"
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers",
        "network: tests driving many VMs through the packet network")


@pytest.fixture
def quine_program():
    return QUINE


@pytest.fixture
def compare_program():
    return COMPARE_TO_8
