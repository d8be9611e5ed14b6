import os

import pytest

ADDRESS_ENV = "LOADSCOPE_TEST_ADDRESS"


@pytest.fixture(scope="session")
def hardware_address():
    """Address of a real load cell, from $LOADSCOPE_TEST_ADDRESS (e.g. COM4)."""
    address = os.environ.get(ADDRESS_ENV, "")
    if not address:
        pytest.skip(f"{ADDRESS_ENV} not set")
    return address
