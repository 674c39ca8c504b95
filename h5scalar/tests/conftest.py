import pytest

from .util import count_open_ids


@pytest.fixture
def h5path(tmp_path):
    return str(tmp_path / 'data.h5')


@pytest.fixture
def no_leaked_ids():
    """Fail the test if it leaves HDF5 objects open."""
    before = count_open_ids()
    yield
    assert count_open_ids() == before
