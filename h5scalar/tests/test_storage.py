import os

import h5py
import numpy as np
import pytest

from h5scalar.config import AccessConfig
from h5scalar.errors import DatasetNotFoundError, ReadOnlyError
from h5scalar.storage import H5Store, dataset_access_plist, hyperslab_spaces, \
    normalize_store_arg

from .util import count_open_ids, make_dataset


class TestH5Store(object):

    def test_modes(self, h5path):
        with pytest.raises(ValueError):
            H5Store(h5path, mode='q')

        # 'a' creates
        store = H5Store(h5path)
        assert os.path.exists(h5path)
        assert not store.read_only
        make_dataset(h5path, 'x', shape=(3,))

        # 'a' and 'r+' keep existing content
        assert H5Store(h5path, mode='a').contains('x')
        assert H5Store(h5path, mode='r+').contains('x')
        assert H5Store(h5path, mode='r').read_only

        # 'w' truncates
        assert not H5Store(h5path, mode='w').contains('x')

        with pytest.raises((OSError, FileExistsError)):
            H5Store(h5path, mode='w-')

    def test_path_is_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        store = H5Store('rel.h5')
        assert os.path.join(str(tmp_path), 'rel.h5') == store.path

    def test_eq(self, h5path):
        assert H5Store(h5path) == H5Store(h5path, mode='r')
        assert hash(H5Store(h5path)) == hash(H5Store(h5path))
        assert 'H5Store(' in repr(H5Store(h5path))

    def test_open_dataset(self, h5path, no_leaked_ids):
        make_dataset(h5path, 'g/x', data=np.arange(4))
        store = H5Store(h5path)
        with store.open_dataset('g/x') as dset:
            assert (4,) == dset.shape
            assert count_open_ids() > 0
        with pytest.raises(DatasetNotFoundError):
            with store.open_dataset('missing'):
                pass
        # groups are not datasets
        with pytest.raises(DatasetNotFoundError):
            with store.open_dataset('g'):
                pass

    def test_read_only(self, h5path):
        make_dataset(h5path, 'x', shape=(3,))
        store = H5Store(h5path, mode='r')
        with pytest.raises(ReadOnlyError):
            with store.open_dataset('x', write=True):
                pass
        with pytest.raises(ReadOnlyError):
            store.create_dataset('y', shape=(3,))

    def test_create_dataset(self, h5path):
        store = H5Store(h5path)
        store.create_dataset('x', shape=(3,), dtype='i2')
        assert store.contains('/x')
        with pytest.raises(ValueError):
            store.create_dataset('x', shape=(3,))
        store.create_dataset('x', overwrite=True, shape=(5,), dtype='i2')
        with h5py.File(h5path, 'r') as f:
            assert (5,) == f['x'].shape

    def test_contains_missing_file(self, tmp_path):
        store = H5Store(str(tmp_path / 'missing.h5'), mode='r')
        assert not store.contains('x')


def test_normalize_store_arg(h5path):
    store = H5Store(h5path)
    assert store is normalize_store_arg(store)
    assert isinstance(normalize_store_arg(h5path), H5Store)
    assert 'r' == normalize_store_arg(h5path, mode='r').mode
    with pytest.raises(TypeError):
        normalize_store_arg(42)


def test_dataset_access_plist(tmp_path):
    access = AccessConfig(efile_prefix=str(tmp_path), virtual_prefix=str(tmp_path),
                          virtual_view='first_missing', virtual_printf_gap=3)
    dapl = dataset_access_plist(access)
    assert str(tmp_path) == os.fsdecode(dapl.get_efile_prefix())
    assert h5py.h5d.VDS_FIRST_MISSING == dapl.get_virtual_view()
    assert 3 == dapl.get_virtual_printf_gap()


def test_hyperslab_spaces(h5path, no_leaked_ids):
    make_dataset(h5path, 'x', data=np.arange(20).reshape(4, 5))
    make_dataset(h5path, 's', data=1.5)
    store = H5Store(h5path)
    with store.open_dataset('x') as dset:
        with hyperslab_spaces(dset, (1, 0), (2, 2), (2, 3)) as (mspace, fspace):
            assert (2, 3) == mspace.shape
            assert 6 == fspace.get_select_npoints()
        assert not mspace.valid
        assert not fspace.valid
    with store.open_dataset('s') as dset:
        with hyperslab_spaces(dset, (0,), (1,), (1,)) as (mspace, fspace):
            assert h5py.h5s.SCALAR == mspace.get_simple_extent_type()
