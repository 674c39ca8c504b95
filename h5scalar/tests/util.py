import h5py
import numpy as np


def make_dataset(path, name, **kwargs):
    """Create a dataset with plain h5py, outside of h5scalar."""
    with h5py.File(path, 'a') as f:
        f.create_dataset(name, **kwargs)
    return path


def read_back(path, name):
    with h5py.File(path, 'r') as f:
        return f[name][()]


def count_open_ids():
    """Number of HDF5 objects (files, datasets, dataspaces, ...) open in this
    process."""
    return h5py.h5f.get_obj_count()


def arange_dataset(path, name, shape, dtype='i4', **kwargs):
    data = np.arange(int(np.prod(shape)), dtype=dtype).reshape(shape)
    make_dataset(path, name, data=data, **kwargs)
    return data
