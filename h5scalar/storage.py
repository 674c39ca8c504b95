"""This module contains the storage class used by h5scalar datasets.

An :class:`H5Store` names an HDF5 file on disk. It never keeps the file open:
every operation opens the file, does its work and closes it again before
returning, on the error path as well as on the normal path. Closing the file
also closes every dataset, dataspace and property list opened through it, so
no engine resource outlives the operation that acquired it.

"""
import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence, Tuple

import h5py
import numpy as np
from h5py import h5d, h5p, h5s

from h5scalar.config import AccessConfig
from h5scalar.errors import DatasetNotFoundError, ReadOnlyError
from h5scalar.util import normalize_storage_path


logger = logging.getLogger(__name__)


_VIRTUAL_VIEWS = {
    'first_missing': h5d.VDS_FIRST_MISSING,
    'last_available': h5d.VDS_LAST_AVAILABLE,
}


class H5Store(object):
    """Storage class using a single HDF5 file on a standard file system.

    Parameters
    ----------
    path : string
        Location of the HDF5 file.
    mode : {'r', 'r+', 'a', 'w', 'w-'}, optional
        Persistence mode. 'r' means read only (must exist); 'r+' means
        read/write (must exist); 'a' means read/write (create if doesn't
        exist); 'w' means create (overwrite if exists); 'w-' means create
        (fail if exists).
    **kwargs
        Passed through to :class:`h5py.File` each time the file is opened
        (e.g. ``libver`` or ``locking``).

    Examples
    --------
    >>> import h5scalar
    >>> store = h5scalar.H5Store('data/example.h5', mode='w')
    >>> with store.open_dataset('/temperature', write=True) as dset:  # doctest: +SKIP
    ...     dset[...] = 42

    Notes
    -----
    The file is only held open while it is being read or written, so there is
    no need to manually close anything.

    """

    def __init__(self, path, mode='a', **kwargs):
        if mode not in ('r', 'r+', 'a', 'w', 'w-', 'x'):
            raise ValueError("mode must be one of 'r', 'r+', 'a', 'w', 'w-'; found %r"
                             % mode)
        self.path = os.path.abspath(os.fspath(path))
        self.mode = mode
        self._file_kwargs = kwargs

        # create or truncate up front, afterwards the file is only ever
        # opened read-only or read/write
        if mode in ('w', 'w-', 'x') or (mode == 'a' and not os.path.exists(self.path)):
            with h5py.File(self.path, 'w' if mode == 'a' else mode, **kwargs):
                pass
            logger.debug("created HDF5 file %s", self.path)

    @property
    def read_only(self) -> bool:
        return self.mode == 'r'

    @contextmanager
    def open_file(self, write=False) -> Iterator[h5py.File]:
        """Open the underlying file for the duration of a ``with`` block."""
        if write and self.read_only:
            raise ReadOnlyError(self.path)
        f = h5py.File(self.path, 'r+' if write else 'r', **self._file_kwargs)
        try:
            yield f
        finally:
            f.close()

    @contextmanager
    def open_dataset(self, name, write=False,
                     access: Optional[AccessConfig] = None) -> Iterator[h5py.Dataset]:
        """Open the dataset at `name` for the duration of a ``with`` block.

        Relative external and virtual source file names are resolved through
        the prefixes in `access`; the process working directory is never
        consulted or changed.
        """
        name = normalize_storage_path(name)
        access = access or AccessConfig.from_config()
        with self.open_file(write=write) as f:
            if not isinstance(f.get(name), h5py.Dataset):
                raise DatasetNotFoundError(name, self.path)
            dsid = h5d.open(f.id, name.encode('utf-8'), dapl=dataset_access_plist(access))
            yield h5py.Dataset(dsid)

    def contains(self, name) -> bool:
        """Return True if the file holds a dataset at `name`."""
        if not os.path.exists(self.path):
            return False
        name = normalize_storage_path(name)
        with self.open_file() as f:
            return isinstance(f.get(name), h5py.Dataset)

    def create_dataset(self, name, overwrite=False, **kwargs):
        """Create a dataset at `name`; `kwargs` go to
        :func:`h5py.Group.create_dataset`."""
        name = normalize_storage_path(name)
        with self.open_file(write=True) as f:
            if name in f:
                if not overwrite:
                    raise ValueError('an object already exists at path %r' % name)
                del f[name]
            f.create_dataset(name, **kwargs)
            logger.debug("created dataset %s in %s", name, self.path)

    def __eq__(self, other):
        return isinstance(other, H5Store) and self.path == other.path

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return '%s(%r, mode=%r)' % (type(self).__name__, self.path, self.mode)


def _create_space(shape) -> h5s.SpaceID:
    if shape is None:
        return h5s.create(h5s.NULL)
    if shape == ():
        return h5s.create(h5s.SCALAR)
    return h5s.create_simple(tuple(shape))


def clone_dataset(f: h5py.File, src: h5py.Dataset, name: str, shape=None,
                  chunks=None) -> h5py.Dataset:
    """Create `name` in the open file `f` with the element type and creation
    property list of `src`.

    Layout, filters with their parameters, fill value and allocation time all
    carry over. `chunks` replaces the chunk shape of a chunked source. The raw
    data of a source stored in external files is not shared: the new dataset
    keeps its data inside `f`, with the fill value of the source.
    """
    src_dcpl = src.id.get_create_plist()
    if src_dcpl.get_external_count():
        dcpl = h5p.create(h5p.DATASET_CREATE)
        if src_dcpl.fill_value_defined() == h5d.FILL_VALUE_USER_DEFINED:
            fill = np.zeros((1,), dtype=src.dtype)
            src_dcpl.get_fill_value(fill)
            dcpl.set_fill_value(fill)
    else:
        dcpl = src_dcpl.copy()
        if chunks is not None and dcpl.get_layout() == h5d.CHUNKED:
            dcpl.set_chunk(tuple(chunks))

    lcpl = h5p.create(h5p.LINK_CREATE)
    lcpl.set_create_intermediate_group(True)
    shape = src.shape if shape is None else tuple(shape)
    name = normalize_storage_path(name)
    dsid = h5d.create(f.id, name.encode('utf-8'), src.id.get_type(), _create_space(shape),
                      dcpl=dcpl, lcpl=lcpl)
    logger.debug("cloned %s to %s in %s", src.name, name, f.filename)
    return h5py.Dataset(dsid)


def normalize_store_arg(store: Any, mode='a') -> H5Store:
    if isinstance(store, H5Store):
        return store
    if isinstance(store, (str, bytes, os.PathLike)):
        if isinstance(store, bytes):
            store = os.fsdecode(store)
        return H5Store(store, mode=mode)
    raise TypeError('store must be a path or an H5Store, found %r' % type(store))


def dataset_access_plist(access: AccessConfig):
    """Build a dataset access property list from `access`."""
    dapl = h5p.create(h5p.DATASET_ACCESS)
    if access.efile_prefix:
        dapl.set_efile_prefix(os.fsencode(access.efile_prefix))
    if access.virtual_prefix:
        dapl.set_virtual_prefix(os.fsencode(access.virtual_prefix))
    dapl.set_virtual_view(_VIRTUAL_VIEWS[access.virtual_view])
    dapl.set_virtual_printf_gap(int(access.virtual_printf_gap))
    return dapl


def _release(oid):
    if oid.valid:
        oid._close()


@contextmanager
def hyperslab_spaces(dset: h5py.Dataset, start: Sequence[int], stride: Sequence[int],
                     count: Sequence[int]) -> Iterator[Tuple[h5s.SpaceID, h5s.SpaceID]]:
    """Yield ``(memory_space, file_space)`` describing a strided hyperslab of
    `dset`. Both spaces are released when the block exits.

    Scalar datasets take no hyperslab; the whole (single) element is
    selected.
    """
    fspace = dset.id.get_space()
    try:
        if fspace.get_simple_extent_type() == h5s.SCALAR:
            mspace = h5s.create(h5s.SCALAR)
        else:
            mspace = h5s.create_simple(tuple(count))
            fspace.select_hyperslab(tuple(start), tuple(count), stride=tuple(stride))
        try:
            yield mspace, fspace
        finally:
            _release(mspace)
    finally:
        _release(fspace)
