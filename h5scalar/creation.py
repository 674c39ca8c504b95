from typing import Optional, Tuple, Union

import numpy.typing as npt

from h5scalar.config import AccessConfig, config
from h5scalar.core import Dataset
from h5scalar.storage import normalize_store_arg
from h5scalar.types import normalize_dtype
from h5scalar.util import (
    is_extendible,
    normalize_chunks,
    normalize_fill_value,
    normalize_maxshape,
    normalize_shape,
    normalize_storage_path,
)


def create(
    store,
    name,
    shape: Union[int, Tuple[int, ...]],
    dtype: npt.DTypeLike = 'f8',
    maxshape=None,
    chunks=None,
    gzip: int = 0,
    fill_value=None,
    data=None,
    overwrite: bool = False,
    convert_text: Optional[bool] = None,
    access: Optional[AccessConfig] = None,
) -> Dataset:
    """Create a dataset.

    Parameters
    ----------
    store : H5Store or string
        File in which to create the dataset. A path is opened in 'a' mode.
    name : string
        Path of the new dataset within the file.
    shape : int or tuple of ints
        Dataset shape.
    dtype : string or dtype, optional
        NumPy dtype, or ``str``/``bytes`` for variable-length text.
    maxshape : int or tuple of ints, optional
        Maximum extent of every dimension. A 0 entry means the same as
        `shape`; a negative or None entry means unlimited. If not given the
        dataset cannot be extended.
    chunks : int or tuple of ints, optional
        Chunk shape. Extendible datasets created without chunks get
        ``min(dim, create.default_chunk)`` in every dimension.
    gzip : int, optional
        Deflate compression level, 0 for none. Requires chunked storage.
    fill_value : object, optional
        Default value to use for uninitialized portions of the dataset.
        Values that cannot be converted to `dtype` are logged and ignored.
    data : array_like, optional
        Initial values, written over the whole dataset.
    overwrite : bool, optional
        If True, delete any pre-existing object at `name`.
    convert_text : bool, optional
        Passed to :class:`Dataset`.
    access : AccessConfig, optional
        Passed to :class:`Dataset`.

    Returns
    -------
    ds : h5scalar.core.Dataset
        The new dataset, resolved.

    Examples
    --------
    Create a chunked, compressed dataset that can grow along its first axis::

        >>> import h5scalar
        >>> ds = h5scalar.create('data/example.h5', '/t', shape=(100, 10),
        ...                      maxshape=(-1, 0), gzip=6, dtype='u2')
        >>> ds.maxshape
        (None, 10)
        >>> ds.introspect_layout().chunks
        (64, 10)

    """

    # normalize arguments
    store = normalize_store_arg(store, mode='a')
    name = normalize_storage_path(name)
    shape = normalize_shape(shape)
    dtype = normalize_dtype(dtype)
    maxshape = normalize_maxshape(maxshape, shape)

    if gzip and chunks is None and not is_extendible(shape, maxshape):
        raise ValueError('gzip compression requires chunked storage')

    chunks = normalize_chunks(chunks, shape, is_extendible(shape, maxshape),
                              config.get('create.default_chunk'))
    fill_value = normalize_fill_value(fill_value, dtype)

    kwargs = dict(shape=shape, dtype=dtype)
    if maxshape is not None:
        kwargs['maxshape'] = maxshape
    if chunks is not None:
        kwargs['chunks'] = chunks
    if gzip:
        kwargs.update(compression='gzip', compression_opts=int(gzip))
    if fill_value is not None:
        kwargs['fillvalue'] = fill_value

    store.create_dataset(name, overwrite=overwrite, **kwargs)

    ds = Dataset(store, name, convert_text=convert_text, access=access)
    ds.resolve()
    if data is not None:
        rank = len(ds.shape)
        ds.set_selection(start=(0,) * rank, stride=(1,) * rank, count=ds.shape)
        ds.write(data)
    return ds


def open_dataset(store, name, mode='a', convert_text=None, access=None,
                 cache_attrs=True) -> Dataset:
    """Open an existing dataset and resolve its metadata.

    Parameters
    ----------
    store : H5Store or string
        File holding the dataset.
    name : string
        Path of the dataset within the file.
    mode : {'r', 'r+', 'a'}, optional
        Persistence mode used when `store` is a path: 'r' means read only,
        'r+' and 'a' mean read/write. The file must exist.

    Returns
    -------
    ds : h5scalar.core.Dataset

    """
    if mode not in ('r', 'r+', 'a'):
        raise ValueError("mode must be one of 'r', 'r+', 'a'; found %r" % mode)
    store = normalize_store_arg(store, mode='r+' if mode == 'a' else mode)
    ds = Dataset(store, name, convert_text=convert_text, access=access,
                 cache_attrs=cache_attrs)
    ds.resolve()
    return ds
