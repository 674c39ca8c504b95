import logging
from contextlib import ExitStack
from typing import Any, List, Optional, Tuple

import numpy as np
from h5py import h5d, h5t
from numcodecs.compat import ensure_bytes

from h5scalar import conventions
from h5scalar.attrs import Attributes
from h5scalar.config import AccessConfig, config
from h5scalar.errors import (
    BoundsCheckError,
    DatasetNotFoundError,
    ExtentError,
    FilterUnavailable,
    IOFailure,
    NullBuffer,
    ReadOnlyError,
    SelectionSizeError,
    ShapeMismatch,
    UnresolvedState,
    UnsupportedPayload,
)
from h5scalar.layout import LayoutReport, describe_storage, read_virtual_maps, unavailable_filter
from h5scalar.selection import Selection
from h5scalar.storage import clone_dataset, hyperslab_spaces, normalize_store_arg
from h5scalar.types import ElementType, element_type_from_dtype
from h5scalar.util import InfoReporter, human_readable_size, normalize_extend_args, \
    normalize_storage_path, product


logger = logging.getLogger(__name__)


READ = 'read'
WRITE = 'write'

# errors h5py raises from the HDF5 library
_ENGINE_ERRORS = (OSError, ValueError, TypeError, RuntimeError, KeyError)


class Dataset(object):
    """A typed N-dimensional dataset in an HDF5 file.

    Metadata are resolved lazily on first use and held for the lifetime of the
    object. The file itself is only opened for the duration of each
    operation.

    Parameters
    ----------
    store : H5Store or string
        The file holding the dataset.
    name : string
        Path of the dataset within the file.
    read_only : bool, optional
        True if the dataset should be protected against modification.
        Defaults to the read-only state of the store.
    convert_text : bool, optional
        If True, text is returned as ``str``; otherwise as ``bytes``. Defaults
        to the ``read.convert_text`` configuration value.
    access : AccessConfig, optional
        Access settings (external and virtual source lookup) passed to every
        open. Defaults to the ``access`` configuration section.
    cache_attrs : bool, optional
        If True (default), attributes will be cached for attribute read
        operations.

    Examples
    --------
    >>> import h5scalar
    >>> ds = h5scalar.create('data/example.h5', '/x', shape=(4, 5), dtype='i4')
    >>> ds.resolve()
    >>> ds.shape
    (4, 5)
    >>> ds.read().shape
    (4, 5)

    """

    def __init__(self, store, name, read_only=None, convert_text=None,
                 access: Optional[AccessConfig] = None, cache_attrs=True):
        store = normalize_store_arg(store, mode='r+')
        self._store = store
        self._name = normalize_storage_path(name)
        self._read_only = store.read_only if read_only is None else bool(read_only)
        if convert_text is None:
            convert_text = config.get('read.convert_text')
        self._convert_text = bool(convert_text)
        self._access = access or AccessConfig.from_config()
        self._attrs = Attributes(store, self._name, read_only=self._read_only,
                                 cache=cache_attrs, access=self._access,
                                 on_change=self._invalidate_conventions)
        self._reset_metadata()

    def _reset_metadata(self):
        self._resolved = False
        self._dims: Tuple[int, ...] = ()
        self._maxdims: Tuple[Optional[int], ...] = ()
        self._is_scalar = False
        self._is_empty = False
        self._element_type: Optional[ElementType] = None
        self._is_native = False
        self._is_external = False
        self._is_virtual = False
        self._virtual_names: Optional[List[str]] = None
        self._fill_value = None
        self._fill_value_converted = False
        self._palette_refs: Optional[bytes] = None
        self._palette = None
        self._markers = conventions.ImageMarkers(False, False, None)
        self._conventions: Optional[conventions.Conventions] = None
        self._selection = Selection(0)
        self._buffer = None

    # metadata resolution

    def resolve(self):
        """Load the dataset metadata and apply the default selection.

        Only the first successful call reads metadata; later calls only
        reset the selection. If the dataset cannot be opened the object stays
        unresolved and reads and writes raise :class:`UnresolvedState`.
        """
        if not self._resolved:
            try:
                with self._store.open_dataset(self._name, access=self._access) as dset:
                    self._resolve_nosync(dset)
            except (DatasetNotFoundError,) + _ENGINE_ERRORS as e:
                logger.warning("unable to resolve dataset %s in %s: %s",
                               self._name, self._store.path, e)
                self._reset_metadata()
                return
        self._reset_selection()

    def _resolve_nosync(self, dset):
        self._probe_storage_class(dset)

        try:
            self._palette_refs = conventions.read_palette_refs(dset)
        except _ENGINE_ERRORS as e:
            logger.debug("unable to read palette references of %s: %s", self._name, e)

        shape = dset.shape
        if shape is None:
            # null dataspace
            dims, maxdims = (0,), (0,)
            self._is_empty = True
        elif shape == ():
            dims, maxdims = (1,), (1,)
            self._is_scalar = True
        else:
            dims = tuple(int(d) for d in shape)
            maxdims = tuple(None if m is None else int(m) for m in dset.maxshape)

        etype = element_type_from_dtype(dset.dtype)

        try:
            tid = dset.id.get_type()
            self._is_native = tid.equal(h5t.py_create(etype.native_dtype, logical=True))
        except _ENGINE_ERRORS as e:
            logger.debug("unable to compare %s with its native type: %s", self._name, e)
            self._is_native = False

        self._fill_value = self._read_fill_value(dset, etype)

        rank = len(dims)
        try:
            if rank >= 3:
                self._markers = conventions.read_image_markers(dset.attrs, rank)
            else:
                self._markers = conventions.ImageMarkers(
                    conventions.detect_image(dset.attrs), False, None)
        except _ENGINE_ERRORS as e:
            logger.debug("unable to read image markers of %s: %s", self._name, e)

        self._dims, self._maxdims = dims, maxdims
        self._element_type = etype
        self._selection = Selection(rank)
        self._resolved = True
        logger.debug("resolved dataset %s: shape=%s, type=%s", self._name, dims,
                     etype.describe())

    def _probe_storage_class(self, dset):
        try:
            dcpl = dset.id.get_create_plist()
            self._is_external = dcpl.get_external_count() > 0
            self._is_virtual = dcpl.get_layout() == h5d.VIRTUAL
        except _ENGINE_ERRORS as e:
            logger.debug("unable to read storage layout of %s: %s", self._name, e)
            return
        if self._is_virtual:
            try:
                self._virtual_names = [f for f, _ in read_virtual_maps(dset)]
            except _ENGINE_ERRORS as e:
                logger.debug("unable to read virtual mapping of %s: %s", self._name, e)
                self._virtual_names = None

    def _read_fill_value(self, dset, etype):
        try:
            dcpl = dset.id.get_create_plist()
            if dcpl.fill_value_defined() != h5d.FILL_VALUE_USER_DEFINED:
                return None
            value = dset.fillvalue
            self._fill_value_converted = False
            return self._convert_fill_value(value, etype)
        except _ENGINE_ERRORS as e:
            logger.debug("unable to read fill value of %s: %s", self._name, e)
            return None

    def _convert_fill_value(self, value, etype):
        if self._fill_value_converted or value is None:
            return value
        arr = etype.decode(np.asarray(value).reshape(1), self._convert_text)
        self._fill_value_converted = True
        return arr[0]

    def _reset_selection(self):
        self._selection.reset(self._dims, interlace=self._markers.interlace,
                              is_image=self._markers.is_image)
        self._buffer = None

    def _ensure_resolved(self):
        if not self._resolved:
            self.resolve()
        if not self._resolved:
            raise UnresolvedState(self._name)

    def clear(self):
        """Drop all resolved metadata and caches; the next access resolves
        again."""
        self._reset_metadata()
        self._attrs.invalidate()

    def _invalidate_conventions(self):
        self._conventions = None

    # properties

    @property
    def store(self):
        """A :class:`H5Store` holding the dataset."""
        return self._store

    @property
    def name(self) -> str:
        """Dataset path within the file."""
        return self._name

    @property
    def basename(self) -> str:
        """Final component of name."""
        return self._name.split('/')[-1]

    @property
    def read_only(self) -> bool:
        """A boolean, True if modification operations are not permitted."""
        return self._read_only

    @read_only.setter
    def read_only(self, value):
        self._read_only = bool(value)
        self._attrs.read_only = self._read_only

    @property
    def convert_text(self) -> bool:
        return self._convert_text

    @convert_text.setter
    def convert_text(self, value):
        self._convert_text = bool(value)
        self._buffer = None

    @property
    def access(self) -> AccessConfig:
        return self._access

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    @property
    def attrs(self) -> Attributes:
        """A MutableMapping containing the attributes of the dataset."""
        return self._attrs

    @property
    def rank(self) -> int:
        self._ensure_resolved()
        return len(self._dims)

    ndim = rank

    @property
    def shape(self) -> Tuple[int, ...]:
        """Current extent of every dimension. Scalar datasets report
        ``(1,)``."""
        self._ensure_resolved()
        return self._dims

    def get_shape(self) -> Tuple[int, ...]:
        return self.shape

    @property
    def maxshape(self) -> Tuple[Optional[int], ...]:
        """Maximum extent of every dimension; None means unlimited."""
        self._ensure_resolved()
        return self._maxdims

    @property
    def is_extendible(self) -> bool:
        self._ensure_resolved()
        return any(m is None or m > d for d, m in zip(self._dims, self._maxdims))

    @property
    def size(self) -> int:
        """The total number of elements in the dataset."""
        return product(self.shape)

    @property
    def element_type(self) -> ElementType:
        self._ensure_resolved()
        return self._element_type

    @property
    def dtype(self) -> np.dtype:
        """The numpy dtype of the stored elements."""
        return self.element_type.dtype

    @property
    def is_native(self) -> bool:
        """True if the stored type already is the platform-native type."""
        self._ensure_resolved()
        return self._is_native

    @property
    def is_scalar(self) -> bool:
        self._ensure_resolved()
        return self._is_scalar

    @property
    def is_external(self) -> bool:
        """True if raw data are stored in external files."""
        self._ensure_resolved()
        return self._is_external

    @property
    def is_virtual(self) -> bool:
        self._ensure_resolved()
        return self._is_virtual

    @property
    def virtual_maps(self) -> int:
        """Number of virtual source files, or -1 if the dataset is not
        virtual."""
        self._ensure_resolved()
        if not self._is_virtual or self._virtual_names is None:
            return -1
        return len(self._virtual_names)

    def get_virtual_filename(self, index) -> Optional[str]:
        self._ensure_resolved()
        if not self._is_virtual or self._virtual_names is None:
            return None
        return self._virtual_names[index]

    @property
    def nbytes(self) -> Optional[int]:
        """Uncompressed size of the data in bytes, or None for
        variable-length types."""
        itemsize = self.element_type.size
        if itemsize is None:
            return None
        return self.size * itemsize

    # selection

    @property
    def selection(self) -> Selection:
        """A copy of the active selection."""
        self._ensure_resolved()
        return self._selection.copy()

    def get_selection(self) -> Tuple[Tuple[int, ...], Tuple[int, ...], Tuple[int, ...]]:
        """Return the active ``(start, stride, count)``."""
        self._ensure_resolved()
        sel = self._selection
        return sel.start, sel.stride, sel.count

    def set_selection(self, start=None, stride=None, count=None, selected_index=None):
        """Commit a new selection.

        The selection is not checked against the dataset extent here;
        an out-of-range selection fails when data are read or written.
        """
        self._ensure_resolved()
        self._selection.set(start=start, stride=stride, count=count,
                            selected_index=selected_index)

    @property
    def start(self) -> Tuple[int, ...]:
        self._ensure_resolved()
        return self._selection.start

    @property
    def stride(self) -> Tuple[int, ...]:
        self._ensure_resolved()
        return self._selection.stride

    @property
    def count(self) -> Tuple[int, ...]:
        """Number of elements selected in every dimension."""
        self._ensure_resolved()
        return self._selection.count

    @property
    def selected_index(self) -> Tuple[int, ...]:
        self._ensure_resolved()
        return self._selection.selected_index

    @property
    def is_default_image_order(self) -> bool:
        self._ensure_resolved()
        return self._selection.is_default_image_order

    # data access

    def read(self) -> np.ndarray:
        """Read the active selection.

        Returns
        -------
        out : numpy.ndarray
            Array shaped like the selection count. Text is returned as
            ``str`` when `convert_text` is set and object references as
            integer handles.

        Notes
        -----
        When the element type needs no conversion, consecutive reads of the
        same number of elements fill and return the same buffer.

        """
        self._ensure_resolved()
        return self._common_io(READ)

    def write(self, values):
        """Write `values` into the active selection.

        `values` must hold exactly as many elements as the selection.
        Strings are packed into fixed-length text, enumeration names are
        mapped to their values and wide integers are narrowed to the stored
        type before anything is written.
        """
        if self._read_only:
            raise ReadOnlyError(self._name)
        self._ensure_resolved()
        self._common_io(WRITE, values)

    def _common_io(self, direction, values=None):
        etype = self._element_type
        sel = self._selection
        nitems = sel.nitems

        data = None
        if direction == WRITE:
            data = self._prepare_write(etype, values, nitems)

        if self._is_empty or nitems == 0:
            if direction == READ:
                out_shape = (0,) if self._is_empty else sel.count
                buf = etype.allocate(0).reshape(out_shape + self._item_shape(etype))
                return etype.decode(buf, self._convert_text)
            return None

        with ExitStack() as stack:
            try:
                dset = stack.enter_context(self._store.open_dataset(
                    self._name, write=direction == WRITE, access=self._access))
            except (DatasetNotFoundError,) + _ENGINE_ERRORS as e:
                raise IOFailure(direction, self._name, e) from e
            try:
                sel.check(dset.shape or (1,))
            except BoundsCheckError as e:
                raise IOFailure(direction, self._name, e) from e

            if direction == READ:
                return self._read_nosync(dset, etype, sel, stack)
            self._write_nosync(dset, etype, sel, data, stack)

    def _prepare_write(self, etype, values, nitems):
        if values is None:
            raise NullBuffer()
        if etype.is_region_reference:
            raise UnsupportedPayload('region reference')
        if etype.is_vlen and not etype.is_text:
            raise UnsupportedPayload('variable-length')
        data = etype.encode(values)
        got = data.size // etype.items_per_element if etype.is_array else data.size
        if got != nitems:
            raise SelectionSizeError(got, nitems)
        return data

    def _read_nosync(self, dset, etype, sel, stack):
        nitems = sel.nitems
        out_shape = sel.count
        try:
            if etype.scatter_gather:
                raw = dset[()] if self._is_scalar else dset[sel.to_slices()]
                buf = np.asarray(raw).reshape(out_shape + self._item_shape(etype))
            else:
                buf = self._read_buffer(etype, nitems)
                mspace, fspace = stack.enter_context(
                    hyperslab_spaces(dset, sel.start, sel.stride, sel.count))
                dset.id.read(mspace, fspace, buf, etype.memory_type())
                buf = buf.reshape(out_shape)
        except MemoryError:
            self._buffer = None
            raise
        except _ENGINE_ERRORS as e:
            self._buffer = None
            self._raise_transfer_error(dset, READ, e)

        if not etype.scatter_gather and not etype.requires_fresh_buffer:
            self._buffer = buf
        return etype.decode(buf, self._convert_text)

    def _read_buffer(self, etype, nitems):
        buf = self._buffer
        if (config.get('read.reuse_buffer') and buf is not None
                and not etype.requires_fresh_buffer
                and buf.size == nitems and buf.dtype == etype.native_dtype):
            return buf.reshape(-1)
        self._buffer = None
        return etype.allocate(nitems)

    @staticmethod
    def _item_shape(etype):
        return etype.shape if etype.is_array else ()

    def _write_nosync(self, dset, etype, sel, data, stack):
        try:
            if etype.scatter_gather or data.dtype.kind == 'O':
                shaped = data.reshape(sel.count + self._item_shape(etype))
                if self._is_scalar and etype.is_array:
                    dset[()] = shaped.reshape(etype.shape)
                elif self._is_scalar:
                    dset[()] = shaped.reshape(-1)[0]
                else:
                    dset[sel.to_slices()] = shaped
            else:
                mspace, fspace = stack.enter_context(
                    hyperslab_spaces(dset, sel.start, sel.stride, sel.count))
                buf = np.ascontiguousarray(data).reshape(-1)
                dset.id.write(mspace, fspace, buf, etype.memory_type())
        except _ENGINE_ERRORS as e:
            self._raise_transfer_error(dset, WRITE, e)
        self._buffer = None

    def _raise_transfer_error(self, dset, action, e):
        missing = unavailable_filter(dset)
        if missing is not None:
            raise FilterUnavailable(missing) from e
        raise IOFailure(action, self._name, e) from e

    def read_bytes(self) -> bytes:
        """Read the active selection as the raw bytes of the stored element
        type, without any conversion."""
        self._ensure_resolved()
        etype = self._element_type
        if etype.size is None:
            raise UnsupportedPayload('variable-length raw byte')
        sel = self._selection
        nbytes = sel.nitems * etype.size
        if self._is_empty or nbytes == 0:
            return b''
        with ExitStack() as stack:
            try:
                dset = stack.enter_context(self._store.open_dataset(self._name,
                                                                    access=self._access))
                sel.check(dset.shape or (1,))
            except (DatasetNotFoundError, BoundsCheckError) + _ENGINE_ERRORS as e:
                raise IOFailure(READ, self._name, e) from e
            buf = np.empty(nbytes, dtype=np.uint8)
            try:
                mspace, fspace = stack.enter_context(
                    hyperslab_spaces(dset, sel.start, sel.stride, sel.count))
                dset.id.read(mspace, fspace, buf, dset.id.get_type())
            except _ENGINE_ERRORS as e:
                self._raise_transfer_error(dset, READ, e)
        return ensure_bytes(buf)

    def extend(self, *args):
        """Grow or shrink the current extent of one or more dimensions, within
        the maximum extent.

        Examples
        --------
        >>> import h5scalar
        >>> ds = h5scalar.create('data/example.h5', '/ext', shape=(10, 10),
        ...                      maxshape=(None, 10), dtype='i4', overwrite=True)
        >>> ds.extend(20, 10)
        >>> ds.shape
        (20, 10)

        """
        if self._read_only:
            raise ReadOnlyError(self._name)
        self._ensure_resolved()
        new_dims = normalize_extend_args(self._dims, *args)
        for i, (n, m) in enumerate(zip(new_dims, self._maxdims)):
            if m is not None and n > m:
                raise ExtentError(new_dims, self._maxdims, i)

        try:
            with self._store.open_dataset(self._name, write=True, access=self._access) as dset:
                dset.resize(new_dims)
                dset.flush()
                found = tuple(dset.shape)
        except (DatasetNotFoundError,) + _ENGINE_ERRORS as e:
            raise IOFailure('extend', self._name, e) from e

        if found != new_dims:
            raise ShapeMismatch(self._name, new_dims, found)
        self._dims = new_dims
        logger.debug("extended dataset %s to %s", self._name, new_dims)

    def copy(self, dst_name, dims=None, data=None) -> 'Dataset':
        """Create a new dataset at `dst_name` with the same element type,
        creation properties and attributes as this one.

        Parameters
        ----------
        dst_name : string
            Path of the new dataset in the same file.
        dims : tuple of ints, optional
            Shape of the new dataset; defaults to the current shape. Chunks
            larger than the new shape are shrunk to fit.
        data : array_like, optional
            Values written into the new dataset.

        """
        self._ensure_resolved()
        dst_name = normalize_storage_path(dst_name)
        try:
            with self._store.open_file(write=True) as f:
                src = f[self._name]
                shape = tuple(dims) if dims is not None else src.shape
                chunks = None
                if src.chunks is not None and shape:
                    chunks = shrink_chunks(src.chunks, shape)
                dst = clone_dataset(f, src, dst_name, shape=shape, chunks=chunks)
                for key in src.attrs:
                    dst.attrs.create(key, src.attrs[key], dtype=src.attrs.get_id(key).dtype)
        except _ENGINE_ERRORS as e:
            raise IOFailure('copy', self._name, e) from e

        new = Dataset(self._store, dst_name, read_only=self._read_only,
                      convert_text=self._convert_text, access=self._access)
        if data is not None:
            new.resolve()
            new.set_selection(start=(0,) * new.rank, stride=(1,) * new.rank,
                              count=new.shape)
            new.write(data)
        return new

    # fill value and conventions

    def get_fill_value(self):
        """The user-defined fill value, or None if none was defined."""
        self._ensure_resolved()
        return self._fill_value

    fill_value = property(get_fill_value)

    def _load_conventions(self) -> conventions.Conventions:
        self._ensure_resolved()
        if self._conventions is None:
            try:
                with self._store.open_dataset(self._name, access=self._access) as dset:
                    self._conventions = conventions.scan(dset.attrs, len(self._dims),
                                                         self._fill_value)
            except (DatasetNotFoundError,) + _ENGINE_ERRORS as e:
                logger.debug("unable to scan attributes of %s: %s", self._name, e)
                return conventions.Conventions(False, False, None, None, [])
        return self._conventions

    def is_image(self) -> bool:
        return self._load_conventions().is_image

    def is_true_color(self) -> bool:
        return self._load_conventions().is_true_color

    def get_interlace(self) -> Optional[str]:
        """``'pixel'``, ``'plane'`` or None."""
        return self._load_conventions().interlace

    def get_value_range(self) -> Optional[Tuple[float, float]]:
        return self._load_conventions().value_range

    def get_filtered_values(self) -> List[Any]:
        return list(self._load_conventions().filtered_values)

    def has_attributes(self) -> bool:
        return len(self._attrs) > 0

    # palettes

    def get_palette_refs(self) -> Optional[bytes]:
        """Raw palette references, 8 bytes per palette."""
        self._ensure_resolved()
        return self._palette_refs

    @property
    def num_palettes(self) -> int:
        refs = self.get_palette_refs()
        return len(refs) // 8 if refs else 0

    def read_palette(self, index) -> Optional[np.ndarray]:
        """Read palette `index` as a ``(3, 256)`` table, or None."""
        self._ensure_resolved()
        if index < 0 or index >= self.num_palettes:
            return None
        try:
            with self._store.open_dataset(self._name, access=self._access) as dset:
                return conventions.read_palette(dset, index,
                                                config.get('palette.max_bytes'))
        except (DatasetNotFoundError, IndexError) + _ENGINE_ERRORS as e:
            logger.debug("unable to read palette %s of %s: %s", index, self._name, e)
            return None

    def get_palette(self) -> Optional[np.ndarray]:
        """The first palette, cached after the first read."""
        if self._palette is None:
            self._palette = self.read_palette(0)
        return self._palette

    def get_palette_name(self, index) -> Optional[str]:
        self._ensure_resolved()
        if index < 0 or index >= self.num_palettes:
            return None
        try:
            with self._store.open_dataset(self._name, access=self._access) as dset:
                return conventions.palette_name(dset, index)
        except (DatasetNotFoundError, IndexError) + _ENGINE_ERRORS as e:
            logger.debug("unable to read palette name %s of %s: %s", index, self._name, e)
            return None

    # introspection

    def introspect_layout(self) -> LayoutReport:
        """Report storage layout, filters and allocation of the dataset."""
        self._ensure_resolved()
        itemsize = self._element_type.size
        try:
            with self._store.open_dataset(self._name, access=self._access) as dset:
                if itemsize is None:
                    itemsize = dset.id.get_type().get_size()
                return describe_storage(dset, itemsize)
        except (DatasetNotFoundError,) + _ENGINE_ERRORS as e:
            logger.debug("unable to introspect %s: %s", self._name, e)
            return LayoutReport()

    def __eq__(self, other):
        return (
            isinstance(other, Dataset) and
            self.store == other.store and
            self.name == other.name
        )

    def __hash__(self):
        return hash((self._store, self._name))

    def __repr__(self):
        t = type(self)
        r = '<{}.{}'.format(t.__module__, t.__name__)
        r += ' %r' % self._name
        if self._resolved:
            r += ' %s' % str(self._dims)
            r += ' %s' % self._element_type.dtype
        else:
            r += ' (unresolved)'
        if self._read_only:
            r += ' read-only'
        r += '>'
        return r

    @property
    def info(self):
        """Report some diagnostic information about the dataset.

        Examples
        --------
        >>> import h5scalar
        >>> ds = h5scalar.create('data/example.h5', '/info', shape=(1000, 1000),
        ...                      chunks=(100, 100), gzip=6, dtype='i4', overwrite=True)
        >>> ds.info  # doctest: +SKIP
        Name            : /info
        Type            : h5scalar.core.Dataset
        Data type       : 32-bit signed integer
        Shape           : (1000, 1000)
        Max shape       : (1000, 1000)
        Read-only       : False
        Layout          : CHUNKED: 100 X 100
        Filters         : GZIP: level = 6
        Compression     : GZIP: level = 6
        Storage         : SIZE: 0, allocation time: Incremental
        Store type      : h5scalar.storage.H5Store
        No. bytes       : 4000000 (3.8M)

        """
        return InfoReporter(self)

    def info_items(self):

        def typestr(o):
            return '{}.{}'.format(type(o).__module__, type(o).__name__)

        def bytestr(n):
            if n > 2**10:
                return '{} ({})'.format(n, human_readable_size(n))
            else:
                return str(n)

        self._ensure_resolved()
        report = self.introspect_layout()

        items = [
            ('Name', self._name),
            ('Type', typestr(self)),
            ('Data type', self._element_type.describe()),
            ('Shape', str(self._dims)),
            ('Max shape', str(self._maxdims)),
            ('Read-only', str(self._read_only)),
            ('Layout', report.layout_text()),
            ('Filters', report.filter_text()),
            ('Compression', report.compression_text()),
            ('Storage', report.storage_text()),
        ]
        if self._fill_value is not None:
            items += [('Fill value', str(self._fill_value))]
        if report.external_files:
            items += [('External files', ', '.join(f for f, _, _ in report.external_files))]

        items += [('Store type', typestr(self._store))]
        nbytes = self.nbytes
        if nbytes is not None:
            items += [('No. bytes', bytestr(nbytes))]

        return items


def shrink_chunks(chunks, shape) -> Tuple[int, ...]:
    """Shrink chunk edges that exceed the corresponding dimension of
    `shape`."""
    new = []
    for c, s in zip(chunks, shape):
        if s < c:
            c = 1 if s <= 1 else s // 2
        new.append(c)
    return tuple(new)
