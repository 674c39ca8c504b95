"""Storage layout, filter pipeline and allocation introspection.

:func:`describe_storage` probes an open dataset and returns a
:class:`LayoutReport`. Each probe is independent: if one fails its section of
the report reads ``ERROR`` and the remaining probes still run.

"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numcodecs
from h5py import h5d, h5z

from h5scalar.util import product


logger = logging.getLogger(__name__)


ERROR = 'ERROR'

_LAYOUT_NAMES = {
    h5d.COMPACT: 'COMPACT',
    h5d.CONTIGUOUS: 'CONTIGUOUS',
    h5d.CHUNKED: 'CHUNKED',
    h5d.VIRTUAL: 'VIRTUAL',
}

_ALLOC_TIME_NAMES = {
    h5d.ALLOC_TIME_EARLY: 'Early',
    h5d.ALLOC_TIME_INCR: 'Incremental',
    h5d.ALLOC_TIME_LATE: 'Late',
    h5d.ALLOC_TIME_DEFAULT: 'Default',
}

_FILTER_KINDS = {
    h5z.FILTER_DEFLATE: 'deflate',
    h5z.FILTER_SHUFFLE: 'shuffle',
    h5z.FILTER_FLETCHER32: 'fletcher32',
    h5z.FILTER_SZIP: 'szip',
    h5z.FILTER_NBIT: 'nbit',
    h5z.FILTER_SCALEOFFSET: 'scaleoffset',
}

_VIEW_NAMES = {
    h5d.VDS_FIRST_MISSING: 'First Missing',
    h5d.VDS_LAST_AVAILABLE: 'Last Available',
}


def compression_ratio(nbytes, storage_size) -> Optional[str]:
    """Format the ratio of uncompressed to stored size.

    >>> compression_ratio(1_000_000, 250_000)
    '4.000:1'

    """
    if not storage_size or storage_size <= 0:
        return None
    return '%.3f:1' % (nbytes / float(storage_size))


@dataclass
class FilterSpec:
    """One entry of a dataset's filter pipeline."""

    kind: str
    code: int
    name: str
    values: Tuple[int, ...] = ()
    encode_enabled: Optional[bool] = None
    decode_enabled: Optional[bool] = None

    @property
    def is_compression(self) -> bool:
        return self.kind in ('deflate', 'szip', 'nbit', 'scaleoffset')

    def describe(self) -> str:
        v = self.values
        if self.kind == 'deflate':
            return 'GZIP: level = %s' % (v[0] if v else '')
        if self.kind == 'fletcher32':
            return 'Error detection filter'
        if self.kind == 'shuffle':
            return 'SHUFFLE: Nbytes = %s' % (v[0] if v else '')
        if self.kind == 'nbit':
            return 'NBIT'
        if self.kind == 'scaleoffset':
            return 'SCALEOFFSET: MIN BITS = %s' % (v[0] if v else '')
        if self.kind == 'szip':
            text = 'SZIP: Pixels per block = %s' % (v[1] if len(v) > 1 else '')
            flags = []
            if self.decode_enabled is not None:
                flags.append('decoder %s' % ('enabled' if self.decode_enabled else 'disabled'))
            if self.encode_enabled is not None:
                flags.append('encoder %s' % ('enabled' if self.encode_enabled else 'disabled'))
            if flags:
                text += ': H5Z_FILTER_CONFIG_%s' % ', '.join(flags)
            return text
        return 'USERDEFINED %s(%s): %s' % (self.name, self.code,
                                           ', '.join(str(x) for x in v))

    def to_codec(self):
        """Return the equivalent numcodecs codec, or None if there is none."""
        if self.kind == 'deflate':
            config = {'id': 'zlib', 'level': int(self.values[0]) if self.values else 1}
        elif self.kind == 'shuffle':
            config = {'id': 'shuffle', 'elementsize': int(self.values[0]) if self.values else 4}
        elif self.kind == 'fletcher32':
            config = {'id': 'fletcher32'}
        else:
            return None
        try:
            return numcodecs.get_codec(config)
        except ValueError:
            logger.debug("no numcodecs codec registered for %r", config['id'])
            return None


@dataclass
class LayoutReport:
    """What the creation and access property lists say about a dataset."""

    layout: str = ERROR
    chunks: Optional[Tuple[int, ...]] = None
    filters: Optional[List[FilterSpec]] = None
    ratio: Optional[str] = None
    storage_size: Optional[int] = None
    allocation_time: str = ERROR
    external_files: List[Tuple[str, int, int]] = field(default_factory=list)
    virtual_maps: List[Tuple[str, str]] = field(default_factory=list)
    virtual_view: Optional[str] = None
    virtual_gap: Optional[int] = None

    @property
    def is_external(self) -> bool:
        return bool(self.external_files)

    @property
    def is_virtual(self) -> bool:
        return self.layout == 'VIRTUAL'

    def layout_text(self) -> str:
        text = self.layout
        if self.layout == 'CHUNKED' and self.chunks is not None:
            text += ': ' + ' X '.join(str(c) for c in self.chunks)
        elif self.layout == 'CONTIGUOUS' and self.is_external:
            text += ' - EXTERNAL '
        elif self.layout == 'VIRTUAL':
            text += ': %s' % (self.virtual_view or ERROR)
            text += '; GAP : %s' % (ERROR if self.virtual_gap is None else self.virtual_gap)
            if self.virtual_maps:
                text += '; MAPS : ' + ', '.join('%s : %s' % m for m in self.virtual_maps)
        return text

    def filter_text(self) -> str:
        if self.filters is None:
            return ERROR
        if not self.filters:
            return 'NONE'
        return ', '.join(f.describe() for f in self.filters)

    def compression_text(self) -> str:
        if self.filters is None:
            return ERROR
        parts = [self.ratio] if self.ratio else []
        parts.extend(f.describe() for f in self.filters if f.is_compression)
        return ', '.join(parts) if parts else 'NONE'

    def storage_text(self) -> str:
        size = ERROR if self.storage_size is None else self.storage_size
        return 'SIZE: %s, allocation time: %s' % (size, self.allocation_time)


def _text(name):
    if isinstance(name, bytes):
        return name.decode('utf-8', errors='replace')
    return name


def _filter_spec(dcpl, index) -> FilterSpec:
    code, flags, values, name = dcpl.get_filter(index)
    name = _text(name)
    kind = _FILTER_KINDS.get(code, 'user')
    spec = FilterSpec(kind, int(code), name, tuple(int(v) for v in values))
    if kind == 'szip':
        config = h5z.get_filter_info(code)
        spec.encode_enabled = bool(config & h5z.FILTER_CONFIG_ENCODE_ENABLED)
        spec.decode_enabled = bool(config & h5z.FILTER_CONFIG_DECODE_ENABLED)
    return spec


def read_filters(dset) -> List[FilterSpec]:
    dcpl = dset.id.get_create_plist()
    return [_filter_spec(dcpl, i) for i in range(dcpl.get_nfilters())]


def read_external_files(dset) -> List[Tuple[str, int, int]]:
    dcpl = dset.id.get_create_plist()
    files = []
    for i in range(dcpl.get_external_count()):
        name, offset, size = dcpl.get_external(i)
        files.append((_text(name), int(offset), int(size)))
    return files


def read_virtual_maps(dset) -> List[Tuple[str, str]]:
    """Return ``(file name, dataset name)`` for each virtual mapping, or an
    empty list if the dataset is not virtual."""
    dcpl = dset.id.get_create_plist()
    if dcpl.get_layout() != h5d.VIRTUAL:
        return []
    return [(_text(dcpl.get_virtual_filename(i)), _text(dcpl.get_virtual_dsetname(i)))
            for i in range(dcpl.get_virtual_count())]


def unavailable_filter(dset) -> Optional[str]:
    """Return the name of the first filter in the pipeline that is not
    available in this process, or None."""
    try:
        filters = read_filters(dset)
    except (OSError, RuntimeError, ValueError) as e:
        logger.debug("unable to read filter pipeline of %s: %s", dset.name, e)
        return None
    for spec in filters:
        if not h5z.filter_avail(spec.code):
            return spec.name or str(spec.code)
    return None


def describe_storage(dset, itemsize) -> LayoutReport:
    """Probe the storage of the open dataset `dset`.

    Parameters
    ----------
    dset : h5py.Dataset
        An open dataset.
    itemsize : int
        Size in bytes of one stored element, used for the compression ratio.

    """
    report = LayoutReport()
    probes = (
        ('layout', _probe_layout),
        ('filters', _probe_filters),
        ('storage', _probe_storage),
        ('external files', _probe_external),
        ('virtual mapping', _probe_virtual),
    )
    for label, probe in probes:
        try:
            probe(dset, report)
        except (OSError, RuntimeError, ValueError, TypeError, KeyError) as e:
            logger.debug("unable to probe %s of %s: %s", label, dset.name, e)

    if report.layout == 'CHUNKED' and report.filters and report.storage_size:
        shape = dset.shape or (1,)
        report.ratio = compression_ratio(product(shape) * itemsize, report.storage_size)
    return report


def _probe_layout(dset, report):
    dcpl = dset.id.get_create_plist()
    layout = dcpl.get_layout()
    report.layout = _LAYOUT_NAMES.get(layout, str(layout))
    if layout == h5d.CHUNKED:
        report.chunks = tuple(int(c) for c in dcpl.get_chunk())


def _probe_filters(dset, report):
    report.filters = read_filters(dset)


def _probe_storage(dset, report):
    report.storage_size = int(dset.id.get_storage_size())
    dcpl = dset.id.get_create_plist()
    report.allocation_time = _ALLOC_TIME_NAMES.get(dcpl.get_alloc_time(), ERROR)


def _probe_external(dset, report):
    report.external_files = read_external_files(dset)


def _probe_virtual(dset, report):
    if report.layout != 'VIRTUAL':
        return
    report.virtual_maps = read_virtual_maps(dset)
    dapl = dset.id.get_access_plist()
    report.virtual_view = _VIEW_NAMES.get(dapl.get_virtual_view(), ERROR)
    report.virtual_gap = int(dapl.get_virtual_printf_gap())
