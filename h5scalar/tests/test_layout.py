import h5py
import numpy as np
import pytest

from h5scalar.layout import (
    ERROR,
    FilterSpec,
    LayoutReport,
    compression_ratio,
    describe_storage,
    read_filters,
    unavailable_filter,
)
from h5scalar.storage import H5Store

from .util import arange_dataset, make_dataset


def describe(path, name):
    with H5Store(path).open_dataset(name) as dset:
        return describe_storage(dset, dset.dtype.itemsize)


def test_compression_ratio():
    assert '4.000:1' == compression_ratio(1_000_000, 250_000)
    assert '1.000:1' == compression_ratio(10, 10)
    assert '0.500:1' == compression_ratio(5, 10)
    assert compression_ratio(10, 0) is None
    assert compression_ratio(10, None) is None


class TestFilterSpec(object):

    def test_describe(self):
        assert 'GZIP: level = 6' == FilterSpec('deflate', 1, 'deflate', (6,)).describe()
        assert 'SHUFFLE: Nbytes = 4' == FilterSpec('shuffle', 2, 'shuffle', (4,)).describe()
        assert 'Error detection filter' == FilterSpec('fletcher32', 3, 'fletcher32').describe()
        assert 'NBIT' == FilterSpec('nbit', 5, 'nbit').describe()
        assert 'SCALEOFFSET: MIN BITS = 2' == \
            FilterSpec('scaleoffset', 6, 'scaleoffset', (2, 0)).describe()
        assert 'USERDEFINED lzf(32000): 4, 0' == \
            FilterSpec('user', 32000, 'lzf', (4, 0)).describe()

    def test_describe_szip(self):
        spec = FilterSpec('szip', 4, 'szip', (141, 32), encode_enabled=False,
                          decode_enabled=True)
        assert 'SZIP: Pixels per block = 32: H5Z_FILTER_CONFIG_decoder enabled, ' \
               'encoder disabled' == spec.describe()
        assert 'SZIP: Pixels per block = 32' == FilterSpec('szip', 4, 'szip',
                                                           (141, 32)).describe()

    def test_is_compression(self):
        assert FilterSpec('deflate', 1, 'deflate', (6,)).is_compression
        assert not FilterSpec('shuffle', 2, 'shuffle', (4,)).is_compression
        assert not FilterSpec('fletcher32', 3, 'fletcher32').is_compression

    def test_to_codec(self):
        codec = FilterSpec('deflate', 1, 'deflate', (6,)).to_codec()
        assert 'zlib' == codec.codec_id
        assert 6 == codec.level
        assert FilterSpec('user', 32000, 'lzf', ()).to_codec() is None
        assert FilterSpec('nbit', 5, 'nbit').to_codec() is None
        codec = FilterSpec('shuffle', 2, 'shuffle', (4,)).to_codec()
        assert codec is None or 'shuffle' == codec.codec_id


class TestLayoutReport(object):

    def test_defaults(self):
        report = LayoutReport()
        assert ERROR == report.layout_text()
        assert ERROR == report.filter_text()
        assert ERROR == report.compression_text()
        assert 'SIZE: ERROR, allocation time: ERROR' == report.storage_text()
        assert not report.is_external
        assert not report.is_virtual

    def test_texts(self):
        report = LayoutReport(layout='CHUNKED', chunks=(10, 20),
                              filters=[FilterSpec('shuffle', 2, 'shuffle', (4,)),
                                       FilterSpec('deflate', 1, 'deflate', (6,))],
                              ratio='4.000:1', storage_size=250000,
                              allocation_time='Incremental')
        assert 'CHUNKED: 10 X 20' == report.layout_text()
        assert 'SHUFFLE: Nbytes = 4, GZIP: level = 6' == report.filter_text()
        assert '4.000:1, GZIP: level = 6' == report.compression_text()
        assert 'SIZE: 250000, allocation time: Incremental' == report.storage_text()

    def test_no_filters(self):
        report = LayoutReport(layout='CONTIGUOUS', filters=[])
        assert 'NONE' == report.filter_text()
        assert 'NONE' == report.compression_text()

    def test_virtual_text(self):
        report = LayoutReport(layout='VIRTUAL', virtual_view='First Missing', virtual_gap=2,
                              virtual_maps=[('a.h5', 'data'), ('b.h5', 'data')])
        assert 'VIRTUAL: First Missing; GAP : 2; MAPS : a.h5 : data, b.h5 : data' == \
            report.layout_text()
        assert report.is_virtual


class TestDescribeStorage(object):

    def test_chunked_compressed(self, h5path):
        data = np.zeros(250_000, dtype='i4')
        make_dataset(h5path, 'x', data=data, chunks=(25_000,), compression='gzip',
                     compression_opts=6, shuffle=True)
        report = describe(h5path, 'x')
        assert 'CHUNKED' == report.layout
        assert (25_000,) == report.chunks
        assert ['shuffle', 'deflate'] == [f.kind for f in report.filters]
        assert (6,) == report.filters[1].values
        assert 'SHUFFLE: Nbytes = 4, GZIP: level = 6' == report.filter_text()
        assert 0 < report.storage_size < 1_000_000
        assert report.ratio == compression_ratio(1_000_000, report.storage_size)
        assert 'Incremental' == report.allocation_time
        assert report.compression_text().startswith(report.ratio)

    def test_contiguous(self, h5path):
        arange_dataset(h5path, 'x', (10,))
        report = describe(h5path, 'x')
        assert 'CONTIGUOUS' == report.layout
        assert report.chunks is None
        assert [] == report.filters
        assert report.ratio is None
        assert 40 == report.storage_size
        assert 'Late' == report.allocation_time
        assert [] == report.external_files
        assert [] == report.virtual_maps

    def test_chunked_unfiltered(self, h5path):
        arange_dataset(h5path, 'x', (1000,), chunks=(100,))
        report = describe(h5path, 'x')
        assert 'CHUNKED' == report.layout
        assert [] == report.filters
        assert report.storage_size > 0
        assert report.ratio is None
        assert 'NONE' == report.compression_text()

    def test_fletcher32(self, h5path):
        arange_dataset(h5path, 'x', (100,), chunks=(10,), fletcher32=True)
        report = describe(h5path, 'x')
        assert ['fletcher32'] == [f.kind for f in report.filters]
        assert 'Error detection filter' == report.filter_text()
        # checksums are not compression
        assert report.compression_text() == report.ratio

    def test_failed_probe(self, h5path, monkeypatch):
        arange_dataset(h5path, 'x', (100,), chunks=(10,), compression='gzip')

        def broken(dset):
            raise OSError('unreadable filter pipeline')

        monkeypatch.setattr('h5scalar.layout.read_filters', broken)
        report = describe(h5path, 'x')
        assert ERROR == report.filter_text()
        assert 'CHUNKED' == report.layout
        assert report.storage_size > 0


def test_read_filters_names(h5path):
    arange_dataset(h5path, 'x', (100,), chunks=(10,), compression='gzip')
    with H5Store(h5path).open_dataset('x') as dset:
        filters = read_filters(dset)
    assert 1 == len(filters)
    assert h5py.h5z.FILTER_DEFLATE == filters[0].code
    assert 'deflate' == filters[0].name


@pytest.mark.parametrize('available', [True, False])
def test_unavailable_filter(h5path, monkeypatch, available):
    arange_dataset(h5path, 'x', (100,), chunks=(10,), compression='gzip')
    monkeypatch.setattr(h5py.h5z, 'filter_avail', lambda code: available)
    with H5Store(h5path).open_dataset('x') as dset:
        missing = unavailable_filter(dset)
    assert (None if available else 'deflate') == missing
