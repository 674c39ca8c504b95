import logging

import numpy as np
import pytest

from h5scalar.util import (
    as_text,
    human_readable_size,
    info_html_report,
    info_text_report,
    is_extendible,
    normalize_chunks,
    normalize_extend_args,
    normalize_fill_value,
    normalize_maxshape,
    normalize_shape,
    normalize_storage_path,
    product,
)


def test_product():
    assert 1 == product(())
    assert 24 == product((2, 3, 4))


def test_normalize_shape():
    assert (100,) == normalize_shape((100,))
    assert (100,) == normalize_shape([100])
    assert (100,) == normalize_shape(100)
    with pytest.raises(TypeError):
        normalize_shape(None)
    with pytest.raises(ValueError):
        normalize_shape('foo')


def test_normalize_maxshape():
    assert normalize_maxshape(None, (10,)) is None
    assert (10, None, None, 30) == normalize_maxshape((0, -1, None, 30), (10, 20, 5, 7))
    assert (None,) == normalize_maxshape(-1, (10,))
    with pytest.raises(ValueError):
        normalize_maxshape((10,), (10, 10))


def test_is_extendible():
    assert not is_extendible((10,), None)
    assert not is_extendible((10,), (10,))
    assert is_extendible((10,), (None,))
    assert is_extendible((10, 5), (10, 50))


def test_normalize_chunks():
    assert (10,) == normalize_chunks((10,), (100,), False, 64)
    assert (10,) == normalize_chunks([10], (100,), False, 64)
    assert (10,) == normalize_chunks(10, (100,), False, 64)
    assert (10, 10) == normalize_chunks(10, (100, 10), False, 64)
    assert (10, 10) == normalize_chunks((10, None), (100, 10), False, 64)
    assert (10, 10) == normalize_chunks((10, -1), (100, 10), False, 64)
    with pytest.raises(ValueError):
        normalize_chunks((100, 10), (100,), False, 64)

    # contiguous unless the dataset can grow
    assert normalize_chunks(None, (100,), False, 64) is None
    assert (64, 10, 1) == normalize_chunks(None, (100, 10, 0), True, 64)


def test_normalize_extend_args():
    assert (20, 10) == normalize_extend_args((10, 10), 20, 10)
    assert (20, 10) == normalize_extend_args((10, 10), (20, 10))
    assert (20, 10) == normalize_extend_args((10, 10), (20, None))
    assert (20,) == normalize_extend_args((10,), 20)
    with pytest.raises(ValueError):
        normalize_extend_args((10, 10), 20)


def test_normalize_fill_value(caplog):
    assert normalize_fill_value(None, np.dtype('f8')) is None
    assert normalize_fill_value(0, np.dtype(object)) is None
    assert 0 == normalize_fill_value(0, np.dtype('i4'))
    assert np.dtype('i4') == normalize_fill_value(0, np.dtype('i4')).dtype
    assert -1.5 == normalize_fill_value('-1.5', np.dtype('f4'))
    assert b'none' == normalize_fill_value('none', np.dtype('S8'))
    with caplog.at_level(logging.WARNING, logger='h5scalar.util'):
        assert normalize_fill_value('foo', np.dtype('i4')) is None
    assert 'ignored' in caplog.text


def test_normalize_storage_path():
    assert '/foo' == normalize_storage_path('foo')
    assert '/foo/bar' == normalize_storage_path('/foo/bar/')
    assert '/foo/bar' == normalize_storage_path('//foo//bar')
    assert '/foo/bar' == normalize_storage_path(b'foo\\bar')
    for path in [None, '', '/', '//', 'foo/../bar', './foo']:
        with pytest.raises(ValueError):
            normalize_storage_path(path)


def test_human_readable_size():
    assert '100' == human_readable_size(100)
    assert '1.0K' == human_readable_size(2**10)
    assert '1.0M' == human_readable_size(2**20)
    assert '1.0G' == human_readable_size(2**30)
    assert '1.0T' == human_readable_size(2**40)
    assert '1.0P' == human_readable_size(2**50)


def test_as_text():
    assert 'IMAGE' == as_text(' IMAGE ')
    assert 'IMAGE' == as_text(b'IMAGE\x00\x00')
    assert 'IMAGE' == as_text(np.bytes_(b'IMAGE'))
    assert 'IMAGE' == as_text(np.array([b'IMAGE']))
    assert 'IMAGE' == as_text(np.array('IMAGE'))
    assert as_text(np.array([b'A', b'B'])) is None
    assert as_text(np.array([1])) is None
    assert as_text(1) is None


def test_info_reports():
    items = [('Name', '/x'), ('Shape', '(10,)')]
    text = info_text_report(items)
    assert 'Name  : /x\nShape : (10,)\n' == text
    html = info_html_report(items)
    assert html.startswith('<table class="h5scalar-info">')
    assert '<th style="text-align: left">Shape</th>' in html
