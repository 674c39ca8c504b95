import logging
import numbers
import operator
from functools import reduce
from textwrap import TextWrapper
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np


logger = logging.getLogger(__name__)


def product(values: Sequence[int]) -> int:
    return reduce(operator.mul, values, 1)


def normalize_shape(shape) -> Tuple[int, ...]:
    """Convenience function to normalize the `shape` argument."""

    if shape is None:
        raise TypeError('shape is None')

    # handle 1D convenience form
    if isinstance(shape, numbers.Integral):
        shape = (int(shape),)

    # normalize
    shape = tuple(int(s) for s in shape)
    return shape


def normalize_maxshape(maxshape, shape: Tuple[int, ...]) -> Optional[Tuple[Optional[int], ...]]:
    """Normalize a maximum extent.

    A zero entry means "same as the current extent" and a negative or None
    entry means unlimited.
    """

    if maxshape is None:
        return None
    if isinstance(maxshape, numbers.Integral):
        maxshape = (int(maxshape),)
    maxshape = tuple(maxshape)
    if len(maxshape) != len(shape):
        raise ValueError('maxshape must have same number of dimensions as shape')

    normalized = []
    for s, m in zip(shape, maxshape):
        if m is None or m < 0:
            normalized.append(None)
        elif m == 0:
            normalized.append(s)
        else:
            normalized.append(int(m))
    return tuple(normalized)


def is_extendible(shape, maxshape) -> bool:
    if maxshape is None:
        return False
    return any(m != s for s, m in zip(shape, maxshape))


def normalize_chunks(chunks, shape: Tuple[int, ...], extendible: bool,
                     default_edge: int) -> Optional[Tuple[int, ...]]:
    """Convenience function to normalize the `chunks` argument for an array
    with the given `shape`."""

    # N.B., expect shape already normalized

    if chunks is None:
        if not extendible:
            return None
        # extendible datasets need chunked storage
        return tuple(max(1, min(s, default_edge)) for s in shape)

    # handle 1D convenience form
    if isinstance(chunks, numbers.Integral):
        chunks = tuple(int(chunks) for _ in shape)

    # handle bad dimensionality
    if len(chunks) != len(shape):
        raise ValueError('chunks must have same number of dimensions as shape')

    # handle None or -1 in chunks
    chunks = tuple(s if c == -1 or c is None else int(c)
                   for s, c in zip(shape, chunks))

    return chunks


def normalize_extend_args(old_shape, *args) -> Tuple[int, ...]:

    # normalize new shape argument
    if len(args) == 1:
        new_shape = args[0]
    else:
        new_shape = args
    if isinstance(new_shape, numbers.Integral):
        new_shape = (new_shape,)
    else:
        new_shape = tuple(new_shape)
    if len(new_shape) != len(old_shape):
        raise ValueError('new shape must have same number of dimensions')

    # handle None in new_shape
    new_shape = tuple(s if n is None else int(n)
                      for s, n in zip(old_shape, new_shape))

    return new_shape


def normalize_fill_value(fill_value, dtype: np.dtype):
    """Convert `fill_value` to a scalar of `dtype`.

    Values that cannot be represented are logged and dropped, leaving the
    dataset without a user-defined fill value.
    """

    if fill_value is None or dtype.hasobject:
        # no fill value
        return None

    try:
        if isinstance(fill_value, str) and dtype.kind == 'S':
            fill_value = fill_value.encode('utf-8')
        elif isinstance(fill_value, str) and dtype.kind in 'iuf':
            fill_value = float(fill_value)
        return np.array(fill_value, dtype=dtype)[()]
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning('fill_value %r is not valid for dtype %s, ignored: %s',
                       fill_value, dtype, e)
        return None


def normalize_storage_path(path: Union[str, bytes, None]) -> str:
    """Normalize an in-file object path to its absolute, slash-separated
    form, e.g. ``"a//b/"`` becomes ``"/a/b"``."""

    # handle bytes
    if isinstance(path, bytes):
        path = str(path, 'ascii')

    # ensure str
    if path is not None and not isinstance(path, str):
        path = str(path)

    if not path:
        raise ValueError('dataset path must not be empty')

    # convert backslash to forward slash
    path = path.replace('\\', '/')

    segments = [s for s in path.split('/') if s]
    if not segments:
        raise ValueError('dataset path must name an object, found %r' % path)

    # don't allow path segments with just '.' or '..'
    if any(s in {'.', '..'} for s in segments):
        raise ValueError("path containing '.' or '..' segment not allowed")

    return '/' + '/'.join(segments)


def human_readable_size(size) -> str:
    if size < 2**10:
        return '%s' % size
    elif size < 2**20:
        return '%.1fK' % (size / float(2**10))
    elif size < 2**30:
        return '%.1fM' % (size / float(2**20))
    elif size < 2**40:
        return '%.1fG' % (size / float(2**30))
    elif size < 2**50:
        return '%.1fT' % (size / float(2**40))
    else:
        return '%.1fP' % (size / float(2**50))


def as_text(value: Any) -> Optional[str]:
    """Best-effort conversion of an attribute value to a stripped string.

    Handles ``str``, ``bytes``, numpy string scalars and single-element
    string arrays. Returns None for anything else.
    """
    if isinstance(value, np.ndarray):
        if value.size != 1 or value.dtype.kind not in 'SUO':
            return None
        value = value.reshape(-1)[0]
    if isinstance(value, (bytes, np.bytes_)):
        value = bytes(value).split(b'\x00', 1)[0].decode('utf-8', errors='replace')
    if isinstance(value, str):
        return value.strip()
    return None


def info_text_report(items: Sequence[Tuple[str, Any]]) -> str:
    keys = [k for k, v in items]
    max_key_len = max(len(k) for k in keys)
    report = ''
    for k, v in items:
        wrapper = TextWrapper(width=80,
                              initial_indent=k.ljust(max_key_len) + ' : ',
                              subsequent_indent=' '*max_key_len + ' : ')
        text = wrapper.fill(str(v))
        report += text + '\n'
    return report


def info_html_report(items) -> str:
    report = '<table class="h5scalar-info">'
    report += '<tbody>'
    for k, v in items:
        report += '<tr>' \
                  '<th style="text-align: left">%s</th>' \
                  '<td style="text-align: left">%s</td>' \
                  '</tr>' \
                  % (k, v)
    report += '</tbody>'
    report += '</table>'
    return report


class InfoReporter(object):

    def __init__(self, obj):
        self.obj = obj

    def __repr__(self):
        items = self.obj.info_items()
        return info_text_report(items)

    def _repr_html_(self):
        items = self.obj.info_items()
        return info_html_report(items)

