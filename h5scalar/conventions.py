"""Image and CF convention metadata.

The HDF5 image specification marks images with ``CLASS = "IMAGE"`` and
true-color images with ``IMAGE_SUBCLASS = "IMAGE_TRUECOLOR"`` plus an
``INTERLACE_MODE`` of ``INTERLACE_PIXEL`` or ``INTERLACE_PLANE``. Value
ranges come from ``IMAGE_MINMAXRANGE`` or, following the CF conventions,
from ``valid_range`` or ``valid_min``/``valid_max``; ``_FillValue`` names
values to be filtered out.

Everything here is fail-soft: a missing or malformed attribute simply means
the feature is absent.

"""
import logging
from collections import namedtuple
from typing import Any, List, Optional, Tuple

import numpy as np
from h5py import h5a, h5t

from h5scalar.errors import AttributeNotFound
from h5scalar.selection import INTERLACE_PIXEL, INTERLACE_PLANE
from h5scalar.util import as_text


logger = logging.getLogger(__name__)


_INTERLACE_MODES = {
    'INTERLACE_PIXEL': INTERLACE_PIXEL,
    'INTERLACE_PLANE': INTERLACE_PLANE,
}


ImageMarkers = namedtuple('ImageMarkers', ('is_image', 'is_true_color', 'interlace'))


Conventions = namedtuple(
    'Conventions',
    ('is_image', 'is_true_color', 'interlace', 'value_range', 'filtered_values')
)
"""Everything the attribute conventions say about a dataset.

Parameters
----------
is_image
    ``CLASS`` is ``"IMAGE"``.
is_true_color
    The dataset is a true-color image with a recognised interlace mode.
interlace
    ``'pixel'``, ``'plane'`` or None.
value_range
    ``(min, max)`` with ``max > min``, or None.
filtered_values
    Values to be treated as missing.

"""


def read_attribute(attrs, name) -> Any:
    if name not in attrs:
        raise AttributeNotFound(name)
    return attrs[name]


def probe_attribute(attrs, name) -> Any:
    """Read attribute `name`, returning None if it is absent or unreadable."""
    try:
        return read_attribute(attrs, name)
    except AttributeNotFound:
        return None
    except (OSError, TypeError, ValueError, KeyError) as e:
        logger.debug("unable to read attribute %r: %s", name, e)
        return None


def _numbers(value) -> Optional[List[float]]:
    if value is None:
        return None
    try:
        return [float(v) for v in np.asarray(value).reshape(-1)]
    except (TypeError, ValueError) as e:
        logger.debug("ignoring non-numeric attribute value %r: %s", value, e)
        return None


def detect_image(attrs) -> bool:
    text = as_text(probe_attribute(attrs, 'CLASS'))
    return text is not None and text.upper() == 'IMAGE'


def detect_interlace(attrs, rank) -> Optional[str]:
    """Return the true-color interlace mode, or None if the dataset is not a
    true-color image of rank 3 or more."""
    if rank < 3:
        return None
    subclass = as_text(probe_attribute(attrs, 'IMAGE_SUBCLASS'))
    if subclass is None or subclass.upper() != 'IMAGE_TRUECOLOR':
        return None
    mode = as_text(probe_attribute(attrs, 'INTERLACE_MODE'))
    if mode is None:
        return INTERLACE_PIXEL
    return _INTERLACE_MODES.get(mode.upper(), INTERLACE_PIXEL)


def read_image_markers(attrs, rank) -> ImageMarkers:
    interlace = detect_interlace(attrs, rank)
    return ImageMarkers(detect_image(attrs), interlace is not None, interlace)


def value_range(attrs) -> Optional[Tuple[float, float]]:
    """Derive the display range of the data.

    Sources are tried in order: ``IMAGE_MINMAXRANGE``, ``valid_range``,
    then ``valid_min`` together with ``valid_max``. A candidate is only
    accepted if its maximum exceeds its minimum.
    """
    candidates = []

    pair = _numbers(probe_attribute(attrs, 'IMAGE_MINMAXRANGE'))
    if pair is not None and len(pair) >= 2:
        candidates.append((pair[0], pair[1]))

    pair = _numbers(probe_attribute(attrs, 'valid_range'))
    if pair is not None and len(pair) >= 2:
        candidates.append((pair[0], pair[1]))

    vmin = _numbers(probe_attribute(attrs, 'valid_min'))
    vmax = _numbers(probe_attribute(attrs, 'valid_max'))
    if vmin and vmax:
        candidates.append((vmin[0], vmax[0]))

    for lo, hi in candidates:
        if hi > lo:
            return lo, hi
    return None


def filtered_values(attrs, fill_value=None) -> List[Any]:
    """Collect the values to treat as missing: every numeric entry of
    ``_FillValue`` followed by the dataset's own user-defined fill value."""
    values = []
    raw = probe_attribute(attrs, '_FillValue')
    if raw is not None:
        arr = np.asarray(raw).reshape(-1)
        if arr.dtype.kind in 'iuf':
            values.extend(v.item() for v in arr)
    if fill_value is not None:
        fv = np.asarray(fill_value)
        if fv.dtype.kind in 'iuf' and fv.size == 1:
            values.append(fv.reshape(-1)[0].item())
    unique = []
    for v in values:
        if v not in unique:
            unique.append(v)
    return unique


def scan(attrs, rank, fill_value=None) -> Conventions:
    markers = read_image_markers(attrs, rank)
    return Conventions(markers.is_image, markers.is_true_color, markers.interlace,
                       value_range(attrs), filtered_values(attrs, fill_value))


def read_palette_refs(dset) -> Optional[bytes]:
    """Return the raw object references stored in the ``PALETTE`` attribute,
    one 8-byte handle per palette, or None."""
    if 'PALETTE' not in dset.attrs:
        return None
    aid = h5a.open(dset.id, b'PALETTE')
    space = aid.get_space()
    try:
        n = max(1, space.get_simple_extent_npoints())
        buf = np.zeros(n, dtype=np.uint64)
        aid.read(buf, mtype=h5t.STD_REF_OBJ)
        return buf.tobytes()
    finally:
        space._close()
        aid._close()


def _palette_object(dset, index):
    refs = np.asarray(dset.attrs['PALETTE'], dtype=object).reshape(-1)
    return dset.file[refs[index]]


def read_palette(dset, index, max_bytes=768) -> Optional[np.ndarray]:
    """Read palette `index` as a ``(3, 256)`` uint8 table of red, green and
    blue rows. Palettes larger than `max_bytes` are ignored."""
    if 'PALETTE' not in dset.attrs:
        return None
    pal = _palette_object(dset, index)
    if pal.id.get_storage_size() > max_bytes:
        logger.debug("palette %s of %s larger than %s bytes, ignored",
                     pal.name, dset.name, max_bytes)
        return None
    raw = np.asarray(pal[()], dtype=np.uint8).reshape(-1)[:768]
    table = np.zeros(768, dtype=np.uint8)
    table[:raw.size] = raw
    return table.reshape(256, 3).T.copy()


def palette_name(dset, index) -> Optional[str]:
    if 'PALETTE' not in dset.attrs:
        return None
    return _palette_object(dset, index).name
