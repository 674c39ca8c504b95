import numbers
from typing import Optional, Sequence, Tuple

from h5scalar.errors import BoundsCheckError
from h5scalar.util import product


INTERLACE_PIXEL = 'pixel'
INTERLACE_PLANE = 'plane'


def is_integer(x):
    return isinstance(x, numbers.Integral)


def _normalize_vector(values, rank, name):
    if is_integer(values):
        values = (values,)
    values = tuple(int(v) for v in values)
    if len(values) != rank:
        raise ValueError('%s must have %s entries, found %s' % (name, rank, len(values)))
    return values


def check_bounds(dim, start, stride, count, dim_len):
    """Check one dimension of a hyperslab against its extent.

    A zero count selects nothing and is always in bounds.
    """
    if start < 0 or stride < 1 or count < 0:
        raise BoundsCheckError(dim, start, stride, count, dim_len)
    if count and start + stride * (count - 1) >= dim_len:
        raise BoundsCheckError(dim, start, stride, count, dim_len)


class Selection(object):
    """A strided hyperslab over the dimensions of a dataset, plus the display
    axes used when the dataset is viewed as an image.

    Parameters
    ----------
    rank : int
        Number of dimensions.

    Notes
    -----
    Getters hand out tuples, so callers cannot change the selection behind
    its back. The selection only changes through :func:`Selection.reset` and
    :func:`Selection.set`. Neither validates against the dataset extent;
    bounds are checked at I/O time by :func:`Selection.check`.

    """

    def __init__(self, rank=0):
        self._rank = int(rank)
        self._start = (0,) * self._rank
        self._stride = (1,) * self._rank
        self._count = (1,) * self._rank
        self._selected_index = (0, 1, 2)[:max(1, min(self._rank, 3))]

    @property
    def rank(self):
        return self._rank

    @property
    def start(self) -> Tuple[int, ...]:
        return self._start

    @property
    def stride(self) -> Tuple[int, ...]:
        return self._stride

    @property
    def count(self) -> Tuple[int, ...]:
        return self._count

    @property
    def selected_index(self) -> Tuple[int, ...]:
        """Dimension indices used as (height, width, depth) for display."""
        return self._selected_index

    @property
    def nitems(self) -> int:
        """Number of elements covered by the selection."""
        return product(self._count)

    @property
    def is_default_image_order(self) -> bool:
        """False when the display height axis comes after the width axis."""
        si = self._selected_index
        return not (self._rank > 1 and si[0] > si[1])

    def reset(self, dims: Sequence[int], interlace: Optional[str] = None,
              is_image: bool = False):
        """Reset to the default selection for a dataset of extent `dims`.

        The default covers every dimension in full, except for true-color
        images where the three color components are forced into the
        selection.
        """
        dims = tuple(int(d) for d in dims)
        rank = len(dims)
        self._rank = rank
        self._start = (0,) * rank
        self._stride = (1,) * rank
        count = list(dims)

        if rank >= 3 and interlace == INTERLACE_PIXEL:
            count[0], count[1], count[2] = dims[0], dims[1], 3
            count[3:] = [1] * (rank - 3)
            selected_index = (0, 1, 2)
        elif rank >= 3 and interlace == INTERLACE_PLANE:
            count[0], count[1], count[2] = 3, dims[1], dims[2]
            count[3:] = [1] * (rank - 3)
            selected_index = (1, 2, 0)
        elif rank > 2:
            if is_image:
                # frames first, then rows and columns
                selected_index = (rank - 2, rank - 1, rank - 3)
            else:
                selected_index = (0, 1, 2)
        elif rank == 2:
            selected_index = (0, 1)
        else:
            selected_index = (0,)

        self._count = tuple(count)
        self._selected_index = selected_index

    def set(self, start=None, stride=None, count=None, selected_index=None):
        """Commit a new selection. Omitted parts are left unchanged."""
        rank = self._rank
        new_start = self._start if start is None else _normalize_vector(start, rank, 'start')
        new_stride = self._stride if stride is None else _normalize_vector(stride, rank,
                                                                           'stride')
        new_count = self._count if count is None else _normalize_vector(count, rank, 'count')
        if selected_index is None:
            new_index = self._selected_index
        else:
            new_index = tuple(int(i) for i in selected_index)
            if not new_index or len(new_index) > 3 or \
                    any(i < 0 or i >= rank for i in new_index):
                raise ValueError('invalid selected_index %r for rank %s' % (new_index, rank))
        self._start, self._stride, self._count = new_start, new_stride, new_count
        self._selected_index = new_index

    def check(self, dims: Sequence[int]):
        """Raise BoundsCheckError if the selection leaves the extent `dims`."""
        for i, (s, st, c, d) in enumerate(zip(self._start, self._stride, self._count, dims)):
            check_bounds(i, s, st, c, d)

    def to_slices(self) -> Tuple[slice, ...]:
        """Express the selection as a tuple of slices for basic indexing."""
        return tuple(slice(s, s + st * (c - 1) + 1 if c else s, st)
                     for s, st, c in zip(self._start, self._stride, self._count))

    def copy(self):
        other = Selection(self._rank)
        other._start, other._stride, other._count = self._start, self._stride, self._count
        other._selected_index = self._selected_index
        return other

    def __eq__(self, other):
        return (isinstance(other, Selection) and self._start == other._start and
                self._stride == other._stride and self._count == other._count and
                self._selected_index == other._selected_index)

    def __repr__(self):
        return 'Selection(start=%r, stride=%r, count=%r, selected_index=%r)' % (
            self._start, self._stride, self._count, self._selected_index)
