import pytest

from h5scalar.errors import BoundsCheckError
from h5scalar.selection import INTERLACE_PIXEL, INTERLACE_PLANE, Selection, check_bounds


def test_check_bounds():
    check_bounds(0, 0, 1, 10, 10)
    check_bounds(0, 9, 1, 1, 10)
    check_bounds(0, 1, 3, 3, 10)
    # nothing selected
    check_bounds(0, 10, 1, 0, 10)
    for start, stride, count in [(0, 1, 11), (9, 1, 2), (1, 3, 4), (-1, 1, 1),
                                 (0, 0, 1), (0, 1, -1)]:
        with pytest.raises(BoundsCheckError):
            check_bounds(0, start, stride, count, 10)


class TestReset(object):

    @pytest.mark.parametrize('dims', [(7,), (3, 4), (2, 3, 4), (2, 2, 3, 2)])
    def test_full_extent(self, dims):
        sel = Selection(len(dims))
        sel.reset(dims)
        assert (0,) * len(dims) == sel.start
        assert (1,) * len(dims) == sel.stride
        assert dims == sel.count

    def test_natural_axis_order(self):
        sel = Selection()
        sel.reset((7,))
        assert (0,) == sel.selected_index
        sel.reset((3, 4))
        assert (0, 1) == sel.selected_index
        sel.reset((2, 3, 4, 5))
        assert (0, 1, 2) == sel.selected_index
        assert sel.is_default_image_order

    def test_image_axis_order(self):
        sel = Selection()
        sel.reset((2, 3, 4, 5), is_image=True)
        assert (2, 3, 4, 5) == sel.count
        assert (2, 3, 1) == sel.selected_index
        sel.reset((3, 4, 5), is_image=True)
        assert (1, 2, 0) == sel.selected_index

    def test_pixel_interlace(self):
        sel = Selection()
        sel.reset((4, 5, 3), interlace=INTERLACE_PIXEL, is_image=True)
        assert (4, 5, 3) == sel.count
        assert (0, 1, 2) == sel.selected_index

    def test_plane_interlace(self):
        sel = Selection()
        sel.reset((5, 4, 3), interlace=INTERLACE_PLANE)
        assert (3, 4, 3) == sel.count
        # height, width, plane
        assert (1, 2, 0) == sel.selected_index

    def test_interlace_higher_rank(self):
        sel = Selection()
        sel.reset((4, 5, 3, 6), interlace=INTERLACE_PIXEL)
        assert (4, 5, 3, 1) == sel.count
        sel.reset((3, 4, 5, 6), interlace=INTERLACE_PLANE)
        assert (3, 4, 5, 1) == sel.count

    def test_interlace_ignored_below_rank_3(self):
        sel = Selection()
        sel.reset((4, 5), interlace=INTERLACE_PIXEL)
        assert (4, 5) == sel.count


class TestSet(object):

    def test_partial(self):
        sel = Selection()
        sel.reset((10, 20))
        sel.set(start=(1, 2))
        assert (1, 2) == sel.start
        assert (1, 1) == sel.stride
        assert (10, 20) == sel.count
        sel.set(stride=(2, 2), count=(3, 4))
        assert (1, 2) == sel.start
        assert 12 == sel.nitems

    def test_scalar_shorthand(self):
        sel = Selection()
        sel.reset((10,))
        sel.set(start=2, stride=2, count=3)
        assert (2,) == sel.start
        assert (slice(2, 7, 2),) == sel.to_slices()

    def test_not_checked_against_extent(self):
        sel = Selection()
        sel.reset((10,))
        sel.set(start=8, count=5)
        with pytest.raises(BoundsCheckError):
            sel.check((10,))

    def test_invalid(self):
        sel = Selection()
        sel.reset((10, 20))
        with pytest.raises(ValueError):
            sel.set(start=(1,))
        with pytest.raises(ValueError):
            sel.set(selected_index=(0, 2))
        with pytest.raises(ValueError):
            sel.set(selected_index=())
        # unchanged after a failed set
        assert (0, 0) == sel.start

    def test_selected_index(self):
        sel = Selection()
        sel.reset((10, 20))
        sel.set(selected_index=(1, 0))
        assert (1, 0) == sel.selected_index
        assert not sel.is_default_image_order


def test_to_slices_empty():
    sel = Selection()
    sel.reset((10,))
    sel.set(count=0)
    assert 0 == sel.nitems
    assert (slice(0, 0, 1),) == sel.to_slices()


def test_copy_and_eq():
    sel = Selection()
    sel.reset((10, 20))
    other = sel.copy()
    assert sel == other
    other.set(start=(1, 1))
    assert sel != other
    assert (0, 0) == sel.start
    assert 'Selection(start=(0, 0)' in repr(sel)
