"""Element type descriptors.

Every element type the storage engine can report decodes to exactly one
:class:`ElementType` subclass. Each subclass must define how values travel
in both directions: :meth:`ElementType.decode` turns what was read from the
store into host values and :meth:`ElementType.encode` turns host values into
an array ready to be written. Both are abstract, so a variant that does not
define them cannot be instantiated.

"""
import abc
from typing import Any, Dict, Mapping, Optional, Tuple

import h5py
import numpy as np
from h5py import h5t
from numcodecs.compat import ensure_text

from h5scalar.errors import DataConversionError, OutOfMemory, UnknownEnumName
from h5scalar.util import product


class ElementType(abc.ABC):
    """Description of the element type of a dataset.

    Parameters
    ----------
    dtype : numpy.dtype
        The dtype reported by the storage engine. It may carry h5py metadata
        (string, enum, reference or vlen hints).

    """

    type_class = "unknown"

    is_text = False
    is_vlen = False
    is_enum = False
    is_reference = False
    is_region_reference = False
    is_array = False

    def __init__(self, dtype):
        self._dtype = np.dtype(dtype)

    @property
    def dtype(self) -> np.dtype:
        """dtype as stored, including h5py metadata."""
        return self._dtype

    @property
    def size(self) -> Optional[int]:
        """Size in bytes of one element, or None for variable-length types."""
        return self._dtype.itemsize

    @property
    def is_unsigned(self) -> bool:
        return False

    @property
    def native_dtype(self) -> np.dtype:
        """dtype of the host-addressable counterpart of the stored type."""
        return self._dtype

    @property
    def items_per_element(self) -> int:
        return 1

    @property
    def requires_fresh_buffer(self) -> bool:
        # these change the shape or type of the buffer on conversion
        return self.is_enum or self.is_text or self.is_reference

    @property
    def scatter_gather(self) -> bool:
        """True if each element is an independently sized record."""
        return self.is_vlen

    def native(self) -> "ElementType":
        """Return the native counterpart of this type."""
        return element_type_from_dtype(self.native_dtype)

    def memory_type(self):
        """HDF5 memory type to use for bulk transfers, or None to derive it
        from the buffer dtype."""
        return None

    def allocate(self, nitems: int) -> np.ndarray:
        """Allocate a flat transfer buffer for `nitems` elements."""
        try:
            return np.empty(nitems, dtype=self.native_dtype)
        except (MemoryError, ValueError) as e:
            raise OutOfMemory(nitems, self.describe()) from e

    @abc.abstractmethod
    def decode(self, data: np.ndarray, convert_text: bool = True) -> np.ndarray:
        """Convert data read from the store into host values."""

    @abc.abstractmethod
    def encode(self, values: Any) -> np.ndarray:
        """Convert host values into an array ready to be written."""

    @abc.abstractmethod
    def describe(self) -> str:
        """Human readable description."""

    def __eq__(self, other):
        return type(self) is type(other) and self._dtype == other._dtype

    def __hash__(self):
        return hash((type(self).__name__, self._dtype.str))

    def __repr__(self):
        return f"{type(self).__name__}({self.describe()!r})"


def _bits(size):
    return f"{size * 8}-bit"


def _as_array(values, dtype=None) -> np.ndarray:
    try:
        return np.asarray(values, dtype=dtype)
    except (TypeError, ValueError, OverflowError) as e:
        raise DataConversionError(e) from e


def narrow_integers(arr: np.ndarray, target: np.dtype) -> np.ndarray:
    """Cast integer data to `target`, checking that every value fits.

    Used when the caller holds values in a wider (or differently signed)
    integer type than the one stored, e.g. unsigned bytes held as int16.
    """
    if arr.dtype == target:
        return arr
    if arr.dtype.kind == 'f':
        if arr.size:
            with np.errstate(invalid='ignore'):
                integral = np.all(np.mod(arr, 1) == 0)
            if not integral:
                raise DataConversionError(
                    f"non-integral values cannot be stored as {target}")
            info = np.iinfo(target)
            lo, hi = arr.min(), arr.max()
            if lo < info.min or hi > info.max:
                raise DataConversionError(
                    f"values in range [{lo}, {hi}] do not fit {target}")
        return arr.astype(target)
    if arr.dtype.kind in 'iub':
        if arr.size:
            info = np.iinfo(target)
            lo, hi = int(arr.min()), int(arr.max())
            if lo < info.min or hi > info.max:
                raise DataConversionError(
                    f"values in range [{lo}, {hi}] do not fit {target}")
        return arr.astype(target)
    return _as_array(arr, dtype=target)


class IntegerType(ElementType):

    type_class = "integer"

    @property
    def is_unsigned(self) -> bool:
        return self._dtype.kind == 'u'

    @property
    def native_dtype(self) -> np.dtype:
        return np.dtype(f"{self._dtype.kind}{self._dtype.itemsize}")

    def decode(self, data, convert_text=True):
        return data

    def encode(self, values):
        return narrow_integers(_as_array(values), self.native_dtype)

    def describe(self):
        sign = "unsigned" if self.is_unsigned else "signed"
        return f"{_bits(self.size)} {sign} integer"


class BooleanType(ElementType):

    type_class = "integer"

    @property
    def native_dtype(self) -> np.dtype:
        return np.dtype(bool)

    def decode(self, data, convert_text=True):
        return data

    def encode(self, values):
        return _as_array(values, dtype=bool)

    def describe(self):
        return "boolean"


class FloatType(ElementType):

    type_class = "float"

    @property
    def native_dtype(self) -> np.dtype:
        return np.dtype(f"{self._dtype.kind}{self._dtype.itemsize}")

    def decode(self, data, convert_text=True):
        return data

    def encode(self, values):
        return _as_array(values, dtype=self.native_dtype)

    def describe(self):
        if self._dtype.kind == 'c':
            return f"{_bits(self.size)} complex"
        return f"{_bits(self.size)} floating-point"


def _codec_name(encoding):
    # ascii is a subset of utf-8
    return 'utf-8' if encoding == 'ascii' else encoding


class FixedTextType(ElementType):
    """Fixed-width byte strings, one record of `length` bytes per element."""

    type_class = "string"
    is_text = True

    def __init__(self, length: int, encoding: str = 'ascii'):
        super().__init__(h5py.string_dtype(encoding, int(length)))
        self.length = int(length)
        self.encoding = encoding

    @property
    def native_dtype(self) -> np.dtype:
        # carries the h5py encoding hint
        return self._dtype

    def native(self):
        return self

    def memory_type(self):
        return h5t.py_create(self.native_dtype)

    def decode(self, data, convert_text=True):
        if not convert_text or data.dtype.kind != 'S':
            return data
        return np.char.decode(data, _codec_name(self.encoding), 'replace')

    def encode(self, values):
        arr = _as_array(values)
        if arr.dtype.kind == 'O' and arr.size:
            first = arr.reshape(-1)[0]
            arr = _as_array(arr, dtype='S' if isinstance(first, bytes) else 'U')
        if arr.dtype.kind == 'U':
            try:
                arr = np.char.encode(arr, self.encoding)
            except UnicodeEncodeError as e:
                raise DataConversionError(e) from e
        if arr.dtype.kind != 'S':
            raise DataConversionError(
                f"cannot store values of dtype {arr.dtype} as fixed-length text")
        # pads short records with nulls and truncates long ones
        return arr.astype(self.native_dtype)

    def describe(self):
        return f"String, length = {self.length}, {self.encoding}"


class VarTextType(ElementType):
    """Variable-length strings."""

    type_class = "string"
    is_text = True
    is_vlen = True

    def __init__(self, encoding: str = 'utf-8'):
        super().__init__(h5py.string_dtype(encoding))
        self.encoding = encoding

    @property
    def size(self):
        return None

    def allocate(self, nitems):
        try:
            return np.empty(nitems, dtype=object)
        except (MemoryError, ValueError) as e:
            raise OutOfMemory(nitems, self.describe()) from e

    def decode(self, data, convert_text=True):
        if not convert_text:
            return data
        encoding = _codec_name(self.encoding)
        flat = [ensure_text(v, encoding) if isinstance(v, bytes) else v
                for v in np.asarray(data, dtype=object).reshape(-1)]
        out = np.empty(len(flat), dtype=object)
        out[:] = flat
        return out.reshape(np.shape(data))

    def encode(self, values):
        # variable-length strings are handed to the store as they are
        return _as_array(values, dtype=object)

    def describe(self):
        return f"String, length = variable, {self.encoding}"


class EnumType(ElementType):
    """Enumeration over an integer base type."""

    type_class = "enum"
    is_enum = True

    def __init__(self, base: IntegerType, members: Mapping[str, int]):
        self.base = base
        self.members: Dict[str, int] = {str(k): int(v) for k, v in members.items()}
        super().__init__(h5py.enum_dtype(self.members, basetype=base.dtype))

    @property
    def is_unsigned(self) -> bool:
        return self.base.is_unsigned

    @property
    def native_dtype(self) -> np.dtype:
        return h5py.enum_dtype(self.members, basetype=self.base.native_dtype)

    def native(self):
        return EnumType(IntegerType(self.base.native_dtype), self.members)

    def memory_type(self):
        return h5t.py_create(self.native_dtype, logical=True)

    def allocate(self, nitems):
        try:
            return np.empty(nitems, dtype=self.base.native_dtype)
        except (MemoryError, ValueError) as e:
            raise OutOfMemory(nitems, self.describe()) from e

    def names(self, values) -> np.ndarray:
        """Map stored values to member names (None where unmapped)."""
        lookup = {v: k for k, v in self.members.items()}
        arr = np.asarray(values)
        out = np.empty(arr.shape, dtype=object)
        for idx, v in np.ndenumerate(arr):
            out[idx] = lookup.get(int(v))
        return out

    def decode(self, data, convert_text=True):
        return data

    def encode(self, values):
        arr = _as_array(values)
        symbolic = arr.dtype.kind in 'US' or (
            arr.dtype.kind == 'O' and arr.size
            and isinstance(arr.reshape(-1)[0], (str, bytes)))
        if symbolic:
            out = np.empty(arr.shape, dtype=self.base.native_dtype)
            for idx, name in np.ndenumerate(arr):
                key = ensure_text(name, 'utf-8') if isinstance(name, bytes) else str(name)
                try:
                    out[idx] = self.members[key]
                except KeyError:
                    raise UnknownEnumName(key, self.members) from None
            return out
        return self.base.encode(arr)

    def describe(self):
        items = ", ".join(f"{k}={v}" for k, v in sorted(self.members.items(),
                                                          key=lambda kv: kv[1]))
        return f"enum ({self.base.describe()}) {{{items}}}"

    def __eq__(self, other):
        return super().__eq__(other) and self.members == other.members

    def __hash__(self):
        return hash((type(self).__name__, self.base.dtype.str,
                     tuple(sorted(self.members.items()))))


class ReferenceType(ElementType):
    """Object or region references.

    Object references travel as integer handles (the raw 8-byte address);
    region references are passed through as h5py objects.
    """

    type_class = "reference"
    is_reference = True

    def __init__(self, region: bool = False):
        super().__init__(h5py.regionref_dtype if region else h5py.ref_dtype)
        self.is_region_reference = bool(region)

    @property
    def size(self):
        return 12 if self.is_region_reference else 8

    @property
    def scatter_gather(self):
        return self.is_region_reference

    @property
    def native_dtype(self) -> np.dtype:
        if self.is_region_reference:
            return self._dtype
        return np.dtype(np.uint64)

    def native(self):
        return self

    def memory_type(self):
        if self.is_region_reference:
            return None
        return h5t.STD_REF_OBJ

    def allocate(self, nitems):
        try:
            return np.empty(nitems, dtype=self.native_dtype)
        except (MemoryError, ValueError) as e:
            raise OutOfMemory(nitems, self.describe()) from e

    def decode(self, data, convert_text=True):
        if self.is_region_reference:
            return data
        return np.asarray(data, dtype=np.uint64)

    def encode(self, values):
        arr = _as_array(values)
        if arr.dtype.kind in 'iu':
            return narrow_integers(arr, np.dtype(np.uint64))
        # h5py Reference objects
        return _as_array(arr, dtype=self._dtype)

    def describe(self):
        return "Region reference" if self.is_region_reference else "Object reference"


class ArrayType(ElementType):
    """Fixed-shape array of a base type per element."""

    type_class = "array"
    is_array = True

    def __init__(self, base: ElementType, shape: Tuple[int, ...]):
        self.base = base
        self.shape = tuple(int(s) for s in shape)
        super().__init__(np.dtype((base.dtype, self.shape)))

    @property
    def is_vlen(self):
        return self.base.is_vlen

    @property
    def is_text(self):
        return self.base.is_text

    @property
    def size(self):
        if self.base.size is None:
            return None
        return self.base.size * product(self.shape)

    @property
    def items_per_element(self):
        return product(self.shape)

    @property
    def scatter_gather(self):
        # h5py maps subarray elements onto trailing dimensions
        return True

    @property
    def native_dtype(self) -> np.dtype:
        return np.dtype((self.base.native_dtype, self.shape))

    def native(self):
        return ArrayType(self.base.native(), self.shape)

    def decode(self, data, convert_text=True):
        return self.base.decode(data, convert_text)

    def encode(self, values):
        return self.base.encode(values)

    def describe(self):
        dims = " x ".join(str(s) for s in self.shape)
        return f"Array [{dims}] of {self.base.describe()}"

    def __eq__(self, other):
        return (type(self) is type(other) and self.base == other.base
                and self.shape == other.shape)

    def __hash__(self):
        return hash((type(self).__name__, self.base, self.shape))


class VarLenType(ElementType):
    """Variable-length sequences of a non-text base type (read only)."""

    type_class = "vlen"
    is_vlen = True

    def __init__(self, base: ElementType):
        self.base = base
        super().__init__(h5py.vlen_dtype(base.dtype))

    @property
    def size(self):
        return None

    def native(self):
        return self

    def allocate(self, nitems):
        try:
            return np.empty(nitems, dtype=object)
        except (MemoryError, ValueError) as e:
            raise OutOfMemory(nitems, self.describe()) from e

    def decode(self, data, convert_text=True):
        return data

    def encode(self, values):
        return _as_array(values, dtype=object)

    def describe(self):
        return f"Variable-length of {self.base.describe()}"


class CompoundType(ElementType):
    """Compound types are passed through as numpy structured arrays."""

    type_class = "compound"

    @property
    def scatter_gather(self):
        return self._dtype.hasobject

    def native(self):
        return self

    def decode(self, data, convert_text=True):
        return data

    def encode(self, values):
        return _as_array(values, dtype=self._dtype)

    def describe(self):
        return "Compound {" + ", ".join(self._dtype.names) + "}"


class OpaqueType(ElementType):

    type_class = "opaque"

    def native(self):
        return self

    def decode(self, data, convert_text=True):
        return data

    def encode(self, values):
        return _as_array(values, dtype=self._dtype)

    def describe(self):
        return f"Opaque, size = {self.size}"


def element_type_from_dtype(dtype) -> ElementType:
    """Decode a (possibly h5py-annotated) numpy dtype into an ElementType.

    Examples
    --------
    >>> element_type_from_dtype('u1')
    IntegerType('8-bit unsigned integer')
    >>> element_type_from_dtype(h5py.string_dtype('ascii', 120))
    FixedTextType('String, length = 120, ascii')

    """
    if isinstance(dtype, ElementType):
        return dtype
    dtype = np.dtype(dtype)

    if dtype.subdtype is not None:
        base, shape = dtype.subdtype
        return ArrayType(element_type_from_dtype(base), shape)

    string_info = h5py.check_string_dtype(dtype)
    if string_info is not None:
        if string_info.length is None:
            return VarTextType(string_info.encoding)
        return FixedTextType(string_info.length, string_info.encoding)

    members = h5py.check_enum_dtype(dtype)
    if members is not None:
        return EnumType(IntegerType(np.dtype(dtype.str)), members)

    ref = h5py.check_ref_dtype(dtype)
    if ref is not None:
        return ReferenceType(region=ref is h5py.RegionReference)

    vlen = h5py.check_vlen_dtype(dtype)
    if vlen is not None:
        return VarLenType(element_type_from_dtype(vlen))

    if dtype.names:
        return CompoundType(dtype)

    kind = dtype.kind
    if kind in 'iu':
        return IntegerType(dtype)
    if kind == 'b':
        return BooleanType(dtype)
    if kind in 'fc':
        return FloatType(dtype)
    if kind in 'VMm':
        return OpaqueType(dtype)
    raise TypeError(f"unsupported element type: {dtype!r}")


def normalize_dtype(dtype) -> np.dtype:
    """Normalize the `dtype` argument of the creation functions.

    Accepts anything numpy accepts plus ``str`` (variable-length utf-8
    text), ``bytes`` (variable-length ascii text) and ElementType instances.
    """
    if isinstance(dtype, ElementType):
        return dtype.dtype
    if dtype is str:
        return h5py.string_dtype('utf-8')
    if dtype is bytes:
        return h5py.string_dtype('ascii')
    dtype = np.dtype(dtype)
    if dtype.kind == 'U':
        raise TypeError("numpy unicode arrays cannot be stored; use str for "
                        "variable-length text or 'S<n>' for fixed-length text")
    return dtype
