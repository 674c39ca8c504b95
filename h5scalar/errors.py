class H5ScalarError(Exception):
    """Base class for all errors raised by h5scalar."""


class _BaseH5Error(H5ScalarError):
    _msg = ""

    def __init__(self, *args):
        super().__init__(self._msg.format(*args))


class DatasetNotFoundError(_BaseH5Error, KeyError):
    _msg = "dataset not found at path {0!r} in file {1!r}"

    def __str__(self):
        # KeyError quotes its message; keep the plain text
        return self.args[0]


class UnresolvedState(_BaseH5Error, RuntimeError):
    _msg = "dataset {0!r} has not been resolved; metadata could not be loaded"


class ReadOnlyError(_BaseH5Error, PermissionError):
    _msg = "dataset {0!r} is read-only"


class UnsupportedPayload(_BaseH5Error, TypeError):
    _msg = "writing {0} data is not supported"


class NullBuffer(_BaseH5Error, ValueError):
    _msg = "write buffer is None"


class OutOfMemory(_BaseH5Error, MemoryError):
    _msg = "unable to allocate buffer for {0} elements of {1}"


class FilterUnavailable(_BaseH5Error, OSError):
    _msg = "filter not available: {0}"

    def __init__(self, filter_name):
        super().__init__(filter_name)
        self.filter_name = filter_name


class UnknownEnumName(_BaseH5Error, KeyError):
    _msg = "unknown enumeration name {0!r}; expected one of {1}"

    def __init__(self, name, names=()):
        super().__init__(name, sorted(names))
        self.name = name

    def __str__(self):
        return self.args[0]


class ShapeMismatch(_BaseH5Error, RuntimeError):
    _msg = "error extending dataset {0!r}: requested {1}, found {2}"


class ExtentError(_BaseH5Error, ValueError):
    _msg = "new extent {0} exceeds maximum extent {1} in dimension {2}"


class SelectionSizeError(_BaseH5Error, ValueError):
    _msg = "buffer has {0} elements but the selection requires {1}"


class DataConversionError(_BaseH5Error, ValueError):
    _msg = "data conversion failure: {0}"


class BoundsCheckError(_BaseH5Error, IndexError):
    _msg = "selection out of bounds in dimension {0}: {1} + {2} * ({3} - 1) >= {4}"


class IOFailure(_BaseH5Error, OSError):
    _msg = "failed to {0} dataset {1!r}: {2}"

    def __init__(self, action, name, cause):
        super().__init__(action, name, cause)
        self.cause = cause


class AttributeNotFound(_BaseH5Error, KeyError):
    """Internal marker meaning "feature absent"; never raised to callers."""

    _msg = "attribute not found: {0!r}"
