# flake8: noqa
from h5scalar.attrs import Attributes
from h5scalar.config import AccessConfig, config
from h5scalar.core import Dataset
from h5scalar.creation import create, open_dataset
from h5scalar.errors import (DataConversionError, DatasetNotFoundError, ExtentError,
                             FilterUnavailable, H5ScalarError, IOFailure, NullBuffer,
                             OutOfMemory, ReadOnlyError, SelectionSizeError, ShapeMismatch,
                             UnknownEnumName, UnresolvedState, UnsupportedPayload)
from h5scalar.layout import FilterSpec, LayoutReport, compression_ratio
from h5scalar.selection import INTERLACE_PIXEL, INTERLACE_PLANE, Selection
from h5scalar.storage import H5Store
from h5scalar.types import ElementType, element_type_from_dtype
from h5scalar.version import version as __version__
