import logging
from collections.abc import MutableMapping

from h5scalar.config import AccessConfig


logger = logging.getLogger(__name__)


class Attributes(MutableMapping):
    """Class providing access to the attributes of a dataset. Should not be
    instantiated directly, will be available via the `.attrs` property of a
    dataset.

    Parameters
    ----------
    store : H5Store
        The store holding the dataset.
    path : str
        Path of the dataset within the file.
    read_only : bool, optional
        If True, attributes cannot be modified.
    cache : bool, optional
        If True (default), attributes will be cached locally.
    access : AccessConfig, optional
        Access settings used when opening the dataset.
    on_change : callable, optional
        Called with no arguments after every successful modification.

    """

    def __init__(self, store, path, read_only=False, cache=True,
                 access: AccessConfig = None, on_change=None):

        assert path

        self.store = store
        self.path = path
        self.read_only = read_only
        self.cache = cache
        self.access = access
        self._on_change = on_change
        self._cached_asdict = None

    def _get_nosync(self):
        d = dict()
        with self.store.open_dataset(self.path, access=self.access) as dset:
            for name in dset.attrs:
                try:
                    d[name] = dset.attrs[name]
                except (OSError, TypeError, ValueError) as e:
                    # e.g. attribute types numpy cannot represent
                    logger.debug("skipping unreadable attribute %r of %s: %s",
                                 name, self.path, e)
        return d

    def asdict(self):
        """Retrieve all attributes as a dictionary."""
        if self.cache and self._cached_asdict is not None:
            return self._cached_asdict
        d = self._get_nosync()
        if self.cache:
            self._cached_asdict = d
        return d

    def refresh(self):
        """Refresh cached attributes from the store."""
        if self.cache:
            self._cached_asdict = self._get_nosync()

    def invalidate(self):
        """Drop cached attributes; they are reloaded on next access."""
        self._cached_asdict = None

    def __contains__(self, x):
        return x in self.asdict()

    def __getitem__(self, item):
        return self.asdict()[item]

    def _write_op(self, f, *args, **kwargs):

        # guard condition
        if self.read_only:
            raise PermissionError('attributes are read-only')

        result = f(*args, **kwargs)
        if self._on_change is not None:
            self._on_change()
        return result

    def __setitem__(self, item, value):
        self._write_op(self._setitem_nosync, item, value)

    def _setitem_nosync(self, item, value):
        with self.store.open_dataset(self.path, write=True, access=self.access) as dset:
            dset.attrs[item] = value
        self._cached_asdict = None

    def __delitem__(self, item):
        self._write_op(self._delitem_nosync, item)

    def _delitem_nosync(self, key):
        with self.store.open_dataset(self.path, write=True, access=self.access) as dset:
            del dset.attrs[key]
        self._cached_asdict = None

    def put(self, d):
        """Overwrite all attributes with the key/value pairs in the provided dictionary
        `d` in a single operation."""
        self._write_op(self._put_nosync, d)

    def _put_nosync(self, d):
        with self.store.open_dataset(self.path, write=True, access=self.access) as dset:
            for name in list(dset.attrs):
                if name not in d:
                    del dset.attrs[name]
            for name, value in d.items():
                dset.attrs[name] = value
        self._cached_asdict = None

    # noinspection PyMethodOverriding
    def update(self, *args, **kwargs):
        """Update the values of several attributes in a single operation."""
        self._write_op(self._update_nosync, *args, **kwargs)

    def _update_nosync(self, *args, **kwargs):
        values = dict(*args, **kwargs)
        with self.store.open_dataset(self.path, write=True, access=self.access) as dset:
            for name, value in values.items():
                dset.attrs[name] = value
        self._cached_asdict = None

    def keys(self):
        return self.asdict().keys()

    def __iter__(self):
        return iter(self.asdict())

    def __len__(self):
        return len(self.asdict())

    def _ipython_key_completions_(self):
        return sorted(self)
