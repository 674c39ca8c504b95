import pytest

from h5scalar.config import AccessConfig, config, parse_virtual_view


def test_defaults():
    assert config.get('read.convert_text') is True
    assert config.get('read.reuse_buffer') is True
    assert 64 == config.get('create.default_chunk')
    assert 768 == config.get('palette.max_bytes')


def test_parse_virtual_view():
    assert 'first_missing' == parse_virtual_view('first_missing')
    assert 'last_available' == parse_virtual_view('last_available')
    with pytest.raises(ValueError):
        parse_virtual_view('latest')


def test_access_from_config():
    access = AccessConfig.from_config()
    assert AccessConfig() == access

    with config.set({'access.efile_prefix': '/data/raw', 'access.virtual_view': 'first_missing',
                     'access.virtual_printf_gap': '4'}):
        access = AccessConfig.from_config()
    assert '/data/raw' == access.efile_prefix
    assert 'first_missing' == access.virtual_view
    assert 4 == access.virtual_printf_gap

    access = AccessConfig.from_config(virtual_prefix='/vds', efile_prefix=None)
    assert '/vds' == access.virtual_prefix
    assert access.efile_prefix is None


def test_access_invalid_view():
    with config.set({'access.virtual_view': 'sideways'}):
        with pytest.raises(ValueError):
            AccessConfig.from_config()


def test_access_is_frozen():
    access = AccessConfig()
    with pytest.raises(AttributeError):
        access.efile_prefix = '/tmp'
