import pytest

import collectify
import collectify.core as core
from collectify.core.collections.importer import import_collections
from collectify.core.importers.csv import parse_collection_csv


def test_package_exports_resolve_lazily() -> None:
    assert collectify.parse_collection_csv is parse_collection_csv
    assert collectify.import_collections is import_collections
    assert isinstance(collectify.__version__, str)


def test_core_exports_every_listed_name() -> None:
    for name in core.__all__:
        assert getattr(core, name) is not None


def test_unknown_export_raises_attribute_error() -> None:
    with pytest.raises(AttributeError):
        getattr(core, "not_a_real_export")
