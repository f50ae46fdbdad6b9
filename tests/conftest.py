"""Shared test fixtures for catalog-metadata."""

import pytest

from catalog_metadata import MetadataEditor
from catalog_metadata import db as _db


@pytest.fixture
def editor():
    """Create an in-memory editor for testing."""
    with MetadataEditor(":memory:") as ed:
        yield ed


@pytest.fixture
def editor_with_keys(editor):
    """Editor with creator, title, notes and one internal key registered."""
    ed = editor
    keys = {}
    for order, (tagname, name) in enumerate([
        ("Xmp.dc.creator", "creator"),
        ("Xmp.dc.title", "title"),
        ("Xmp.darktable.notes", "notes"),
    ]):
        keys[name] = ed.add_definition(tagname, name, display_order=order).id
    keys["import"] = ed.add_definition(
        "Xmp.darktable.import_timestamp", "import timestamp",
        internal=True, visible=False, display_order=3,
    ).id
    return ed, keys


@pytest.fixture
def editor_with_data(editor_with_keys, make_images):
    """Editor with registered keys and three catalog entities."""
    ed, keys = editor_with_keys
    images = make_images(3)
    return ed, keys, images


@pytest.fixture
def make_images(editor):
    """Factory creating ``count`` catalog entities; returns their ids."""
    def make(count, flags=0):
        with editor.conn:
            return [
                _db.insert_image(editor.conn, f"img_{i}.raw", flags)
                for i in range(count)
            ]
    return make
