"""Tests for editor lifecycle and its collaborators."""

import sqlite3

import pytest

from catalog_metadata import (
    DatabaseError,
    MetadataEditor,
    Selection,
    Signal,
    SignalBus,
)
from catalog_metadata import db as _db


class TestLifecycle:

    def test_context_manager_closes(self, tmp_path):
        with MetadataEditor(tmp_path / "c.db") as ed:
            conn = ed.conn
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")

    def test_reopen_keeps_values(self, tmp_path):
        path = tmp_path / "c.db"
        with MetadataEditor(path) as ed:
            ed.add_definition("Xmp.dc.title", "title")
            with ed.conn:
                _db.insert_image(ed.conn, image_id=5)
            ed.set(5, "Xmp.dc.title", "Dusk")
        with MetadataEditor(path) as ed:
            assert ed.get(5, "Xmp.dc.title") == (["Dusk"], 1)

    def test_incompatible_schema(self, tmp_path):
        path = tmp_path / "c.db"
        with MetadataEditor(path) as ed:
            with ed.conn:
                ed.conn.execute("UPDATE meta SET value = '9.9' WHERE key = 'schema_version'")
        with pytest.raises(DatabaseError):
            MetadataEditor(path)


class TestReaders:

    def test_get_list_id_invalid_entity(self, editor):
        assert editor.get_list_id(0) == []

    def test_get_attributes_first_value_wins(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        with ed.conn:
            _db.insert_values(ed.conn, [
                (img, keys["title"], "first"), (img, keys["title"], "second"),
            ])
        assert ed.get_attributes(img) == {"Xmp.dc.title": "first"}
        assert ed.get(img, "Xmp.dc.title") == (["first", "second"], 2)

    def test_get_empty_key(self, editor_with_data):
        ed, _, (img, *_) = editor_with_data
        assert ed.get(img, "") == ([], 0)


class TestSelection:

    def test_selection_order(self, editor, make_images):
        a, b, c = make_images(3)
        sel = editor.selection
        sel.select([c, a])
        assert sel.get_entities() == [a, c]
        sel.deselect([a])
        assert sel.get_entities() == [c]
        sel.clear()
        assert sel.get_entities() == []

    def test_hovered_inside_selection_uses_selection(self, editor, make_images):
        a, b, _ = make_images(3)
        editor.selection.select([a, b])
        editor.selection.hovered = a
        assert editor.selection.get_entities() == [a, b]

    def test_hovered_outside_selection_wins(self, editor, make_images):
        a, b, _ = make_images(3)
        editor.selection.select([a])
        editor.selection.hovered = b
        assert editor.selection.get_entities() == [b]

    def test_hovered_alone(self, editor, make_images):
        (a,) = make_images(1)
        editor.selection.hovered = a
        assert editor.selection.get_entities() == [a]

    def test_custom_selection(self):
        class Fixed(Selection):
            def get_entities(self):
                return [1]

        ed = MetadataEditor()
        ed.selection = Fixed(ed.conn)
        with ed.conn:
            _db.insert_image(ed.conn, image_id=1)
        ed.add_definition("Xmp.dc.title", "title")
        ed.set(None, "Xmp.dc.title", "x")
        assert ed.get(1, "Xmp.dc.title") == (["x"], 1)
        ed.close()


class TestSignals:

    def test_connect_emit_disconnect(self):
        bus = SignalBus()
        seen = []

        def handler(**kwargs):
            seen.append(kwargs)

        bus.connect(Signal.HOVER_METADATA_CHANGED, handler)
        bus.connect(Signal.HOVER_METADATA_CHANGED, handler)
        bus.emit(Signal.HOVER_METADATA_CHANGED, entity_ids=[1])
        bus.disconnect(Signal.HOVER_METADATA_CHANGED, handler)
        bus.emit(Signal.HOVER_METADATA_CHANGED, entity_ids=[2])
        assert seen == [{"entity_ids": [1]}]

    def test_handler_errors_are_logged(self, caplog):
        bus = SignalBus()

        def broken(**kwargs):
            raise RuntimeError("boom")

        bus.connect(Signal.HOVER_METADATA_CHANGED, broken)
        bus.emit(Signal.HOVER_METADATA_CHANGED, entity_ids=[])
        assert "boom" in caplog.text
