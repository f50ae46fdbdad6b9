"""Tests for the mutation engine and the tag-name setters."""

import sqlite3

import pytest

from catalog_metadata import KeyValue, MutationMode


class TestScenarios:

    def test_add_to_empty_entity(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(img) == {"Xmp.dc.creator": "Ann"}
        history = ed.get_history(entity_id=img)
        assert [(h.operation, h.value) for h in history] == [("INSERT", "Ann")]

    def test_overwrite_value(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        ed.apply([img], {keys["creator"]: "Bea"}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(img) == {"Xmp.dc.creator": "Bea"}
        ops = [(h.operation, h.value) for h in ed.get_history(entity_id=img)]
        assert ops[-2:] == [("DELETE", "Ann"), ("INSERT", "Bea")]

    def test_empty_value_deletes(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        ed.apply([img], {keys["creator"]: ""}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(img) == {}

    def test_round_trip(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply(
            [img],
            [(keys["creator"], "Ann"), (keys["title"], "Dusk")],
            MutationMode.REPLACE,
        )
        assert ed.get_list_id(img) == [
            KeyValue(keys["creator"], "Ann"), KeyValue(keys["title"], "Dusk"),
        ]


class TestModes:

    def test_replace_drops_other_keys(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "Ann", keys["notes"]: "n"}, "merge_add")
        ed.apply([img], {keys["title"]: "Dusk"}, MutationMode.REPLACE)
        assert ed.get_attributes(img) == {"Xmp.dc.title": "Dusk"}

    def test_merge_keeps_other_keys(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        ed.apply([img], {keys["title"]: "Dusk"}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(img) == {
            "Xmp.dc.creator": "Ann", "Xmp.dc.title": "Dusk",
        }

    def test_remove_matching(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "Ann", keys["title"]: "Dusk"}, "merge_add")
        ed.apply([img], [keys["creator"]], MutationMode.REMOVE_MATCHING)
        assert ed.get_attributes(img) == {"Xmp.dc.title": "Dusk"}

    def test_remove_matching_accepts_pairs(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        ed.apply([img], {keys["creator"]: "ignored"}, MutationMode.REMOVE_MATCHING)
        assert ed.get_attributes(img) == {}

    def test_unknown_mode_rejected(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        with pytest.raises(ValueError):
            ed.apply([img], {keys["creator"]: "Ann"}, "upsert")

    def test_values_are_trimmed(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply([img], {keys["creator"]: "  Ann \n"}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(img) == {"Xmp.dc.creator": "Ann"}

    def test_idempotent_writes_touch_nothing(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        payload = {keys["creator"]: "Ann"}
        ed.apply([img], payload, MutationMode.MERGE_ADD)
        count = len(ed.get_history())
        ed.apply([img], payload, MutationMode.MERGE_ADD)
        ed.apply([img], payload, MutationMode.REPLACE)
        assert len(ed.get_history()) == count

    def test_each_entity_gets_its_own_diff(self, editor_with_data):
        ed, keys, (a, b, _) = editor_with_data
        ed.apply([a], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        ed.apply([a, b], {keys["title"]: "Dusk"}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(a) == {"Xmp.dc.creator": "Ann", "Xmp.dc.title": "Dusk"}
        assert ed.get_attributes(b) == {"Xmp.dc.title": "Dusk"}

    def test_no_entities_is_a_no_op(self, editor_with_data):
        ed, keys, _ = editor_with_data
        assert ed.apply([], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD) is None
        assert len(ed.undo_stack) == 0


class TestFailures:

    def test_failed_entity_does_not_stop_others(self, editor_with_data):
        """A write to an entity the store rejects is logged and skipped."""
        ed, keys, (a, b, _) = editor_with_data
        ed.apply([a, 9999, b], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(a) == {"Xmp.dc.creator": "Ann"}
        assert ed.get_attributes(b) == {"Xmp.dc.creator": "Ann"}
        assert ed.get_attributes(9999) == {}

    def test_failure_is_logged(self, editor_with_data, caplog):
        ed, keys, _ = editor_with_data
        ed.apply([9999], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        assert "entity 9999" in caplog.text

    def test_batch_rolls_back_everything(self, editor_with_data):
        ed, keys, (a, b, _) = editor_with_data
        with pytest.raises(sqlite3.IntegrityError):
            with ed.batch():
                ed.apply([a, 9999, b], {keys["creator"]: "Ann"}, MutationMode.MERGE_ADD)
        assert ed.get_attributes(a) == {}
        assert ed.get_attributes(b) == {}
        assert ed.get_history() == []

    def test_batch_commits_on_success(self, editor_with_data):
        ed, keys, (a, b, _) = editor_with_data
        with ed.batch():
            ed.set(a, "Xmp.dc.creator", "Ann")
            with ed.batch():
                ed.set(b, "Xmp.dc.creator", "Bea")
        assert ed.get(a, "Xmp.dc.creator") == (["Ann"], 1)
        assert ed.get(b, "Xmp.dc.creator") == (["Bea"], 1)


class TestSetters:

    def test_set_by_tagname(self, editor_with_data):
        ed, _, (img, *_) = editor_with_data
        ed.set(img, "Xmp.dc.title", "Dusk")
        assert ed.get(img, "Xmp.dc.title") == (["Dusk"], 1)

    def test_set_unknown_key_is_a_no_op(self, editor_with_data):
        ed, _, (img, *_) = editor_with_data
        assert ed.set(img, "Xmp.dc.rights", "x") is None
        assert ed.get_attributes(img) == {}

    def test_set_without_entity_uses_selection(self, editor_with_data):
        ed, _, (a, b, c) = editor_with_data
        ed.selection.select([a, c])
        ed.set(None, "Xmp.dc.title", "Dusk")
        assert ed.get(None, "Xmp.dc.title") == (["Dusk", "Dusk"], 2)
        assert ed.get_attributes(b) == {}

    def test_set_prefers_hovered_entity_outside_selection(self, editor_with_data):
        ed, _, (a, b, _) = editor_with_data
        ed.selection.select([a])
        ed.selection.hovered = b
        ed.set(0, "Xmp.dc.title", "Dusk")
        assert ed.get_attributes(a) == {}
        assert ed.get_attributes(b) == {"Xmp.dc.title": "Dusk"}

    def test_set_list(self, editor_with_data):
        ed, _, (a, b, _) = editor_with_data
        ed.set_list(
            [a, b],
            {"Xmp.dc.creator": "Ann", "Xmp.dc.rights": "skipped", "Xmp.dc.title": None},
        )
        assert ed.get_attributes(a) == {"Xmp.dc.creator": "Ann"}
        assert ed.get_attributes(b) == {"Xmp.dc.creator": "Ann"}

    def test_set_list_is_one_undo_step(self, editor_with_data):
        ed, _, (a, b, _) = editor_with_data
        ed.set_list([a, b], [("Xmp.dc.creator", "Ann"), ("Xmp.dc.title", "Dusk")])
        assert len(ed.undo_stack) == 1

    def test_set_list_id_replace(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.set_list_id([img], {keys["creator"]: "Ann"}, clear_on=False)
        ed.set_list_id([img], {keys["title"]: "Dusk"}, clear_on=True)
        assert ed.get_attributes(img) == {"Xmp.dc.title": "Dusk"}

    def test_clear_keeps_internal_and_hidden_keys(self, editor_with_data):
        ed, keys, (img, *_) = editor_with_data
        ed.apply(
            [img],
            {keys["creator"]: "Ann", keys["notes"]: "n", keys["import"]: "2024"},
            MutationMode.MERGE_ADD,
        )
        ed.clear([img])
        assert ed.get_attributes(img) == {"Xmp.darktable.import_timestamp": "2024"}

    def test_clear_uses_selection(self, editor_with_data):
        ed, _, (a, b, _) = editor_with_data
        ed.set_list([a, b], {"Xmp.dc.creator": "Ann"})
        ed.selection.select([a])
        ed.clear()
        assert ed.get_attributes(a) == {}
        assert ed.get_attributes(b) == {"Xmp.dc.creator": "Ann"}
