"""
Tests for the EntityStore.

Covers CRUD across the three families, filter operations, selection,
transforms through the store, change listeners and bulk state.
"""

import dataclasses
import unittest

from techdraw.core.document import EntityState, EntityStore
from techdraw.core.errors import InvalidEntityError, UnsupportedEntityType
from techdraw.core.shapes import (
    CircleEntity, DrawingStyle, LinearDimension, LineEntity, Point,
    RectangleEntity, TextAnnotation,
)


def make_line(x1=0, y1=0, x2=10, y2=0, **kwargs):
    return LineEntity(start_point=Point(x1, y1), end_point=Point(x2, y2), **kwargs)


class StoreTestCase(unittest.TestCase):

    def setUp(self):
        self.store = EntityStore()
        self.notifications = 0
        self.store.add_change_listener(self._on_change)

    def _on_change(self):
        self.notifications += 1


class TestAddAndGet(StoreTestCase):
    """Test adding and reading entities."""

    def test_add_then_get_is_structurally_equal(self):
        line = make_line(layer="walls", style=DrawingStyle(stroke_color="#ff0000"))
        entity_id = self.store.add(line)
        self.assertEqual(self.store.get_by_id(entity_id),
                         dataclasses.replace(line, id=entity_id))
        self.assertEqual(self.notifications, 1)

    def test_add_does_not_keep_caller_reference(self):
        line = make_line()
        entity_id = self.store.add(line)
        self.assertIsNone(line.id)
        line.layer = "changed"
        self.assertEqual(self.store.get_by_id(entity_id).layer, "default")

    def test_get_returns_copy(self):
        entity_id = self.store.add(make_line())
        self.store.get_by_id(entity_id).layer = "changed"
        self.assertEqual(self.store.get_by_id(entity_id).layer, "default")

    def test_add_record(self):
        entity_id = self.store.add({'type': 'circle', 'center': {'x': 1, 'y': 2}, 'radius': 5})
        circle = self.store.get_by_id(entity_id)
        self.assertIsInstance(circle, CircleEntity)
        self.assertEqual(circle.center, Point(1, 2))
        self.assertEqual(circle.radius, 5)

    def test_ids_are_unique(self):
        ids = {self.store.add(make_line()) for _ in range(50)}
        self.assertEqual(len(ids), 50)

    def test_deleted_id_is_not_reissued(self):
        first = self.store.add(make_line())
        self.store.delete(first)
        second = self.store.add(make_line())
        self.assertNotEqual(first, second)

    def test_families_are_routed(self):
        line_id = self.store.add(make_line())
        dim_id = self.store.add(LinearDimension(start_point=Point(0, 0), end_point=Point(5, 0)))
        note_id = self.store.add(TextAnnotation(position=Point(1, 1), text="A"))
        self.assertEqual([e.id for e in self.store.get_all_entities()], [line_id])
        self.assertEqual([e.id for e in self.store.get_dimensions()], [dim_id])
        self.assertEqual([e.id for e in self.store.get_annotations()], [note_id])
        self.assertEqual(len(self.store), 3)
        self.assertIn(dim_id, self.store)

    def test_unknown_type_rejected(self):
        with self.assertRaises(UnsupportedEntityType):
            self.store.add({'type': 'teapot'})
        self.assertEqual(len(self.store), 0)
        self.assertEqual(self.notifications, 0)

    def test_invalid_radius_rejected(self):
        with self.assertRaises(InvalidEntityError):
            self.store.add(CircleEntity(radius=0))
        self.assertEqual(len(self.store), 0)

    def test_empty_layer_gets_default(self):
        entity_id = self.store.add(make_line(layer=""))
        self.assertEqual(self.store.get_by_id(entity_id).layer, "default")

    def test_get_missing(self):
        self.assertIsNone(self.store.get_by_id("nope"))


class TestUpdateAndDelete(StoreTestCase):
    """Test update, delete and their filter variants."""

    def test_update_merges_fields(self):
        entity_id = self.store.add(make_line())
        self.assertTrue(self.store.update(entity_id, end_point=Point(3, 4), layer="b"))
        line = self.store.get_by_id(entity_id)
        self.assertEqual(line.end_point, Point(3, 4))
        self.assertEqual(line.start_point, Point(0, 0))
        self.assertEqual(line.layer, "b")
        self.assertEqual(self.notifications, 2)

    def test_update_accepts_mapping_and_point_records(self):
        entity_id = self.store.add(make_line())
        self.store.update(entity_id, {'end_point': {'x': 1, 'y': 1}})
        self.assertEqual(self.store.get_by_id(entity_id).end_point, Point(1, 1))

    def test_update_missing_id(self):
        self.assertFalse(self.store.update("nope", layer="x"))
        self.assertEqual(self.notifications, 0)

    def test_update_cannot_change_identity(self):
        entity_id = self.store.add(make_line())
        with self.assertRaises(ValueError):
            self.store.update(entity_id, id="other")
        with self.assertRaises(ValueError):
            self.store.update(entity_id, type="circle")
        with self.assertRaises(ValueError):
            self.store.update(entity_id, radius=3)

    def test_invalid_update_leaves_entity(self):
        entity_id = self.store.add(CircleEntity(radius=2))
        with self.assertRaises(InvalidEntityError):
            self.store.update(entity_id, radius=-1)
        self.assertEqual(self.store.get_by_id(entity_id).radius, 2)

    def test_delete(self):
        entity_id = self.store.add(make_line())
        self.store.select(entity_id)
        self.assertTrue(self.store.delete(entity_id))
        self.assertIsNone(self.store.get_by_id(entity_id))
        self.assertEqual(self.store.get_selected_ids(), [])
        self.assertFalse(self.store.delete(entity_id))

    def test_update_by_filter(self):
        self.store.add(make_line(layer="a"))
        self.store.add(make_line(layer="a"))
        self.store.add(make_line(layer="b"))
        before = self.notifications
        count = self.store.update_by_filter(lambda e: e.layer == "a",
                                            lambda e: {'visible': False})
        self.assertEqual(count, 2)
        self.assertEqual(self.notifications, before + 1)
        hidden = [e for e in self.store.get_all_entities() if not e.visible]
        self.assertEqual(len(hidden), 2)

    def test_update_by_filter_is_all_or_nothing(self):
        self.store.add(CircleEntity(radius=1))
        self.store.add(CircleEntity(radius=2))
        with self.assertRaises(InvalidEntityError):
            self.store.update_by_filter(lambda e: True,
                                        lambda e: {'radius': e.radius - 1.5})
        self.assertEqual(sorted(e.radius for e in self.store.get_all_entities()), [1, 2])

    def test_delete_by_filter_spans_families(self):
        self.store.add(make_line(layer="tmp"))
        self.store.add(TextAnnotation(text="x", layer="tmp"))
        keep = self.store.add(make_line())
        before = self.notifications
        self.assertEqual(self.store.delete_by_filter(lambda e: e.layer == "tmp"), 2)
        self.assertEqual([e.id for e in self.store.get_everything()], [keep])
        self.assertEqual(self.notifications, before + 1)

    def test_filter_without_match_is_silent(self):
        self.store.add(make_line())
        before = self.notifications
        self.assertEqual(self.store.delete_by_filter(lambda e: False), 0)
        self.assertEqual(self.notifications, before)


class TestSelection(StoreTestCase):
    """Test selection through the store."""

    def test_select_replaces_by_default(self):
        a = self.store.add(make_line())
        b = self.store.add(make_line())
        self.store.select(a)
        self.store.select(b)
        self.assertEqual(self.store.get_selected_ids(), [b])
        self.store.select(a, add_to_selection=True)
        self.assertEqual(self.store.get_selected_ids(), [b, a])

    def test_select_is_idempotent(self):
        a = self.store.add(make_line())
        self.assertTrue(self.store.select(a))
        self.assertFalse(self.store.select(a))
        self.assertFalse(self.store.select(a, add_to_selection=True))
        self.assertEqual(self.store.get_selected_ids(), [a])

    def test_locked_and_missing_ignored(self):
        locked = self.store.add(make_line(locked=True))
        self.assertFalse(self.store.select(locked))
        self.assertFalse(self.store.select("missing"))
        self.assertEqual(self.store.get_selected_ids(), [])

    def test_select_all_skips_locked(self):
        a = self.store.add(make_line())
        self.store.add(make_line(locked=True))
        d = self.store.add(LinearDimension())
        self.assertEqual(self.store.select_all(), 2)
        self.assertEqual(self.store.get_selected_ids(), [a, d])

    def test_get_selected_entities(self):
        a = self.store.add(make_line())
        self.store.select(a)
        self.assertEqual([e.id for e in self.store.get_selected_entities()], [a])

    def test_select_many_counts_only_additions(self):
        a = self.store.add(make_line())
        locked = self.store.add(make_line(locked=True))
        before = self.notifications
        self.assertEqual(self.store.select_many([a, a, locked, "missing"]), 1)
        self.assertEqual(self.notifications, before + 1)
        self.assertEqual(self.store.select_many([a]), 0)
        self.assertEqual(self.notifications, before + 1)

    def test_deselect_and_clear(self):
        a = self.store.add(make_line())
        b = self.store.add(make_line())
        self.store.select_many([a, b])
        self.assertTrue(self.store.deselect(a))
        self.assertFalse(self.store.deselect(a))
        self.assertTrue(self.store.clear_selection())
        self.assertFalse(self.store.clear_selection())
        self.assertEqual(self.store.get_selected_ids(), [])


class TestStoreTransforms(StoreTestCase):
    """Test move/rotate/scale/copy through the store."""

    def test_move(self):
        entity_id = self.store.add(make_line())
        self.assertTrue(self.store.move(entity_id, Point(1, 2)))
        line = self.store.get_by_id(entity_id)
        self.assertEqual(line.start_point, Point(1, 2))
        self.assertEqual(line.end_point, Point(11, 2))
        self.assertFalse(self.store.move("missing", Point(1, 1)))

    def test_rotate(self):
        entity_id = self.store.add(make_line())
        self.assertTrue(self.store.rotate(entity_id, Point(0, 0), 90))
        end = self.store.get_by_id(entity_id).end_point
        self.assertAlmostEqual(end.x, 0.0)
        self.assertAlmostEqual(end.y, 10.0)

    def test_scale(self):
        entity_id = self.store.add(CircleEntity(center=Point(1, 1), radius=2))
        self.assertTrue(self.store.scale(entity_id, Point(0, 0), 2, 3))
        circle = self.store.get_by_id(entity_id)
        self.assertEqual(circle.center, Point(2, 3))
        self.assertEqual(circle.radius, 6)

    def test_degenerate_scale_is_skipped(self):
        entity_id = self.store.add(CircleEntity(radius=2))
        before = self.notifications
        self.assertFalse(self.store.scale(entity_id, Point(0, 0), 0, 0))
        self.assertEqual(self.store.get_by_id(entity_id).radius, 2)
        self.assertEqual(self.notifications, before)

    def test_selected_variants_count(self):
        a = self.store.add(make_line())
        b = self.store.add(RectangleEntity(position=Point(0, 0), width=2, height=1))
        self.store.add(make_line())
        self.store.select_many([a, b])
        self.assertEqual(self.store.move_selected(Point(5, 0)), 2)
        self.assertEqual(self.store.rotate_selected(Point(0, 0), 45), 2)
        self.assertEqual(self.store.scale_selected(Point(0, 0), 2, 2), 2)
        self.assertEqual(self.store.get_by_id(b).rotation, 45)

    def test_mirror(self):
        entity_id = self.store.add(make_line(1, 2, 3, 4))
        self.assertTrue(self.store.mirror(entity_id, Point(0, 0), Point(10, 0)))
        line = self.store.get_by_id(entity_id)
        self.assertEqual(line.start_point, Point(1, -2))
        self.assertEqual(line.end_point, Point(3, -4))
        self.assertFalse(self.store.mirror("missing", Point(0, 0), Point(1, 0)))

    def test_mirror_selected_round_trip(self):
        a = self.store.add(make_line(1, 2, 3, 4))
        b = self.store.add(RectangleEntity(position=Point(1, 1), width=2, height=1, rotation=20))
        self.store.select_many([a, b])
        before = self.store.get_entity_state()
        self.assertEqual(self.store.mirror_selected(Point(0, 1), Point(2, 5)), 2)
        self.assertNotEqual(self.store.get_by_id(a), before.entities[a])
        self.assertEqual(self.store.mirror_entities([a, b], Point(0, 1), Point(2, 5)), 2)
        for entity_id in (a, b):
            restored = self.store.get_by_id(entity_id)
            original = before.entities[entity_id]
            for p, q in zip(restored.iter_points(), original.iter_points()):
                self.assertAlmostEqual(p.x, q.x)
                self.assertAlmostEqual(p.y, q.y)
        self.assertAlmostEqual(self.store.get_by_id(b).rotation, 20)

    def test_copy(self):
        source = self.store.add(make_line(layer="a"))
        copy_id = self.store.copy(source, Point(0, 5))
        self.assertNotEqual(copy_id, source)
        copied = self.store.get_by_id(copy_id)
        self.assertEqual(copied.start_point, Point(0, 5))
        self.assertEqual(copied.layer, "a")
        self.assertEqual(self.store.get_by_id(source).start_point, Point(0, 0))

    def test_copy_without_offset_and_missing(self):
        source = self.store.add(make_line())
        copy_id = self.store.copy(source)
        self.assertEqual(self.store.get_by_id(copy_id).end_point, Point(10, 0))
        self.assertIsNone(self.store.copy("missing"))

    def test_bounds(self):
        self.store.add(make_line(0, 0, 10, 0))
        self.store.add(CircleEntity(center=Point(20, 0), radius=5))
        self.store.add(make_line(-100, 0, -90, 0, visible=False))
        bounds = self.store.get_bounds()
        self.assertEqual((bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y),
                         (0, -5, 25, 5))
        self.assertEqual(self.store.get_bounds(visible_only=False).min_x, -100)
        self.assertIsNone(EntityStore().get_bounds())


class TestGroups(StoreTestCase):
    """Test grouping entities under a shared group id."""

    def test_group_and_ungroup(self):
        a = self.store.add(make_line())
        b = self.store.add(LinearDimension())
        c = self.store.add(make_line())
        before = self.notifications

        group_id = self.store.group([a, b, "missing"])
        self.assertIsNotNone(group_id)
        self.assertEqual(self.notifications, before + 1)
        self.assertEqual(self.store.get_by_id(a).group_id, group_id)
        self.assertEqual(self.store.get_by_id(b).group_id, group_id)
        self.assertIsNone(self.store.get_by_id(c).group_id)
        self.assertEqual(self.store.get_group_members(group_id), [a, b])

        self.assertEqual(self.store.ungroup(group_id), 2)
        self.assertIsNone(self.store.get_by_id(a).group_id)
        self.assertEqual(self.store.get_group_members(group_id), [])
        self.assertEqual(self.notifications, before + 2)

    def test_regrouping_moves_entities(self):
        a = self.store.add(make_line())
        b = self.store.add(make_line())
        first = self.store.group([a, b])
        second = self.store.group([b])
        self.assertNotEqual(first, second)
        self.assertEqual(self.store.get_group_members(first), [a])
        self.assertEqual(self.store.get_group_members(second), [b])

    def test_nothing_to_group_or_ungroup(self):
        before = self.notifications
        self.assertIsNone(self.store.group(["missing"]))
        self.assertIsNone(self.store.group([]))
        self.assertEqual(self.store.ungroup("no-such-group"), 0)
        self.assertEqual(self.notifications, before)

    def test_group_id_survives_snapshot(self):
        a = self.store.add(make_line())
        group_id = self.store.group([a])
        state = self.store.get_entity_state()
        self.assertEqual(state.entities[a].group_id, group_id)


class TestChangeListeners(unittest.TestCase):
    """Test change notification."""

    def test_listener_order_and_failure_isolation(self):
        store = EntityStore()
        calls = []

        def broken():
            calls.append("broken")
            raise RuntimeError("listener bug")

        store.add_change_listener(broken)
        store.add_change_listener(lambda: calls.append("second"))

        with self.assertLogs('techdraw.core.document', level='ERROR'):
            entity_id = store.add(make_line())

        self.assertEqual(calls, ["broken", "second"])
        self.assertIsNotNone(store.get_by_id(entity_id))

    def test_remove_listener(self):
        store = EntityStore()
        calls = []
        listener = lambda: calls.append(1)
        store.add_change_listener(listener)
        store.remove_change_listener(listener)
        store.remove_change_listener(listener)
        store.add(make_line())
        self.assertEqual(calls, [])


class TestBulkState(StoreTestCase):
    """Test set_entity_state / get_entity_state."""

    def test_replace_state(self):
        old = self.store.add(make_line())
        self.store.select(old)
        before = self.notifications

        self.store.set_entity_state(
            entities={'l1': make_line(), 'c1': CircleEntity(radius=3)},
            dimensions=[LinearDimension(id='d1')],
            annotations={'t1': {'type': 'text-annotation', 'text': 'hi'}},
        )

        self.assertEqual(self.notifications, before + 1)
        self.assertEqual(self.store.get_selected_ids(), [])
        self.assertIsNone(self.store.get_by_id(old))
        self.assertEqual(self.store.get_by_id('c1').radius, 3)
        self.assertEqual(self.store.get_by_id('d1').entity_type, 'linear-dimension')
        self.assertEqual(self.store.get_by_id('t1').text, 'hi')

    def test_duplicate_ids_across_families(self):
        with self.assertRaises(ValueError):
            self.store.set_entity_state(
                entities={'x': make_line()},
                annotations={'x': TextAnnotation()},
            )

    def test_wrong_family_rejected(self):
        with self.assertRaises(ValueError):
            self.store.set_entity_state(entities={'x': LinearDimension()})

    def test_missing_id_rejected(self):
        with self.assertRaises(ValueError):
            self.store.set_entity_state(entities=[make_line()])

    def test_loaded_ids_not_reissued(self):
        self.store.set_entity_state(entities={'fixed': make_line()})
        self.assertIn('fixed', self.store._issued_ids)

    def test_snapshot_is_deep_copy(self):
        entity_id = self.store.add(make_line())
        state = self.store.get_entity_state()
        self.assertIsInstance(state, EntityState)
        state.entities[entity_id].layer = "mutated"
        del state.entities[entity_id]
        self.assertEqual(self.store.get_by_id(entity_id).layer, "default")

    def test_snapshot_round_trip(self):
        self.store.add(make_line())
        self.store.add(LinearDimension(start_point=Point(0, 0), end_point=Point(1, 0)))
        state = self.store.get_entity_state()

        other = EntityStore()
        other.set_entity_state(state.entities, state.dimensions, state.annotations)
        self.assertEqual(other.get_entity_state(), state)


if __name__ == '__main__':
    unittest.main()
