"""
Tests for entity record conversion.
"""

import json
import unittest

from techdraw.core.document import EntityState
from techdraw.core.errors import InvalidEntityError, UnsupportedEntityType
from techdraw.core.shapes import (
    ArcEntity, DrawingStyle, LeaderAnnotation, LinearDimension, LineEntity, Point,
    PolylineEntity,
)
from techdraw.io.records import (
    dict_to_point, dict_to_style, entity_from_dict, entity_to_dict, point_to_dict,
    state_from_dict, state_to_dict, style_to_dict,
)


class TestPoints(unittest.TestCase):

    def test_point_forms(self):
        self.assertEqual(point_to_dict(Point(1, 2)), {'x': 1, 'y': 2})
        self.assertEqual(dict_to_point({'x': 1, 'y': 2}), Point(1, 2))
        self.assertEqual(dict_to_point((3, 4)), Point(3, 4))
        self.assertEqual(dict_to_point(Point(5, 6)), Point(5, 6))
        self.assertIsNone(dict_to_point(None))
        self.assertIsNone(point_to_dict(None))


class TestStyles(unittest.TestCase):

    def test_none_values_are_dropped(self):
        record = style_to_dict(DrawingStyle())
        self.assertEqual(record['stroke_color'], "#000000")
        self.assertNotIn(None, record.values())

    def test_unknown_style_keys_ignored(self):
        style = dict_to_style({'stroke_color': '#ff0000', 'glow': True})
        self.assertEqual(style.stroke_color, '#ff0000')
        self.assertEqual(dict_to_style(None), DrawingStyle())


class TestEntityRecords(unittest.TestCase):
    """Test converting single entities."""

    def test_line_record(self):
        line = LineEntity(id="l1", layer="walls", start_point=Point(0, 0),
                          end_point=Point(10, 0), metadata={'tag': 'a'})
        record = entity_to_dict(line)
        self.assertEqual(record['type'], 'line')
        self.assertEqual(record['start_point'], {'x': 0, 'y': 0})
        self.assertEqual(record['layer'], 'walls')
        # Records must survive a JSON round trip
        self.assertEqual(entity_from_dict(json.loads(json.dumps(record))), line)

    def test_keys_are_field_names(self):
        record = entity_to_dict(ArcEntity(start_angle=0.5))
        self.assertEqual(record['start_angle'], 0.5)
        self.assertNotIn('startAngle', record)
        self.assertIn('group_id', record)

    def test_record_is_detached(self):
        polyline = PolylineEntity(points=[Point(0, 0)], metadata={'tags': ['x']})
        record = entity_to_dict(polyline)
        record['metadata']['tags'].append('y')
        self.assertEqual(polyline.metadata, {'tags': ['x']})

    def test_optional_point_fields(self):
        dim = LinearDimension(start_point=Point(0, 0), end_point=Point(5, 0))
        record = entity_to_dict(dim)
        self.assertIsNone(record['text_position'])
        self.assertIsNone(entity_from_dict(record).text_position)

    def test_point_lists_and_pairs(self):
        leader = entity_from_dict({
            'type': 'leader-annotation',
            'start_point': [1, 2],
            'points': [{'x': 3, 'y': 4}, (5, 6)],
        })
        self.assertIsInstance(leader, LeaderAnnotation)
        self.assertEqual(leader.points, [Point(3, 4), Point(5, 6)])
        self.assertEqual(leader.start_point, Point(1, 2))

    def test_missing_fields_take_defaults(self):
        arc = entity_from_dict({'type': 'arc', 'radius': 3, 'color': 'red'})
        self.assertIsInstance(arc, ArcEntity)
        self.assertEqual(arc.radius, 3)
        self.assertTrue(arc.counterclockwise)
        self.assertIsNone(arc.id)

    def test_unknown_or_missing_type(self):
        with self.assertRaises(UnsupportedEntityType):
            entity_from_dict({'type': 'blob'})
        with self.assertRaises(UnsupportedEntityType):
            entity_from_dict({'radius': 3})

    def test_bad_point(self):
        with self.assertRaises(InvalidEntityError):
            entity_from_dict({'type': 'line', 'start_point': 'nowhere'})

    def test_entity_passes_through_as_copy(self):
        line = LineEntity(id="l1")
        copy = entity_from_dict(line)
        self.assertEqual(copy, line)
        self.assertIsNot(copy, line)


class TestStateRecords(unittest.TestCase):
    """Test converting whole store states."""

    def test_round_trip(self):
        state = EntityState(
            entities={'l1': LineEntity(id='l1', end_point=Point(1, 1))},
            dimensions={'d1': LinearDimension(id='d1', end_point=Point(4, 0))},
        )
        data = state_to_dict(state)
        self.assertEqual(data['annotations'], [])
        restored = state_from_dict(json.loads(json.dumps(data)))
        self.assertEqual(restored, state)

    def test_record_without_id(self):
        with self.assertRaises(InvalidEntityError):
            state_from_dict({'entities': [{'type': 'line'}]})

    def test_missing_sections(self):
        restored = state_from_dict({})
        self.assertEqual(restored.all_entities(), [])


if __name__ == '__main__':
    unittest.main()
