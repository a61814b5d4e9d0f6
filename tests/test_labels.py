"""
Tests for label text, colours and class-name loading.
"""

import pytest

from detection.labels import (
    class_id_to_colour,
    class_name,
    colour_for_class,
    default_annotation_colours,
    format_label,
)
from detection.names import load_names


class TestFormatLabel:
    def test_sorted_by_probability(self, names):
        label = format_label({2: 0.958, 0: 0.104, 3: 0.603}, names)
        assert label == "truck 96%, bus 60%, car 10%"

    def test_best_only(self, names):
        label = format_label({2: 0.958, 3: 0.603}, names, include_all=False)
        assert label == "truck 96%"

    def test_without_percentage(self, names):
        label = format_label({2: 0.958, 3: 0.603}, names, include_percentage=False)
        assert label == "truck, bus"

    def test_unknown_class_uses_index(self, names):
        assert format_label({17: 0.5}, names) == "#17 50%"

    def test_empty_names(self):
        assert format_label({1: 0.25}, []) == "#1 25%"

    def test_equal_probabilities_ordered_by_class(self, names):
        assert format_label({3: 0.5, 1: 0.5}, names) == "person 50%, bus 50%"


class TestClassName:
    def test_in_range(self, names):
        assert class_name(1, names) == "person"

    def test_out_of_range(self, names):
        assert class_name(4, names) == "#4"
        assert class_name(-1, names) == "#-1"

    def test_blank_name(self):
        assert class_name(0, ["", "x"]) == "#0"


class TestColours:
    def test_default_palette(self):
        colours = default_annotation_colours()
        assert len(colours) == 12
        assert colours[4] == (0, 0, 255)
        assert all(len(c) == 3 for c in colours)

    def test_class_id_to_colour(self):
        assert class_id_to_colour(0) == (150, 0, 150)
        assert class_id_to_colour(1) == (0, 0, 207)

    def test_class_id_to_colour_is_deterministic(self):
        assert class_id_to_colour(42) == class_id_to_colour(42)

    def test_colour_for_class_wraps_palette(self):
        palette = [(1, 1, 1), (2, 2, 2)]
        assert colour_for_class(0, palette) == (1, 1, 1)
        assert colour_for_class(3, palette) == (2, 2, 2)

    def test_colour_for_class_without_palette(self):
        assert colour_for_class(1, []) == class_id_to_colour(1)


class TestLoadNames:
    def test_loads_names(self, names_file, names):
        assert load_names(names_file) == names

    def test_strips_whitespace(self, tmp_path):
        path = tmp_path / "ws.names"
        path.write_text("  car \r\nperson\t\n")
        assert load_names(str(path)) == ["car", "person"]

    def test_keeps_inner_blank_lines(self, tmp_path):
        path = tmp_path / "gap.names"
        path.write_text("car\n\ntruck\n")
        assert load_names(str(path)) == ["car", "", "truck"]

    def test_missing_file(self, tmp_path):
        assert load_names(str(tmp_path / "nope.names")) == []

    def test_empty_path(self):
        assert load_names("") == []
