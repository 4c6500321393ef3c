import pytest

from doc_structure import merge_probability as mp

from conftest import make_chunk, make_line


class TestUniformProbability:

    @pytest.mark.parametrize("point", [0.0, 0.1, 0.33, -mp.EPS, 0.33 + mp.EPS])
    def test_inside_interval_is_certain(self, point):
        assert mp.uniform_probability((0.0, 0.33), point, 0.1) == 1.0

    @pytest.mark.parametrize("point", [0.43, 0.5, 10.0, -0.1, -5.0])
    def test_at_or_beyond_falloff_is_zero(self, point):
        assert mp.uniform_probability((0.0, 0.33), point, 0.1) == pytest.approx(0.0, abs=1e-6)

    def test_linear_between_edges(self):
        assert mp.uniform_probability((0.0, 0.33), 0.38, 0.1) == pytest.approx(0.5)
        assert mp.uniform_probability((1.0, 2.0), 0.75, 1.0) == pytest.approx(0.75)

    def test_monotone_and_bounded(self):
        previous = 1.0
        for step in range(0, 60):
            value = mp.uniform_probability((0.0, 1.0), 1.0 + step * 0.01, 0.5)
            assert 0.0 <= value <= 1.0
            assert value <= previous
            previous = value

    def test_continuous_at_breakpoints(self):
        just_outside = mp.uniform_probability((0.0, 1.0), 1.0 + 2 * mp.EPS, 0.5)
        assert just_outside == pytest.approx(1.0, abs=1e-5)
        near_end = mp.uniform_probability((0.0, 1.0), 1.5 - 1e-6, 0.5)
        assert near_end == pytest.approx(0.0, abs=1e-5)

    def test_degenerate_interval(self):
        assert mp.uniform_probability((0.0, 0.0), 0.0, 0.1) == 1.0
        assert mp.uniform_probability((0.0, 0.0), 0.05, 0.1) == pytest.approx(0.5)


class TestDimensions:

    def test_font_size_equal_is_certain(self):
        x = make_chunk("a", 0, 0, 10)
        y = make_chunk("b", 10, 0, 20)
        assert mp.merge_by_font_size_probability(x, y) == 1.0

    def test_font_size_ratio_falls_off(self):
        x = make_chunk("a", 0, 0, 10, font_size=10.0)
        y = make_chunk("b", 10, 0, 20, font_size=9.75)
        assert mp.merge_by_font_size_probability(x, y) == pytest.approx(0.5)
        z = make_chunk("c", 10, 0, 20, font_size=8.0)
        assert mp.merge_by_font_size_probability(x, z) == 0.0

    def test_font_name_and_color(self):
        x = make_chunk("a", 0, 0, 10)
        y = make_chunk("b", 10, 0, 20, font_name="Times")
        z = make_chunk("c", 10, 0, 20, font_color=(1.0, 0.0, 0.0))
        assert mp.merge_by_font_name_probability(x, y) == 0.0
        assert mp.merge_by_font_color_probability(x, z) == 0.0
        assert mp.merge_by_font_color_probability(x, x) == 1.0

    def test_baseline(self):
        x = make_chunk("a", 0, 0, 10)
        assert mp.merge_by_baseline_probability(x, make_chunk("b", 10, 0, 20)) == 1.0
        assert mp.merge_by_baseline_probability(x, make_chunk("b", 10, 0.05, 20)) == pytest.approx(0.5, abs=1e-5)
        assert mp.merge_by_baseline_probability(x, make_chunk("b", 10, 1.0, 20)) == 0.0

    def test_char_spacing_counts_trailing_whitespace(self):
        x = make_chunk("abc", 0, 0, 30)
        y = make_chunk("def", 33, 0, 60)
        assert mp.merge_by_char_spacing_probability(x, y) == 1.0
        spaced = make_chunk("abc ", 0, 0, 30)
        assert mp.merge_by_char_spacing_probability(spaced, y) == 0.0

    def test_char_spacing_whitespace_ratio_is_tunable(self):
        spaced = make_chunk("abc ", 0, 0, 30)
        y = make_chunk("def", 30, 0, 60)
        assert mp.merge_by_char_spacing_probability(spaced, y) == 1.0
        assert mp.merge_by_char_spacing_probability(spaced, y, whitespace_ratio=1.0) == 0.0

    def test_leading(self):
        x = make_chunk("line one", 0, 100, 50)
        assert mp.merge_leading_probability(x, make_chunk("line two", 0, 88, 50)) == 1.0
        assert mp.merge_leading_probability(x, make_chunk("far away", 0, 80, 50)) == pytest.approx(0.5)
        assert mp.merge_leading_probability(x, make_chunk("bigger", 0, 88, 50, font_size=12.0)) == 0.0

    def test_indentation(self):
        x = make_chunk("first line", 0, 100, 100)
        assert mp.merge_indentation_probability(x, make_chunk("indented", 10, 88, 60)) == 1.0
        assert mp.merge_indentation_probability(x, make_chunk("aligned", 0, 88, 60)) == 0.0
        assert mp.merge_indentation_probability(x, make_chunk("shifted", 5, 88, 60)) == 0.0

    def test_indentation_interval_is_tunable(self):
        x = make_chunk("first line", 0, 100, 100)
        aligned = make_chunk("aligned", 0, 88, 60)
        assert mp.merge_indentation_probability(x, aligned, interval=(0.0, 0.0)) == 1.0

    def test_y_almost_nested(self):
        x = make_chunk("a", 0, 0, 10, top=21)
        assert mp.merge_y_almost_nested_probability(x, make_chunk("b", 10, 0, 20, top=21)) == 1.0
        assert mp.merge_y_almost_nested_probability(x, make_chunk("b", 10, 30, 20, top=40)) == 0.0
        assert mp.merge_y_almost_nested_probability(x, make_chunk("b", 10, 1, 20, top=22)) == pytest.approx(0.5)

    def test_y_almost_nested_degenerate_boxes(self):
        x = make_chunk("a", 0, 5, 10, top=5)
        assert mp.merge_y_almost_nested_probability(x, make_chunk("b", 10, 5, 20, top=5)) == 1.0

    def test_columns(self):
        x = make_line(make_chunk("end of column", 0, 100, 80))
        next_column = make_line(make_chunk("top of next", 100, 700, 180))
        same_line = make_line(make_chunk("neighbour", 100, 100, 180))
        below = make_line(make_chunk("next line", 0, 88, 80))
        assert mp.to_columns_merge_probability(x, next_column) == 1.0
        assert mp.to_columns_merge_probability(x, same_line) == 0.0
        assert mp.to_columns_merge_probability(x, below) == 0.0


class TestComposites:

    def test_adjacent_identical_style_chunks_always_merge(self):
        x = make_chunk("Hello", 0, 0, 25)
        y = make_chunk("world", 25, 0, 50)
        assert mp.to_chunk_merge_probability(x, y) == 1.0

    def test_different_color_never_merges(self):
        x = make_chunk("Hello", 0, 0, 25)
        y = make_chunk("world", 25, 0, 50, font_color=(0.0, 0.0, 1.0))
        assert mp.to_chunk_merge_probability(x, y) == 0.0

    def test_line_merge(self):
        x = make_line(make_chunk("Hello", 0, 0, 25))
        y = make_line(make_chunk("world", 26, 0, 50))
        assert mp.to_line_merge_probability(x, y) == 1.0
        assert mp.one_line_probability(x, y) == 1.0

    def test_paragraph_merge(self):
        x = make_line(make_chunk("first line of text", 0, 100, 90))
        indented = make_line(make_chunk("second line", 10, 88, 55))
        aligned = make_line(make_chunk("second line", 0, 88, 55))
        assert mp.to_paragraph_merge_probability(x, indented) == 1.0
        assert mp.to_paragraph_merge_probability(x, aligned) == 0.0

    @pytest.mark.parametrize("gap", [0.0, 2.0, 3.8, 5.0, 40.0])
    @pytest.mark.parametrize("size", [10.0, 9.8, 9.0])
    def test_composites_stay_in_unit_interval(self, gap, size):
        x = make_chunk("abc", 0, 0, 30)
        y = make_chunk("def", 30 + gap, 0.02, 60 + gap, font_size=size)
        for score in (mp.to_chunk_merge_probability(x, y), mp.to_line_merge_probability(x, y),
                      mp.to_paragraph_merge_probability(x, y)):
            assert 0.0 <= score <= 1.0
