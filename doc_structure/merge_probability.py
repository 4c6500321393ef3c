"""
Merge Probability — Scores how likely two adjacent text primitives belong to
the same span, line, paragraph or column.

Every function takes two primitives (TextChunk or TextLine) with `x`
preceding `y` in reading order and returns a probability in [0, 1]. All the
geometric scores share one piecewise-linear kernel, `uniform_probability`.
Composite scores are products: a single disqualifying dimension drives the
whole score to zero.
"""

EPS = 1e-7
FONT_METRIC_UNIVERSAL_THRESHOLD = 0.1
FONT_SIZE_COMPARISON_THRESHOLD = 0.05
FONT_WHITESPACE_COMPARISON_THRESHOLD = 0.1
FONT_LEADING_INTERVAL_LENGTH = 1.0
FONT_SIZE_LEADING_GAP = 0.95
WHITESPACE_WIDTH_RATIO = 0.25
CHAR_SPACING_INTERVAL = (0.0, 0.33)
LEADING_INTERVAL = (0.0, 1.5)
INDENTATION_INTERVAL = (1.0, 1.0)


def uniform_probability(interval: tuple[float, float], point: float, length: float) -> float:
    """
    Piecewise-linear membership of `point` in the "certain" `interval`.

    Returns 1 inside [low - EPS, high + EPS], 0 once `point` lies `length`
    or more past either edge, and falls off linearly in between.
    """
    low, high = interval
    if low - EPS <= point <= high + EPS:
        return 1.0
    if length <= 0:
        return 0.0
    if point < low - length - EPS or point > high + length + EPS:
        return 0.0
    deviation = low - point if point < low else point - high
    return max(0.0, min(1.0, (length - deviation) / length))


def merge_by_font_name_probability(x, y) -> float:
    return 1.0 if x.font_name == y.font_name else 0.0


def merge_by_font_color_probability(x, y) -> float:
    return 1.0 if tuple(x.font_color) == tuple(y.font_color) else 0.0


def merge_by_font_size_probability(x, y) -> float:
    smaller, larger = sorted((x.font_size, y.font_size))
    ratio = smaller / larger if larger > 0 else 1.0
    # deviation from equal sizes; ratio 1 is the certain match
    return uniform_probability((0.0, 0.0), 1.0 - ratio, FONT_SIZE_COMPARISON_THRESHOLD)


def merge_by_baseline_probability(x, y) -> float:
    return uniform_probability((0.0, EPS), abs(x.baseline - y.baseline), FONT_METRIC_UNIVERSAL_THRESHOLD)


def whitespace_size(font_size: float, whitespace_ratio: float = WHITESPACE_WIDTH_RATIO) -> float:
    return font_size * whitespace_ratio


def merge_by_char_spacing_probability(x, y, whitespace_ratio: float = WHITESPACE_WIDTH_RATIO) -> float:
    distance = abs(x.bbox.right - y.bbox.left)
    if x.text.endswith(" "):
        distance += whitespace_size(x.font_size, whitespace_ratio)
    if y.text.startswith(" "):
        distance += whitespace_size(y.font_size, whitespace_ratio)
    max_font_size = max(x.font_size, y.font_size)
    if max_font_size <= 0:
        return 0.0
    return uniform_probability(CHAR_SPACING_INTERVAL, distance / max_font_size,
                               FONT_WHITESPACE_COMPARISON_THRESHOLD)


def merge_leading_probability(x, y) -> float:
    if abs(x.font_size - y.font_size) > FONT_SIZE_LEADING_GAP:
        return 0.0
    max_font_size = max(x.font_size, y.font_size)
    if max_font_size <= 0:
        return 0.0
    baseline_difference = abs(x.baseline - y.baseline)
    return uniform_probability(LEADING_INTERVAL, baseline_difference / max_font_size,
                               FONT_LEADING_INTERVAL_LENGTH)


def merge_indentation_probability(x, y, interval: tuple[float, float] = INDENTATION_INTERVAL) -> float:
    max_font_size = max(x.font_size, y.font_size)
    if max_font_size <= 0:
        return 0.0
    left_difference = abs(x.bbox.left - y.bbox.left)
    right_difference = abs(x.bbox.right - y.bbox.right)
    center_difference = abs((x.bbox.left + x.bbox.right) - (y.bbox.left + y.bbox.right)) / 2
    difference = min(left_difference, right_difference, center_difference) / max_font_size
    return uniform_probability(interval, difference, FONT_METRIC_UNIVERSAL_THRESHOLD)


def merge_y_almost_nested_probability(x, y) -> float:
    min_bottom, max_bottom = sorted((x.bbox.bottom, y.bbox.bottom))
    min_top, max_top = sorted((x.bbox.top, y.bbox.top))
    intersection = min_top - max_bottom
    difference = min(max_bottom - min_bottom, max_top - min_top)
    if intersection < EPS:
        # no vertical overlap: only identical degenerate extents count as nested
        return 1.0 if difference < EPS and intersection > -EPS else 0.0
    return uniform_probability((0.0, 0.0), difference / intersection, FONT_METRIC_UNIVERSAL_THRESHOLD)


def to_chunk_merge_probability(x, y) -> float:
    probability = 1.0
    probability *= merge_by_font_name_probability(x, y)
    probability *= merge_by_font_size_probability(x, y)
    probability *= merge_by_font_color_probability(x, y)
    probability *= merge_by_baseline_probability(x, y)
    probability *= merge_by_char_spacing_probability(x, y)
    return probability


def to_line_merge_probability(x, y) -> float:
    return merge_by_char_spacing_probability(x, y) * merge_y_almost_nested_probability(x, y)


def to_paragraph_merge_probability(x, y) -> float:
    return merge_leading_probability(x, y) * merge_indentation_probability(x, y)


def one_line_probability(last_line, next_line) -> float:
    """Probability that `next_line` continues `last_line` on the same visual line."""
    return to_line_merge_probability(last_line, next_line)


def to_columns_merge_probability(x, y) -> float:
    """
    Probability that `y` opens the next column after `x`.

    The next column starts to the right of `x` and at least one font size
    higher on the page; sizes must be compatible.
    """
    if y.bbox.left < x.bbox.right - EPS:
        return 0.0
    if y.baseline - x.baseline < max(x.font_size, y.font_size):
        return 0.0
    return merge_by_font_size_probability(x, y)
