from utils.highlights import TextSpan, build_highlight_spans, clamp_caret, keyword_at, locate_caret

COLORS = {"ocean": "#CAE2FF", "dawn": "#CEE8D7"}


def test_spans_cover_text_exactly():
    text = "The Ocean at dawn, oceanic dawn."
    spans = build_highlight_spans(text, COLORS)
    assert "".join(span.text for span in spans) == text
    for before, after in zip(spans, spans[1:]):
        assert before.end == after.start


def test_matches_are_case_insensitive_whole_words():
    spans = build_highlight_spans("The Ocean at dawn, oceanic dawn.", COLORS)
    highlighted = [(span.text, span.keyword, span.color) for span in spans if span.is_keyword]
    assert highlighted == [
        ("Ocean", "ocean", "#CAE2FF"),
        ("dawn", "dawn", "#CEE8D7"),
        ("dawn", "dawn", "#CEE8D7"),
    ]


def test_overlapping_matches_keep_the_first():
    spans = build_highlight_spans("rain-coat", {"rain-coat": "#CAE2FF", "coat": "#CEE8D7"})
    assert [span.keyword for span in spans if span.is_keyword] == ["rain-coat"]


def test_no_keywords_is_one_plain_span():
    assert build_highlight_spans("plain text", {}) == [TextSpan("plain text", 0)]
    assert build_highlight_spans("", COLORS) == []


def test_caret_is_clamped_to_new_text():
    assert clamp_caret(50, "short") == 5
    assert clamp_caret(-3, "short") == 0
    assert clamp_caret(2, "") == 0


def test_locate_caret_on_boundary_stays_in_previous_span():
    spans = build_highlight_spans("at dawn we", COLORS)
    # "at " | "dawn" | " we"
    assert locate_caret(spans, 7) == (1, 4)
    assert locate_caret(spans, 8) == (2, 1)
    assert locate_caret(spans, 0) == (0, 0)
    assert locate_caret(spans, 99) == (2, 3)
    assert locate_caret([], 4) == (0, 0)


def test_keyword_at_click_offset():
    spans = build_highlight_spans("at dawn we", COLORS)
    assert keyword_at(spans, 4) == "dawn"
    assert keyword_at(spans, 1) is None
