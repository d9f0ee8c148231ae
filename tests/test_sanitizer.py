from solveitsmart.sanitizer import math_spans, sanitize


def test_sanitize_strips_markdown_and_keeps_math() -> None:
    """Markdown characters are removed while the math span is left alone."""
    assert sanitize("**Step 1:** $$2+2=4$$ done#") == "Step 1: $$2+2=4$$ done"


def test_sanitize_without_math_spans() -> None:
    """Plain text is cleaned and trimmed."""
    assert sanitize("  # Title\n\n`code`  ~~gone~~ ") == "Title code gone"


def test_sanitize_preserves_markdown_inside_spans() -> None:
    """Characters stripped from prose survive verbatim inside $$...$$."""
    text = "*a* $$x * y # z$$ and `b` $$\\sim~1$$"
    assert sanitize(text) == "a $$x * y # z$$ and b $$\\sim~1$$"


def test_sanitize_preserves_line_breaks_inside_spans() -> None:
    """Newlines inside a span are kept; newlines outside collapse to spaces."""
    text = "first\nline $$a\n=\n  b$$\n\nlast"
    assert sanitize(text) == "first line $$a\n=\n  b$$ last"


def test_sanitize_removes_invisible_and_control_characters() -> None:
    """Zero-width and control characters disappear and whitespace runs collapse."""
    text = "a\u200bb\u200c c\ufeff\u0007d \t\r\n  e\u200d"
    assert sanitize(text) == "ab cd e"


def test_sanitize_handles_many_spans_in_order() -> None:
    """Every span comes back in its original position, however many there are."""
    spans = [f"$${i}*{i}$$" for i in range(12)]
    text = " **and** ".join(spans)
    result = sanitize(text)
    assert math_spans(result) == spans
    assert result == " and ".join(spans)


def test_sanitize_does_not_confuse_placeholder_lookalikes() -> None:
    """Text resembling an internal marker is treated as ordinary prose."""
    assert sanitize("MATH_BLOCK_0 $$y$$ MATH_BLOCK_1") == "MATH_BLOCK_0 $$y$$ MATH_BLOCK_1"


def test_sanitize_uses_shortest_spans() -> None:
    """Adjacent spans are matched separately rather than as one long span."""
    assert math_spans("$$a$$ # $$b$$") == ["$$a$$", "$$b$$"]
    assert sanitize("$$a$$ # $$b$$") == "$$a$$ $$b$$"


def test_sanitize_leaves_unpaired_delimiter_as_prose() -> None:
    """A lone $$ with no partner is not a span and is only trimmed."""
    assert sanitize("cost $$5 **total**") == "cost $$5 total"


def test_sanitize_empty_string() -> None:
    """Empty input stays empty."""
    assert sanitize("") == ""
