"""
Tests for error message truncation utilities.
"""

from worker.errors import ProcessLaunchError, tail_text, truncate_error, truncate_string


class TestTruncateString:
    """Tests for the generic truncate_string function."""

    def test_short_text_untouched(self):
        assert truncate_string("Short text", 50) == "Short text"

    def test_long_text_truncated_with_ellipsis(self):
        result = truncate_string("a" * 100, 50)
        assert len(result) == 50
        assert result == "a" * 47 + "..."

    def test_none_input(self):
        assert truncate_string(None, 50) is None

    def test_small_max_length(self):
        """With max_length < 4 there is no room for the ellipsis."""
        assert truncate_string("abcdefgh", 3) == "abc"
        assert truncate_string("abcdefgh", 1) == "a"


class TestTruncateError:
    def test_delegates_to_truncate_string(self):
        assert truncate_error("x" * 600, 500) == "x" * 497 + "..."
        assert truncate_error(None, 500) is None


class TestTailText:
    """ffmpeg prints its failure reason last, so the tail is kept."""

    def test_short_text_untouched(self):
        assert tail_text("done", 10) == "done"

    def test_keeps_end(self):
        result = tail_text("0123456789" * 3 + "Conversion failed!", 21)
        assert result == "...Conversion failed!"
        assert len(result) == 21

    def test_small_max_length(self):
        assert tail_text("abcdefgh", 2) == "gh"

    def test_none_input(self):
        assert tail_text(None, 10) is None


class TestProcessLaunchError:
    def test_message(self):
        error = ProcessLaunchError("/usr/bin/ffmpeg", "permission denied")
        assert str(error) == "Failed to launch /usr/bin/ffmpeg: permission denied"
        assert error.executable == "/usr/bin/ffmpeg"
