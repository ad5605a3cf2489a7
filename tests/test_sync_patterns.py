"""Tests for include/exclude pattern matching."""

import pytest

from pys3sync.sync.patterns import PatternMatcher, glob_to_regex


class TestMatches:
    """Tests for single-pattern matching."""

    @pytest.mark.parametrize(
        "path,pattern,expected",
        [
            ("a.txt", "*.txt", True),
            ("dir/a.txt", "*.txt", True),
            ("dir/a.txt", "dir/*.txt", True),
            ("dir/sub/a.txt", "dir/*.txt", False),
            ("dir/sub/a.txt", "dir/**/*.txt", True),
            ("dir/a.txt", "dir/**/*.txt", True),
            ("a/b/c/d.log", "**/*.log", True),
            ("file1.txt", "file?.txt", True),
            ("file10.txt", "file?.txt", False),
            ("a.c", "*.[ch]", True),
            ("a.o", "*.[!ch]", True),
            ("node_modules/x/y.js", "node_modules/", True),
            ("node_modules", "node_modules/", True),
            ("src/node_modules/y.js", "node_modules/", False),
            ("build/out/a", "build/*/", True),
        ],
    )
    def test_matches(self, path, pattern, expected):
        assert PatternMatcher().matches(path, pattern) is expected

    def test_invalid_pattern_never_matches(self):
        assert PatternMatcher().matches("a[b", "a[b") is False


class TestShouldInclude:
    def test_no_patterns_includes_everything(self):
        assert PatternMatcher().should_include("anything/at/all.bin") is True

    def test_include_list_restricts(self):
        matcher = PatternMatcher(include_patterns=["*.jpg", "*.png"])
        assert matcher.should_include("a.jpg") is True
        assert matcher.should_include("b.gif") is False

    def test_exclude_wins(self):
        matcher = PatternMatcher(include_patterns=["*.jpg"], exclude_patterns=["tmp/"])
        assert matcher.should_include("tmp/a.jpg") is False

    def test_backslashes_normalized(self):
        matcher = PatternMatcher(exclude_patterns=["dir/*.txt"])
        assert matcher.should_include("dir\\a.txt") is False


class TestValidate:
    def test_valid_patterns(self):
        assert PatternMatcher(["*.txt"], ["logs/", "**/*.tmp"]).validate() == []

    def test_reports_bad_pattern_with_index(self):
        errors = PatternMatcher(["*.txt"], ["[oops"]).validate()
        assert len(errors) == 1
        assert errors[0].index == 1
        assert errors[0].pattern == "[oops"
        assert "unterminated" in str(errors[0])


def test_glob_to_regex_is_anchored():
    assert glob_to_regex("*.txt").match("a.txt.bak") is None
