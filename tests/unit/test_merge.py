"""
Tests for Merge Primitives.

This test suite covers:
1. deep_merge() object, list and scalar rules
2. Argument immutability
3. Server entry and hook merging
"""

import copy

from microapp.core.merge import deep_merge, merge_server_entries, merge_server_hooks


class TestDeepMerge:
    """Test smart deep merge."""

    def test_objects_merge_recursively(self):
        """Nested objects merge key by key."""
        result = deep_merge(
            {"alias": {"@a": "./a", "@shared": "./a/shared"}},
            {"alias": {"@b": "./b", "@shared": "./b/shared"}},
        )

        assert result == {"alias": {"@a": "./a", "@b": "./b", "@shared": "./b/shared"}}

    def test_lists_concatenate_and_dedupe(self):
        """Lists are concatenated, keeping the first occurrence of each item."""
        result = deep_merge(
            {"static_paths": ["public", "assets"]},
            {"static_paths": ["assets", "media"]},
        )

        assert result == {"static_paths": ["public", "assets", "media"]}

    def test_lists_of_tables_dedupe_by_equality(self):
        """Unhashable list items are deduplicated by equality."""
        result = deep_merge(
            {"htmls": [{"template": "a.html"}]},
            {"htmls": [{"template": "a.html"}, {"template": "b.html"}]},
        )

        assert result == {"htmls": [{"template": "a.html"}, {"template": "b.html"}]}

    def test_scalars_overwritten_by_later(self):
        """The later argument wins scalar conflicts."""
        assert deep_merge({"entry": "./a.js"}, {"entry": "./b.js"}) == {"entry": "./b.js"}

    def test_type_mismatch_later_wins(self):
        """A value of another type replaces the earlier one."""
        assert deep_merge({"entry": ["./a.js"]}, {"entry": "./b.js"}) == {"entry": "./b.js"}

    def test_arguments_not_mutated(self):
        """Inputs are left untouched and the output shares no containers."""
        first = {"alias": {"@a": "./a"}, "dlls": ["vendor"]}
        second = {"alias": {"@b": "./b"}, "dlls": ["react"]}
        snapshot = copy.deepcopy((first, second))

        result = deep_merge(first, second)
        result["alias"]["@c"] = "./c"
        result["dlls"].append("lodash")

        assert (first, second) == snapshot

    def test_none_and_empty_skipped(self):
        """None and empty arguments contribute nothing."""
        assert deep_merge(None, {}, {"a": 1}) == {"a": 1}
        assert deep_merge() == {}


class TestServerMerge:
    """Test server entry and hook merging."""

    def test_entries_keyed_by_app(self, tmp_path):
        """Entries resolve against their app root and group by key."""
        entries = merge_server_entries(
            {"key": "a", "root": str(tmp_path / "a"), "entry": "./server/index.js"},
            {"key": "__self__", "root": str(tmp_path), "entry": ["server.js", "api.js"]},
        )

        assert list(entries) == ["a", "__self__"]
        assert entries["a"] == [str(tmp_path / "a" / "server" / "index.js")]
        assert entries["__self__"] == [str(tmp_path / "server.js"), str(tmp_path / "api.js")]

    def test_entries_skip_apps_without_entry(self):
        """Apps without a server entry contribute no key."""
        assert merge_server_entries({"key": "a", "root": "/a"}, {}) == {}

    def test_hooks_ordered_and_unique(self, tmp_path):
        """Hooks keep contribution order and drop duplicate paths."""
        hooks = merge_server_hooks(
            {"key": "a", "root": str(tmp_path), "hooks": "hooks.js"},
            {"key": "b", "root": str(tmp_path), "hooks": ["hooks.js", "b.js"]},
        )

        assert hooks == [
            {"key": "a", "path": str(tmp_path / "hooks.js")},
            {"key": "b", "path": str(tmp_path / "b.js")},
        ]
