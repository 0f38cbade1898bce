"""
Tests for Config Composer.

This test suite covers:
1. Build composition precedence and field whitelist
2. Server composition (network binding from the root only)
3. Idempotence and input immutability
"""

import copy

from microapp.core.composer import compose_build, compose_server


class TestComposeBuild:
    """Test build config composition."""

    def test_self_only(self):
        """Composing without micros yields the root config alone."""
        self_config = {"entry": "./src/index.js", "alias": {"@": "./src"}, "mode": "spa"}

        assert compose_build(self_config, {}, []) == self_config

    def test_self_wins_conflicts(self):
        """The root config is merged last and wins scalar conflicts."""
        result = compose_build(
            {"entry": "./src/index.js"},
            {"a": {"entry": "./a/index.js", "alias": {"@a": "./a/src"}}},
            ["a"],
        )

        assert result["entry"] == "./src/index.js"
        assert result["alias"] == {"@a": "./a/src"}

    def test_later_micro_wins_over_earlier(self):
        """Micros merge in the supplied order."""
        micro_configs = {
            "a": {"shared": {"button": "./a/button.js"}},
            "b": {"shared": {"button": "./b/button.js", "card": "./b/card.js"}},
        }

        forward = compose_build({}, micro_configs, ["a", "b"])
        backward = compose_build({}, micro_configs, ["b", "a"])

        assert forward["shared"] == {"button": "./b/button.js", "card": "./b/card.js"}
        assert backward["shared"] == {"button": "./a/button.js", "card": "./b/card.js"}

    def test_only_whitelisted_micro_fields(self):
        """Micros contribute whitelisted build fields only."""
        result = compose_build(
            {},
            {"a": {"static_paths": ["a/public"], "mode": "mpa", "devtool": "eval"}},
            ["a"],
        )

        assert result == {"static_paths": ["a/public"]}

    def test_lists_concatenate_across_micros(self):
        """List fields collect every contribution without duplicates."""
        result = compose_build(
            {"dlls": ["vendor"]},
            {"a": {"dlls": ["vendor", "react"]}, "b": {"dlls": ["vue"]}},
            ["a", "b"],
        )

        assert result["dlls"] == ["vendor", "react", "vue"]

    def test_unknown_ids_in_order_skipped(self):
        """Ids without a config are ignored."""
        assert compose_build({"entry": "x"}, {}, ["ghost"]) == {"entry": "x"}

    def test_idempotent_and_pure(self):
        """Same inputs compose to equal outputs and are never mutated."""
        self_config = {"entry": {"main": ["./src/index.js"]}, "alias": {"@": "./src"}}
        micro_configs = {
            "a": {"entry": {"main": ["./a/index.js"]}, "alias": {"@a": "./a"}},
        }
        snapshot = copy.deepcopy((self_config, micro_configs))

        first = compose_build(self_config, micro_configs, ["a"])
        first["alias"]["@x"] = "./x"
        second = compose_build(self_config, micro_configs, ["a"])

        assert (self_config, micro_configs) == snapshot
        assert second == compose_build(self_config, micro_configs, ["a"])
        assert second["entry"] == {"main": ["./a/index.js", "./src/index.js"]}
        assert "@x" not in second["alias"]


class TestComposeServer:
    """Test server config composition."""

    def test_network_binding_from_self(self, tmp_path):
        """Host, port and content base come from the root only."""
        result = compose_server(
            {"key": "__self__", "root": str(tmp_path), "host": "0.0.0.0", "port": 8080,
             "static_base": "public"},
            [{"key": "a", "root": str(tmp_path / "a"), "host": "a.local", "port": 9000,
              "content_base": "dist"}],
        )

        assert result["host"] == "0.0.0.0"
        assert result["port"] == 8080
        assert result["content_base"] == "public"

    def test_content_base_preferred_over_static_base(self):
        """content_base wins over static_base."""
        result = compose_server({"content_base": "dist", "static_base": "public"}, [])

        assert result["content_base"] == "dist"

    def test_entries_and_hooks_merged(self, tmp_path):
        """Entries and hooks include micros first, then the root."""
        result = compose_server(
            {"key": "__self__", "root": str(tmp_path), "entry": "server.js", "hooks": "hooks.js"},
            [{"key": "a", "root": str(tmp_path / "a"), "entry": "server.js", "hooks": "hooks.js"}],
        )

        assert list(result["entries"]) == ["a", "__self__"]
        assert [hook["key"] for hook in result["hooks"]] == ["a", "__self__"]

    def test_idempotent_and_pure(self, tmp_path):
        """Same inputs compose to equal outputs and are never mutated."""
        self_server = {"key": "__self__", "root": str(tmp_path), "entry": ["s.js"], "port": 80}
        micro_servers = [{"key": "a", "root": str(tmp_path), "hooks": ["h.js"]}]
        snapshot = copy.deepcopy((self_server, micro_servers))

        first = compose_server(self_server, micro_servers)
        second = compose_server(self_server, micro_servers)

        assert first == second
        assert (self_server, micro_servers) == snapshot
