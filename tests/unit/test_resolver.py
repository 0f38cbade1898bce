"""
Tests for Micro-app Resolver.

This test suite covers:
1. Root descriptor resolution
2. Scoped, bare and dev-link lookups
3. Caching
4. Resolve-and-prune of declared micros
"""

import pytest

from microapp.config.loader import load_config
from microapp.core.resolver import Resolver
from microapp.errors import NotFoundError


class TestResolveSelf:
    """Test root descriptor resolution."""

    def test_resolve_self(self, settings, temp_root, write_app):
        """The root config resolves to the self descriptor."""
        write_app(temp_root, {"name": "root-app", "micros": ["a"]})

        descriptor = Resolver(settings).resolve_self()

        assert descriptor.name == "root-app"
        assert descriptor.root == temp_root
        assert descriptor.micros == ("a",)

    def test_resolve_self_cached(self, settings, temp_root, write_app):
        """The root descriptor is loaded once."""
        write_app(temp_root, {"name": "root-app"})
        resolver = Resolver(settings)

        assert resolver.resolve_self() is resolver.resolve_self()

    def test_missing_root_config_fatal(self, settings):
        """A root without config cannot run."""
        with pytest.raises(NotFoundError, match="micro-app.config"):
            Resolver(settings).resolve_self()


class TestResolve:
    """Test micro resolution strategies."""

    def test_scoped_lookup(self, settings, temp_root, write_app, micro_path):
        """Micros are found under the scope first."""
        write_app(temp_root, {"micros": ["a"]})
        write_app(micro_path("a"), {"name": "a", "entry": "./a/index.js"})

        descriptor = Resolver(settings).resolve("a")

        assert descriptor is not None
        assert descriptor.key == "a"
        assert descriptor.root == micro_path("a")

    def test_bare_fallback(self, settings, temp_root, write_app):
        """Unscoped installs are used when the scoped path has no config."""
        write_app(temp_root, {"micros": ["b"]})
        write_app(temp_root / "node_modules" / "b", {"name": "b"})

        descriptor = Resolver(settings).resolve("b")

        assert descriptor is not None
        assert descriptor.root == temp_root / "node_modules" / "b"

    def test_dev_link_overrides_install(self, settings, temp_root, write_app, micro_path):
        """An existing dev link replaces the installed package."""
        write_app(
            temp_root,
            {"micros": ["a"], "micros_extra": {"a": {"link": "./dev/linked-a"}}},
        )
        write_app(micro_path("a"), {"name": "installed-a"})
        linked = write_app(temp_root / "dev" / "linked-a", {"name": "linked-a"})

        descriptor = Resolver(settings).resolve("a")

        assert descriptor.name == "linked-a"
        assert descriptor.root == linked

    def test_missing_dev_link_ignored(self, settings, temp_root, write_app, micro_path):
        """A dev link that does not exist on disk is ignored."""
        write_app(temp_root, {"micros": ["a"], "micros_extra": {"a": {"link": "./nowhere"}}})
        write_app(micro_path("a"), {"name": "installed-a"})

        assert Resolver(settings).resolve("a").name == "installed-a"

    def test_not_found(self, settings, temp_root, write_app):
        """Unresolvable micros return None."""
        write_app(temp_root, {"micros": ["ghost"]})

        assert Resolver(settings).resolve("ghost") is None

    def test_cached_without_rereading(self, settings, temp_root, write_app, micro_path):
        """Repeated lookups return the cached descriptor."""
        write_app(temp_root, {"micros": ["a"]})
        write_app(micro_path("a"), {"name": "a"})
        calls = []

        def counting_loader(root, filename):
            calls.append(root)
            return load_config(root, filename)

        resolver = Resolver(settings, loader=counting_loader)
        resolver.resolve_self()
        first = resolver.resolve("a")
        count = len(calls)
        second = resolver.resolve("a")

        assert first is second
        assert len(calls) == count
        assert resolver.cache_key("a") == "@micro-app/a"

    def test_clear_cache(self, settings, temp_root, write_app, micro_path):
        """Clearing the cache forces a reload."""
        write_app(temp_root, {"micros": ["a"]})
        write_app(micro_path("a"), {"name": "a"})
        resolver = Resolver(settings)
        first = resolver.resolve("a")

        resolver.clear_cache()

        assert resolver.resolve("a") is not first


class TestResolveAll:
    """Test resolve-and-prune of declared micros."""

    def test_dedupes_and_prunes(self, settings, temp_root, write_app, micro_path, log_records):
        """Duplicates collapse in first-seen order; missing ids warn and drop."""
        write_app(temp_root, {"micros": ["b", "a", "ghost", "b"]})
        write_app(micro_path("a"), {"name": "a"})
        write_app(micro_path("b"), {"name": "b"})

        active = Resolver(settings).resolve_all(["b", "a", "ghost", "b", "a"])

        assert list(active) == ["b", "a"]
        warnings = [msg for level, msg in log_records if level == "WARNING"]
        assert any('"ghost"' in msg for msg in warnings)

    def test_disabled_micros_skipped(self, settings, temp_root, write_app, micro_path):
        """Micros marked disabled are not resolved."""
        write_app(temp_root, {"micros": ["a", "b"], "micros_extra": {"b": {"disabled": True}}})
        write_app(micro_path("a"), {"name": "a"})
        write_app(micro_path("b"), {"name": "b"})

        assert list(Resolver(settings).resolve_all(["a", "b"])) == ["a"]
