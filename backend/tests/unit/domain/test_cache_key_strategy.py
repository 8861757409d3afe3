"""
Unit tests for cache key derivation.

Covers determinism, namespace isolation, the truncate-then-sanitize
default strategy and custom strategies.
"""

from uuid import UUID

import pytest

from consultai.domain.cache.key_strategy import (
    build_cache_key,
    canonical_arguments,
    default_key_fragment,
)
from consultai.domain.cache.value_objects import CacheConfiguration, CacheNamespace


class TestCanonicalArguments:
    """Test canonical argument serialization."""

    def test_positional_arguments_serialize_as_list(self):
        """Positional-only calls serialize as the bare argument list."""
        assert canonical_arguments(({"id": "r1"},)) == '[{"id":"r1"}]'

    def test_dict_key_order_does_not_matter(self):
        """Structurally equal dicts serialize identically."""
        first = canonical_arguments(({"b": 1, "a": [1, 2]},))
        second = canonical_arguments(({"a": [1, 2], "b": 1},))
        assert first == second

    def test_keyword_arguments_included(self):
        """Keyword arguments are serialized as a sorted mapping."""
        serialized = canonical_arguments((1,), {"lang": "en", "depth": 2})
        assert serialized == '{"args":[1],"kwargs":{"depth":2,"lang":"en"}}'

    def test_non_json_values_fall_back_to_str(self):
        """Values JSON cannot encode use their string form."""
        value = UUID("12345678-1234-5678-1234-567812345678")
        assert canonical_arguments((value,)) == f'["{value}"]'


class TestDefaultKeyFragment:
    """Test the default truncate-then-sanitize fragment."""

    def test_strips_non_alphanumeric_characters(self):
        """Only alphanumerics survive sanitization."""
        assert default_key_fragment(({"id": "r-1", "lang": "en"},)) == "idr1langen"

    def test_truncates_before_sanitizing(self):
        """Prefix sharing arguments collide by documented design."""
        first = default_key_fragment(("a" * 200,))
        second = default_key_fragment(("a" * 150 + "b",))
        assert first == second
        assert len(first) == 98  # '["' consumes two of the 100 characters

    def test_custom_bound(self):
        """Truncation bound is configurable."""
        assert default_key_fragment(("abcdefghij",), max_length=6) == "abcd"


class TestBuildCacheKey:
    """Test full cache key composition."""

    def test_resume_scenario_key(self):
        """Namespace, operation and sanitized arguments are joined by colons."""
        config = CacheConfiguration(key_namespace="resume", ttl_seconds=60)
        key = build_cache_key(config, "parseResume", ({"id": "r1"},))
        assert key.value == "resume:parseResume:idr1"

    def test_determinism(self):
        """Same arguments always give the same key."""
        config = CacheConfiguration()
        args = ({"doc": {"pages": [1, 2, 3]}, "owner": "u1"}, 5)
        assert build_cache_key(config, "op", args) == build_cache_key(config, "op", args)

    def test_operations_isolated_within_namespace(self):
        """Distinct operation names never share keys for equal arguments."""
        config = CacheConfiguration(key_namespace="ai")
        args = ("same prompt",)
        assert build_cache_key(config, "summarize", args) != build_cache_key(
            config, "translate", args
        )

    def test_namespaces_isolated(self):
        """Distinct namespaces never share keys for equal calls."""
        args = ("job-42",)
        resume_key = build_cache_key(
            CacheConfiguration(key_namespace=CacheNamespace.RESUME), "get", args
        )
        job_key = build_cache_key(
            CacheConfiguration(key_namespace=CacheNamespace.JOB), "get", args
        )
        assert resume_key.value.startswith("resume:get:")
        assert job_key.value.startswith("job:get:")
        assert resume_key != job_key

    def test_no_arguments(self):
        """Calls without arguments still produce a valid key."""
        key = build_cache_key(CacheConfiguration(), "list_templates", ())
        assert key.value == "cache:list_templates:"

    def test_custom_strategy_keeps_prefix(self):
        """Custom strategies replace only the argument fragment."""
        config = CacheConfiguration(
            key_namespace="resume",
            key_strategy=lambda doc, **_: f"doc-{doc['id']}",
        )
        key = build_cache_key(config, "parse", ({"id": "r1", "body": "x" * 500},))
        assert key.value == "resume:parse:doc-r1"

    def test_custom_strategy_receives_keyword_arguments(self):
        """Keyword arguments are forwarded to the custom strategy."""
        config = CacheConfiguration(
            key_strategy=lambda prompt, model="default": f"{model}.{len(prompt)}"
        )
        key = build_cache_key(config, "complete", ("hello",), {"model": "qwen"})
        assert key.value == "cache:complete:qwen.5"

    def test_custom_strategy_must_return_str(self):
        """Non-string fragments are rejected."""
        config = CacheConfiguration(key_strategy=lambda value: 42)
        with pytest.raises(TypeError, match="key_strategy must return str"):
            build_cache_key(config, "op", ("x",))

    def test_configured_operation_name_overrides(self):
        """Configured operation name replaces the callable name."""
        config = CacheConfiguration(operation_name="parseResume")
        key = build_cache_key(config, "parse_resume", ("r1",))
        assert key.value == "cache:parseResume:r1"

    def test_configured_bound_and_pattern(self):
        """Bound and whitelist come from the configuration."""
        config = CacheConfiguration(max_arg_length=12, key_sanitize_pattern=r"[^a-z]")
        key = build_cache_key(config, "op", ({"ID": "abc"},))
        # '[{"ID":"abc"}]'[:12] == '[{"ID":"abc"' -> lowercase letters only
        assert key.value == "cache:op:abc"


class TestNonAsciiArguments:
    """Test keys for arguments outside ASCII."""

    def test_non_ascii_text_kept_as_escapes(self):
        """Non-ASCII arguments do not collapse to an empty fragment."""
        first = default_key_fragment(("张三",))
        second = default_key_fragment(("李四",))

        assert first.startswith("u")
        assert len(first) == 10
        assert first != second

    def test_non_ascii_keys_distinct(self):
        config = CacheConfiguration(key_namespace="resume")
        first = build_cache_key(config, "parse", ({"name": "张三"},))
        second = build_cache_key(config, "parse", ({"name": "李四"},))

        assert first != second
        assert first.value != "resume:parse:name"
