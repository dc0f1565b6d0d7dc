"""Tests for request fingerprints."""

from __future__ import annotations

from playfetch.cache.fingerprint import make_fingerprint


class TestMakeFingerprint:
    def test_format(self) -> None:
        fp = make_fingerprint("details", {"doc": "com.example.app"})
        assert fp == 'details|{"doc":"com.example.app"}|post=False'

    def test_key_order_does_not_matter(self) -> None:
        a = make_fingerprint("rec", {"doc": "a", "rt": "1", "c": "3"})
        b = make_fingerprint("rec", {"c": "3", "doc": "a", "rt": "1"})
        assert a == b

    def test_values_are_compared_as_strings(self) -> None:
        assert make_fingerprint("rec", {"c": 3}) == make_fingerprint("rec", {"c": "3"})

    def test_empty_and_missing_query_match(self) -> None:
        assert make_fingerprint("browse") == make_fingerprint("browse", {})

    def test_path_distinguishes(self) -> None:
        assert make_fingerprint("details", {"doc": "a"}) != make_fingerprint(
            "rec", {"doc": "a"}
        )

    def test_query_value_distinguishes(self) -> None:
        assert make_fingerprint("details", {"doc": "a"}) != make_fingerprint(
            "details", {"doc": "b"}
        )

    def test_body_flag_distinguishes(self) -> None:
        get = make_fingerprint("purchase", {"doc": "a"}, has_body=False)
        post = make_fingerprint("purchase", {"doc": "a"}, has_body=True)
        assert get != post
        assert post.endswith("|post=True")

    def test_repeated_values_keep_order(self) -> None:
        fp = make_fingerprint("bulk", {"doc": ["b", "a"]})
        assert fp == 'bulk|{"doc":["b","a"]}|post=False'
