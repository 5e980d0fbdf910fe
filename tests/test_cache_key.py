"""Tests for cache directory key derivation."""

import hashlib
import itertools

from execution.cache_key import derive_key


class TestDeriveKey:
    """Order-independent hashing of requested package sets."""

    def test_known_value(self):
        expected = hashlib.sha512(b"cowsay\nleft-pad@1.3.0").hexdigest()[:16]
        assert derive_key(["left-pad@1.3.0", "cowsay"]) == expected

    def test_permutations_agree(self):
        packages = ["b@1", "A@2", "c", "@scope/d@^1"]
        keys = {derive_key(list(p)) for p in itertools.permutations(packages)}
        assert len(keys) == 1

    def test_different_sets_differ(self):
        assert derive_key(["foo@1.0.0"]) != derive_key(["foo@1.0.1"])
        assert derive_key(["foo", "bar"]) != derive_key(["foo"])

    def test_duplicates_ignored(self):
        assert derive_key(["foo", "foo", "bar"]) == derive_key(["bar", "foo"])

    def test_length_and_alphabet(self):
        key = derive_key(["foo"])
        assert len(key) == 16
        assert all(ch in "0123456789abcdef" for ch in key)
        assert len(derive_key(["foo"], length=8)) == 8

    def test_case_only_differences_are_ordered_stably(self):
        assert derive_key(["Foo", "foo"]) == derive_key(["foo", "Foo"])
        assert derive_key(["Foo", "foo"]) == hashlib.sha512(b"foo\nFoo").hexdigest()[:16]

    def test_lowercase_first_within_case_insensitive_ties(self):
        expected = hashlib.sha512(b"bar\nleft-pad\nLeft-Pad").hexdigest()[:16]
        assert derive_key(["Left-Pad", "bar", "left-pad"]) == expected
