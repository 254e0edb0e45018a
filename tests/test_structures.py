#!/usr/bin/env python3
"""
Tests for normalization, the bit-set and the prefix dictionary
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from subxploit import (
    normalize, unique_letters, BitSet, PrefixDictionary, AlphabetViolation,
    load_dictionary, read_dictionary, DictionaryLoadError,
)

def test_normalize_drop_policy():
    """Non-letters disappear, whitespace stays where it was"""
    print("Testing drop normalization...")

    out = normalize("hello, world! \N{SMILING FACE WITH SMILING EYES}", "drop")
    assert out == "hello world ", f"Unexpected drop output: {out!r}"
    assert normalize("Hello WORLD") == "hello world", "Default policy should lowercase and keep words"
    assert normalize("  Hello    world! ") == "  hello    world ", "Spacing should not be collapsed"
    assert normalize("café naïve") == "caf nave", "Non-ASCII letters are not part of the alphabet"

    print("✅ Drop normalization tests passed")

def test_normalize_map_policy():
    """Each non-letter turns into exactly one space"""
    print("Testing map normalization...")

    out = normalize("hello, world! \N{SMILING FACE WITH SMILING EYES}", "map")
    assert out == "hello  world   ", f"Unexpected map output: {out!r}"
    assert normalize("don't\tstop\n", "map") == "don t\tstop\n", "Tabs and newlines are kept"

    try:
        normalize("abc", "squash")
        assert False, "Expected ValueError for unknown policy"
    except ValueError:
        pass

    print("✅ Map normalization tests passed")

def test_unique_letters():
    print("Testing unique letters...")
    assert unique_letters("hello world") == list("helowrd"), "Expected first-appearance order"
    assert unique_letters("   ") == [], "Whitespace has no letters"
    print("✅ Unique letters tests passed")

def test_bitset_mixed_operations():
    """Insert a range, punch a hole, check every bit"""
    print("Testing bit-set...")

    bs = BitSet(100)
    for i in range(100):
        bs.insert(i)
    for i in range(4, 8):
        bs.remove(i)

    for i in range(4):
        assert bs.contains(i), f"Expected {i} in set"
    for i in range(4, 8):
        assert i not in bs, f"Expected {i} removed"
    for i in range(8, 100):
        assert i in bs, f"Expected {i} in set"
    for i in range(100, 256):
        assert i not in bs, f"Out of range value {i} can't be a member"
    assert len(bs) == 96, f"Expected 96 members, got {len(bs)}"

    print("✅ Bit-set tests passed")

def test_bitset_capacity_and_iteration():
    print("Testing bit-set capacity...")

    bs = BitSet(26, [25, 0, 3])
    assert list(bs) == [0, 3, 25], f"Iteration should be ascending, got {list(bs)}"
    assert bs == BitSet(26, [0, 3, 25]), "Equal contents should compare equal"
    bs.remove(3)
    bs.remove(3)
    assert list(bs) == [0, 25], "Removing twice is harmless"
    bs.clear()
    assert not bs, "Cleared set should be falsy"

    try:
        bs.insert(26)
        assert False, "Expected ValueError past capacity"
    except ValueError:
        pass

    print("✅ Bit-set capacity tests passed")

def test_prefix_score():
    """Full words score length + 1, prefixes score what matched"""
    print("Testing prefix scores...")

    trie = PrefixDictionary(["hello", "help", "world"])
    assert trie.prefix_score("hello") == 6, "Stored word scores len + 1"
    assert trie.prefix_score("help") == 5, "Stored word scores len + 1"
    assert trie.prefix_score("hell") == 4, "Path without end marker scores len"
    assert trie.prefix_score("helium") == 3, "Only 'hel' matches"
    assert trie.prefix_score("hellos") == 5, "Extra letter breaks the path"
    assert trie.prefix_score("xyz") == 0, "Nothing matches"
    assert trie.prefix_score("") == 0, "Empty word matches nothing stored"

    print("✅ Prefix score tests passed")

def test_insert_and_contains():
    print("Testing insertion...")

    trie = PrefixDictionary()
    assert "hello" not in trie, "Empty dictionary contains nothing"
    assert trie.insert("hello"), "First insert should report a new word"
    assert not trie.insert("hello"), "Second insert should report a duplicate"
    trie.insert("he")
    assert "hello" in trie and "he" in trie, "Both words should be stored"
    assert "hel" not in trie, "Prefix alone is not a word"
    assert len(trie) == 2, f"Expected 2 words, got {len(trie)}"

    try:
        trie.insert("Hello")
        assert False, "Expected AlphabetViolation for uppercase"
    except AlphabetViolation:
        pass
    try:
        trie.prefix_score("he llo")
        assert False, "Expected AlphabetViolation for a space"
    except AlphabetViolation:
        pass

    print("✅ Insertion tests passed")

def test_from_lines_uses_policy():
    print("Testing dictionary loading...")

    dropped = load_dictionary(["Don't stop\n", "\n", "Hello, World\n"], "drop")
    assert "dont" in dropped and "stop" in dropped, "Apostrophe should be dropped"
    assert "hello" in dropped and "world" in dropped, "Words are lowercased"
    assert len(dropped) == 4, f"Expected 4 words, got {len(dropped)}"

    mapped = load_dictionary(["Don't stop\n"], "map")
    assert "don" in mapped and "t" in mapped, "Apostrophe should split the word"
    assert "dont" not in mapped, "Joined form should not exist"

    print("✅ Dictionary loading tests passed")

def test_dictionary_load_errors():
    print("Testing dictionary load errors...")

    def broken_lines():
        yield "hello\n"
        raise OSError("disk went away")

    try:
        load_dictionary(broken_lines())
        assert False, "Expected DictionaryLoadError from a failing reader"
    except DictionaryLoadError as e:
        assert "disk went away" in str(e), f"Cause should be kept in message: {e}"

    try:
        read_dictionary(os.path.join(os.path.dirname(__file__), "no-such-wordlist.txt"))
        assert False, "Expected DictionaryLoadError for a missing file"
    except DictionaryLoadError as e:
        assert "Cannot open" in str(e), f"Unexpected message: {e}"

    print("✅ Dictionary load error tests passed")

def run_all_tests():
    """Run all structure tests"""
    print("🧪 Running structure tests...")
    print("=" * 50)

    try:
        test_normalize_drop_policy()
        test_normalize_map_policy()
        test_unique_letters()
        test_bitset_mixed_operations()
        test_bitset_capacity_and_iteration()
        test_prefix_score()
        test_insert_and_contains()
        test_from_lines_uses_policy()
        test_dictionary_load_errors()

        print("=" * 50)
        print("🎉 All structure tests passed!")
        return True

    except AssertionError as e:
        print(f"❌ Test failed: {e}")
        return False
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        return False

if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
