#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
subxploit.py: dictionary-guided breaker for monoalphabetic substitution ciphers
"""

import argparse
import os
import random
import string
import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from colorama import init as _init_colorama, Fore, Style

# ---------- Colors ----------
_init_colorama(autoreset=True)
BOLD = Style.BRIGHT; RESET = Style.RESET_ALL
CYAN, GREEN, YELLOW, BLUE = Fore.CYAN, Fore.GREEN, Fore.YELLOW, Fore.BLUE

def cCYN(s): return f"{BOLD}{CYAN}{s}{RESET}"
def cGRN(s): return f"{BOLD}{GREEN}{s}{RESET}"
def cYEL(s): return f"{BOLD}{YELLOW}{s}{RESET}"
def cBLU(s): return f"{BLUE}{s}{RESET}"

def eprint(*a, **k): print(*a, file=sys.stderr, **k)

# ---------- Alphabet ----------
ALPHABET = string.ascii_lowercase
R = len(ALPHABET)
_BASE = ord(ALPHABET[0])

# English letters ranked by frequency (most frequent to least frequent)
ENGLISH_FREQ_ORDER = "etaonihsrdluwmcfgypbkvjxqz"

# Solver defaults
DEFAULT_POLICY = "drop"
POLICIES = ("drop", "map")
SKIP_DIVISOR = 10
TOLERANCE = 1
STRICT_MAX = 4
MAX_GROUP = 3

# ---------- Errors ----------
class SubxploitError(Exception):
    """Base class for errors raised by this module."""

class DictionaryLoadError(SubxploitError):
    """The dictionary source could not be read."""

class SearchExhausted(SubxploitError):
    """Every guess and skip was tried without an accepting assignment."""

class AlphabetViolation(SubxploitError, ValueError):
    """A character outside a..z reached the key or the dictionary."""

def letter_index(ch: str) -> int:
    if len(ch) != 1 or not 0 <= ord(ch) - _BASE < R:
        raise AlphabetViolation(f"{ch!r} is not in {ALPHABET[0]}..{ALPHABET[-1]}")
    return ord(ch) - _BASE

# ---------- Normalization ----------
def is_letter(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()

def normalize(text: str, policy: str = DEFAULT_POLICY) -> str:
    """
    Reduce text to lowercase ASCII letters and whitespace.
      - drop: other characters are removed
      - map:  other characters become one space each
    Whitespace is kept as-is; runs are not collapsed and nothing is trimmed.
    """
    if policy not in POLICIES:
        raise ValueError(f"unknown normalization policy {policy!r}")
    out = []
    for ch in text:
        if is_letter(ch):
            out.append(ch.lower())
        elif ch in string.whitespace:
            out.append(ch)
        elif policy == "map":
            out.append(" ")
    return "".join(out)

def unique_letters(text: str) -> List[str]:
    """Letters of text in order of first appearance."""
    seen = BitSet(R)
    out = []
    for ch in text:
        if is_letter(ch):
            idx = letter_index(ch)
            if idx not in seen:
                seen.insert(idx)
                out.append(ch)
    return out

# ---------- Bit-Set ----------
class BitSet:
    """Set of small non-negative integers stored as the bits of one int."""

    __slots__ = ("capacity", "_bits")

    def __init__(self, capacity: int = 64, values: Iterable[int] = ()):
        self.capacity = capacity
        self._bits = 0
        for v in values:
            self.insert(v)

    def _mask(self, value: int) -> int:
        if not 0 <= value < self.capacity:
            raise ValueError(f"{value} outside bit-set capacity {self.capacity}")
        return 1 << value

    def insert(self, value: int):
        self._bits |= self._mask(value)

    def remove(self, value: int):
        self._bits &= ~self._mask(value)

    def contains(self, value: int) -> bool:
        return 0 <= value < self.capacity and bool(self._bits >> value & 1)

    __contains__ = contains

    def clear(self):
        self._bits = 0

    def __iter__(self):
        bits, idx = self._bits, 0
        while bits:
            if bits & 1:
                yield idx
            bits >>= 1; idx += 1

    def __len__(self) -> int:
        return bin(self._bits).count("1")

    def __bool__(self) -> bool:
        return self._bits != 0

    def __eq__(self, other) -> bool:
        if not isinstance(other, BitSet):
            return NotImplemented
        return self._bits == other._bits

    def __repr__(self) -> str:
        return f"BitSet({self.capacity}, {sorted(self)})"

# ---------- Prefix Dictionary ----------
class PrefixDictionary:
    """
    Trie over a..z. Nodes live in flat lists and point to each other by index;
    node 0 is the root.
    """

    def __init__(self, words: Iterable[str] = ()):
        self._children: List[List[Optional[int]]] = [[None] * R]
        self._terminal: List[bool] = [False]
        self._size = 0
        for w in words:
            self.insert(w)

    @classmethod
    def from_lines(cls, lines: Iterable[str], policy: str = DEFAULT_POLICY) -> "PrefixDictionary":
        """Insert every word of every line, normalized like the ciphertext."""
        trie = cls()
        for line in lines:
            for word in normalize(line, policy).split():
                trie.insert(word)
        return trie

    def _create(self) -> int:
        self._children.append([None] * R)
        self._terminal.append(False)
        return len(self._terminal) - 1

    def insert(self, word: str) -> bool:
        """Add word. Returns False if it was already stored."""
        if not word:
            raise ValueError("cannot insert an empty word")
        node = 0
        for ch in word:
            idx = letter_index(ch)
            nxt = self._children[node][idx]
            if nxt is None:
                nxt = self._create()
                self._children[node][idx] = nxt
            node = nxt
        if self._terminal[node]:
            return False
        self._terminal[node] = True
        self._size += 1
        return True

    def prefix_score(self, word: str) -> int:
        """
        Count of leading letters that follow a path in the trie, plus one when
        the whole word is a stored entry.
        """
        node = 0
        for matched, ch in enumerate(word):
            nxt = self._children[node][letter_index(ch)]
            if nxt is None:
                return matched
            node = nxt
        return len(word) + 1 if self._terminal[node] else len(word)

    def __contains__(self, word) -> bool:
        return isinstance(word, str) and bool(word) and self.prefix_score(word) == len(word) + 1

    def __len__(self) -> int:
        return self._size

# ---------- Frequency model ----------
def letter_counts(text: str) -> Counter:
    return Counter(ch for ch in text if is_letter(ch))

def rank_index(order: str) -> List[int]:
    """Inverse of a frequency order: letter index -> rank."""
    if sorted(order) != list(ALPHABET):
        raise ValueError(f"frequency order must be a permutation of {ALPHABET}")
    index = [0] * R
    for rank, ch in enumerate(order):
        index[letter_index(ch)] = rank
    return index

def input_frequency_index(text: str) -> List[int]:
    """Rank of each letter by its count in text, most common first. Ties go alphabetically."""
    counts = letter_counts(text)
    ranked = sorted(ALPHABET, key=lambda ch: -counts[ch])
    return rank_index("".join(ranked))

# ---------- Substitution key ----------
class Key:
    """
    Partial substitution from observed (ciphertext) letters to guessed letters.

    A guess can be held by one observed letter at a time. Guesses for a letter
    are generated by expanding outward from its anchor's rank in the language
    frequency order, so guesses close to the anchor come first.
    """

    def __init__(self, text: str = "", lang_freq_order: str = ENGLISH_FREQ_ORDER):
        self.table: List[Optional[str]] = [None] * R
        self.started_from: List[Optional[str]] = [None] * R
        self.used = BitSet(R)
        self.lang_freq_order = lang_freq_order
        self.lang_freq_index = rank_index(lang_freq_order)
        self.input_freq_index = input_frequency_index(text)
        # str.translate table mirroring self.table
        self._trans: Dict[int, str] = {}

    @classmethod
    def random(cls, rng: Optional[random.Random] = None) -> "Key":
        """Full random permutation, used for encryption."""
        rng = rng or random.Random()
        guesses = list(ALPHABET)
        rng.shuffle(guesses)
        key = cls()
        for observed, guess in zip(ALPHABET, guesses):
            key.attach(observed, guess)
        return key

    def attach(self, observed: str, guess: str) -> bool:
        """Set guess for observed. False when another letter already holds guess."""
        g = letter_index(guess)
        if g in self.used:
            return False
        idx = letter_index(observed)
        current = self.table[idx]
        if current is None:
            self.started_from[idx] = guess
        else:
            self.used.remove(letter_index(current))
        self.table[idx] = guess
        self.used.insert(g)
        self._trans[ord(observed)] = guess
        return True

    def next_in_freq_order(self, anchor: str, current: str) -> Optional[str]:
        """
        Next letter after current when expanding around anchor's rank:
        anchor, one below, one above, two below, ... Once one side runs out the
        other side continues alone. Returns None after the last letter.
        """
        start = self.lang_freq_index[letter_index(anchor)]
        cur = self.lang_freq_index[letter_index(current)]
        diff = abs(start - cur)
        lower = start - diff - 1 if diff < start else None
        higher = start + diff if start + diff < R else None
        if cur < start:
            idx = higher if higher is not None else lower
        elif lower is not None:
            idx = lower
        elif higher is not None and higher + 1 < R:
            idx = higher + 1
        else:
            idx = None
        return None if idx is None else self.lang_freq_order[idx]

    def attach_next(self, observed: str) -> bool:
        """Move observed to its next free guess. False when the guesses run out."""
        idx = letter_index(observed)
        current = self.table[idx]
        if current is None:
            first = self.lang_freq_order[self.input_freq_index[idx]]
            if self.attach(observed, first):
                return True
            anchor = current = first
        else:
            anchor = self.started_from[idx]
        while True:
            current = self.next_in_freq_order(anchor, current)
            if current is None:
                return False
            if self.attach(observed, current):
                return True

    def clear(self, observed: str):
        idx = letter_index(observed)
        current = self.table[idx]
        if current is not None:
            self.used.remove(letter_index(current))
        self.table[idx] = None
        self._trans.pop(ord(observed), None)

    def translate(self, text: str) -> str:
        """Apply the current mapping. Unset letters and other characters pass through."""
        return text.translate(self._trans)

    def mapping(self) -> Dict[str, str]:
        return {ch: g for ch, g in zip(ALPHABET, self.table) if g is not None}

def pretty_key(mapping: Dict[str, str], src: str = "CIPHER", dst: str = "PLAIN") -> str:
    """Two aligned rows: every letter and what it maps to ('.' when unresolved)."""
    width = max(len(src), len(dst))
    header = f"{src:<{width}}: " + " ".join(ALPHABET)
    target = f"{dst:<{width}}: " + " ".join(mapping.get(ch, ".") for ch in ALPHABET)
    return header + "\n" + target

# ---------- Solver ----------
@dataclass
class SolverConfig:
    skip_divisor: int = SKIP_DIVISOR
    skip_budget: Optional[int] = None
    tolerance: int = TOLERANCE
    strict_max: int = STRICT_MAX
    exact: bool = False
    group_size: int = 1
    dense_first: bool = False
    policy: str = DEFAULT_POLICY

    def __post_init__(self):
        if not 1 <= self.group_size <= MAX_GROUP:
            raise ValueError(f"group size must be between 1 and {MAX_GROUP}")
        if self.skip_divisor < 0 or self.tolerance < 0 or self.strict_max < 0:
            raise ValueError("skip divisor, tolerance and strict max must not be negative")
        if self.skip_budget is not None and self.skip_budget < 0:
            raise ValueError("skip budget must not be negative")
        if self.policy not in POLICIES:
            raise ValueError(f"unknown normalization policy {self.policy!r}")

    def budget_for(self, word_count: int) -> int:
        if self.skip_budget is not None:
            return self.skip_budget
        if not self.skip_divisor:
            return 0
        return word_count // self.skip_divisor

    def threshold(self, max_score: int) -> int:
        """Lowest dictionary score accepted for a group whose best score is max_score."""
        if self.exact or max_score <= self.strict_max:
            return max_score
        return max_score - self.tolerance

@dataclass
class SolveStats:
    ops: int = 0
    accepted: int = 0
    backtracks: int = 0
    skips: int = 0

@dataclass
class Decryption:
    text: str
    key: Dict[str, str]
    skipped: List[str] = field(default_factory=list)
    stats: SolveStats = field(default_factory=SolveStats)

def order_words(words: Sequence[str], dense_first: bool = False) -> List[str]:
    """Word visiting order; dense_first puts words with more distinct letters first."""
    if not dense_first:
        return list(words)
    return sorted(words, key=lambda w: -len(set(w)))

Trace = Callable[[str], None]

class Solver:
    """
    Resolves words left to right. Each step guesses the letters its words
    introduce, recurses on acceptance and undoes its own guesses on failure.
    """

    def __init__(self, words: Sequence[str], key: Key, dictionary: PrefixDictionary,
                 config: Optional[SolverConfig] = None, trace: Optional[Trace] = None):
        self.config = config or SolverConfig()
        self.words = order_words(words, self.config.dense_first)
        self.key = key
        self.dictionary = dictionary
        self.trace = trace
        self.fixed = BitSet(R)
        self.skipped: List[str] = []
        self.budget = self.config.budget_for(len(self.words))
        self.stats = SolveStats()

    def _log(self, msg: str):
        if self.trace is not None:
            self.trace(msg)

    def solve(self) -> bool:
        return self._step(0)

    def _accepts(self, candidate: List[str]) -> bool:
        score = sum(self.dictionary.prefix_score(w) for w in candidate)
        best = sum(len(w) + 1 for w in candidate)
        return score >= self.config.threshold(best)

    def _advance(self, free: List[str]) -> bool:
        """Odometer step over the free letters' guesses."""
        for ch in free:
            if self.key.attach_next(ch):
                return True
            self.key.clear(ch)
        return False

    def _step(self, pos: int) -> bool:
        if pos >= len(self.words):
            return True
        nxt = min(pos + self.config.group_size, len(self.words))
        pending = [w for w in self.words[pos:nxt] if w not in self.skipped]
        return self._resolve(pending, pos, nxt)

    def _resolve(self, pending: List[str], pos: int, nxt: int) -> bool:
        if not pending:
            return self._step(nxt)

        free = [ch for ch in unique_letters("".join(pending))
                if letter_index(ch) not in self.fixed]
        for ch in free:
            self.fixed.insert(letter_index(ch))

        while True:
            self.stats.ops += 1
            candidate = [self.key.translate(w) for w in pending]
            if self._accepts(candidate):
                self.stats.accepted += 1
                self._log(f"accept {' '.join(pending)} -> {' '.join(candidate)} (depth {pos})")
                if self._step(nxt):
                    return True
                self.stats.backtracks += 1
            if not self._advance(free):
                break

        for ch in free:
            self.fixed.remove(letter_index(ch))
        return self._skip(pending, pos, nxt)

    def _skip(self, pending: List[str], pos: int, nxt: int) -> bool:
        """Leave one word of the group unresolved at a time and retry the rest."""
        if self.budget < 1:
            return False
        tried: List[str] = []
        for word in pending:
            if word in tried:
                continue
            tried.append(word)
            self.budget -= 1
            self.skipped.append(word)
            self.stats.skips += 1
            self._log(f"skip {word} (budget left {self.budget})")
            if self._resolve([w for w in pending if w != word], pos, nxt):
                return True
            self.skipped.pop()
            self.budget += 1
        return False

# ---------- Dictionary loading ----------
def load_dictionary(lines: Iterable[str], policy: str = DEFAULT_POLICY) -> PrefixDictionary:
    try:
        return PrefixDictionary.from_lines(lines, policy)
    except (OSError, UnicodeDecodeError) as e:
        raise DictionaryLoadError(f"Cannot read dictionary: {e}") from e

def read_dictionary(path: str, policy: str = DEFAULT_POLICY) -> PrefixDictionary:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return load_dictionary(f, policy)
    except OSError as e:
        raise DictionaryLoadError(f"Cannot open {path} for dictionary: {e}") from e

# ---------- Public API ----------
def encrypt(text: str, rng: Optional[random.Random] = None, policy: str = DEFAULT_POLICY) -> str:
    """Normalize text and substitute it with a random permutation of the alphabet."""
    return encrypt_with_key(text, rng, policy)[0]

def encrypt_with_key(text: str, rng: Optional[random.Random] = None, policy: str = DEFAULT_POLICY):
    key = Key.random(rng)
    return key.translate(normalize(text, policy)), key.mapping()

def solve(text: str, dictionary_lines: Union[PrefixDictionary, Iterable[str]],
          config: Optional[SolverConfig] = None, trace: Optional[Trace] = None) -> Decryption:
    """Break text and return the decryption with its key and search statistics."""
    config = config or SolverConfig()
    if isinstance(dictionary_lines, PrefixDictionary):
        dictionary = dictionary_lines
    else:
        dictionary = load_dictionary(dictionary_lines, config.policy)

    text = normalize(text, config.policy)
    words = text.split()
    key = Key(text)
    solver = Solver(words, key, dictionary, config, trace)
    if not words:
        return Decryption(text, {}, [], solver.stats)

    # two frames per step, two more per skipped word
    needed = 4 * len(solver.words) + 100
    if sys.getrecursionlimit() < needed:
        sys.setrecursionlimit(needed)

    if not solver.solve():
        raise SearchExhausted(f"No decryption found after {solver.stats.ops} guesses")
    return Decryption(key.translate(text), key.mapping(), list(solver.skipped), solver.stats)

def decrypt(text: str, dictionary_lines: Union[PrefixDictionary, Iterable[str]],
            config: Optional[SolverConfig] = None, trace: Optional[Trace] = None) -> str:
    """
    Deciphers text using English letter frequencies and a dictionary.
    Raises SearchExhausted when no assignment is accepted and
    DictionaryLoadError when the dictionary cannot be read.
    """
    return solve(text, dictionary_lines, config, trace).text

# ---------- Helpers ----------
def is_file(p: str) -> bool:
    try:
        return os.path.isfile(p)
    except Exception:
        return False

def read_value_or_file(v: str) -> str:
    if is_file(v):
        with open(v, "r", encoding="utf-8") as f:
            return f.read()
    return v

def read_input(args) -> str:
    if args.text is not None:
        return read_value_or_file(args.text)
    if args.input is not None:
        with open(args.input, "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()

def write_output(path: Optional[str], text: str):
    if not text.endswith("\n"):
        text += "\n"
    if path is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)

def stats_report_plain(name: str, st: SolveStats):
    eprint(f"[{name}] ops={st.ops} accepted={st.accepted} backtracks={st.backtracks} skips={st.skips}")

# ---------- Main ----------
def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="subxploit",
        description="subxploit: break monoalphabetic substitution ciphers with a dictionary",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    def add_io(p):
        p.add_argument("-t", "--text", help="Input text (raw string or path to file)")
        p.add_argument("-i", "--input", help="Read input from file (default: stdin)")
        p.add_argument("-o", "--output", help="Write result to file (default: stdout)")
        p.add_argument("--policy", choices=POLICIES, default=DEFAULT_POLICY,
                       help="Non-letters: drop them, or map each to a space")
        p.add_argument("--show-key", action="store_true", help="Print the key table to stderr")

    enc = sub.add_parser("encrypt", help="Encrypt with a random substitution key")
    add_io(enc)
    enc.add_argument("--seed", type=int, default=None, help="Random seed for the key")

    dec = sub.add_parser("decrypt", help="Recover plaintext using a dictionary")
    add_io(dec)
    dec.add_argument("-w", "--wordlist", required=True, help="Dictionary file, words separated by whitespace")
    dec.add_argument("--skip-divisor", type=int, default=SKIP_DIVISOR,
                     help="One unknown word may be skipped per this many words (0 disables)")
    dec.add_argument("--skip-budget", type=int, default=None, help="Exact number of words that may be skipped")
    dec.add_argument("--tolerance", type=int, default=TOLERANCE, help="Score points a long group may miss")
    dec.add_argument("--strict-max", type=int, default=STRICT_MAX, help="Groups scoring up to this need an exact match")
    dec.add_argument("--exact", action="store_true", help="Accept only words stored in the dictionary")
    dec.add_argument("--group", type=int, default=1, choices=range(1, MAX_GROUP + 1),
                     help="Words resolved per step")
    dec.add_argument("--dense-first", action="store_true", help="Resolve words with most distinct letters first")
    dec.add_argument("--strict", action="store_true", help="On failure print nothing instead of the ciphertext")
    dec.add_argument("-d", "--debug", action="store_true", help="Trace the search on stderr")
    return ap

def run_encrypt(args) -> int:
    text = read_input(args)
    rng = random.Random(args.seed)
    out, mapping = encrypt_with_key(text, rng, args.policy)
    if args.show_key:
        eprint(cBLU(pretty_key(mapping, src="PLAIN", dst="CIPHER")))
    write_output(args.output, out)
    return 0

def run_decrypt(args) -> int:
    try:
        config = SolverConfig(
            skip_divisor=args.skip_divisor, skip_budget=args.skip_budget,
            tolerance=args.tolerance, strict_max=args.strict_max, exact=args.exact,
            group_size=args.group, dense_first=args.dense_first, policy=args.policy,
        )
    except ValueError as e:
        eprint(cYEL(str(e))); return 2

    dictionary = read_dictionary(args.wordlist, args.policy)
    text = read_input(args)
    trace = (lambda msg: eprint(cCYN(msg))) if args.debug else None
    if args.debug:
        eprint(cBLU(f"Dictionary: {len(dictionary)} words"))

    try:
        result = solve(text, dictionary, config, trace)
    except SearchExhausted as e:
        eprint(cYEL(f"{e}."))
        if not args.strict:
            eprint(cYEL("Showing the ciphertext instead."))
            write_output(args.output, normalize(text, args.policy))
        return 1

    if args.debug:
        stats_report_plain("decrypt", result.stats)
        eprint(cGRN(f"Solved with {len(result.key)} letters resolved."))
    if result.skipped:
        eprint(cYEL(f"Left unresolved: {' '.join(result.skipped)}"))
    if args.show_key:
        eprint(cBLU(pretty_key(result.key)))
    write_output(args.output, result.text)
    return 0

def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "encrypt":
            return run_encrypt(args)
        return run_decrypt(args)
    except DictionaryLoadError as e:
        eprint(cYEL(str(e))); return 2
    except UnicodeDecodeError as e:
        eprint(cYEL(f"Input is not valid UTF-8: {e}")); return 2
    except OSError as e:
        eprint(cYEL(f"Cannot access {e.filename or 'stream'}: {e.strerror or e}")); return 2
    except KeyboardInterrupt:
        print("\nInterrupted."); return 130

if __name__ == "__main__":
    sys.exit(main())
