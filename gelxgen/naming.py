"""Identifier casing and keyword escaping for generated Rust code."""

from __future__ import annotations

from collections.abc import Iterator

_KEYWORDS = frozenset(
    {
        # strict keywords
        "as", "async", "await", "break", "const", "continue", "crate", "dyn",
        "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
        "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
        "self", "Self", "static", "struct", "super", "trait", "true", "type",
        "unsafe", "use", "where", "while",
        # reserved keywords
        "abstract", "become", "box", "do", "final", "macro", "override",
        "priv", "try", "typeof", "unsized", "virtual", "yield",
    }
)

# Keywords that cannot be written as raw identifiers.
_NON_RAW_KEYWORDS = frozenset({"crate", "self", "Self", "super"})


def _split_word(word: str) -> Iterator[str]:
    """Split an alphanumeric run at case boundaries."""
    start = 0
    mode = "boundary"
    for index, char in enumerate(word):
        if index + 1 == len(word):
            yield word[start:]
            return
        following = word[index + 1]
        if char.islower():
            next_mode = "lower"
        elif char.isupper():
            next_mode = "upper"
        else:
            next_mode = mode
        if next_mode == "lower" and following.isupper():
            yield word[start : index + 1]
            start = index + 1
            mode = "boundary"
        elif mode == "upper" and char.isupper() and following.islower():
            yield word[start:index]
            start = index
            mode = "boundary"
        else:
            mode = next_mode


def _words(name: str) -> Iterator[str]:
    current: list[str] = []
    for char in name:
        if char.isalnum():
            current.append(char)
        elif current:
            yield from _split_word("".join(current))
            current = []
    if current:
        yield from _split_word("".join(current))


def to_snake_case(name: str) -> str:
    """Lower-case words joined by underscores."""
    return "_".join(word.lower() for word in _words(name) if word)


def to_pascal_case(name: str) -> str:
    """Capitalised words joined together."""
    return "".join(word[0].upper() + word[1:].lower() for word in _words(name) if word)


def is_keyword(name: str) -> bool:
    """Whether ``name`` is a Rust keyword."""
    return name in _KEYWORDS


def into_safe(name: str) -> str:
    """Make ``name`` usable as an identifier, escaping keywords."""
    if not is_keyword(name):
        return name
    if name in _NON_RAW_KEYWORDS:
        return f"{name}_"
    return f"r#{name}"