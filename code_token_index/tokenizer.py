"""
Line tokenizer for code_token_index.

Splits source text into positioned tokens: whitespace runs, single
punctuation characters, and maximal runs of everything else ("words").
Every line ends with a synthetic "\\n" token, including the last one.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from code_token_index.models import Token

PUNCTUATION = ";:,.(){}[]<>+=-*/%&|^!~?"

_PUNCT_CLASS = "[" + re.escape(PUNCTUATION) + "]"
_WORD_CLASS = r"[^\s" + re.escape(PUNCTUATION) + "]+"

# Alternatives cover every character, so matches tile the line exactly
TOKEN_PATTERN = re.compile(rf"\s+|{_PUNCT_CLASS}|{_WORD_CLASS}")


def split_line(line: str) -> list[str]:
    """Split one line into token values."""
    return [match.group(0) for match in TOKEN_PATTERN.finditer(line)]


def tokenize_line(line: str, line_number: int, file_path: str = "") -> list[Token]:
    """
    Tokenize one line, terminated by a synthetic newline token.

    Args:
        line: Line text without its newline.
        line_number: 1-based line number.
        file_path: Path recorded on each token.

    Returns:
        Tokens in left-to-right order; the last one is always "\\n".
    """
    context = line.strip()
    tokens = []
    column = 0

    for value in split_line(line):
        tokens.append(Token(
            value=value,
            file=file_path,
            line_number=line_number,
            column_start=column,
            column_end=column + len(value),
            context=context,
        ))
        column += len(value)

    tokens.append(Token(
        value="\n",
        file=file_path,
        line_number=line_number,
        column_start=column,
        column_end=column + 1,
        context=context,
    ))
    return tokens


def tokenize_lines(lines: Sequence[str], file_path: str = "") -> list[Token]:
    """Tokenize pre-split lines."""
    tokens: list[Token] = []
    for index, line in enumerate(lines):
        tokens.extend(tokenize_line(line, index + 1, file_path))
    return tokens


def tokenize(text: str, file_path: str = "") -> list[Token]:
    """
    Tokenize a whole file's text.

    Args:
        text: File contents.
        file_path: Path recorded on each token.

    Returns:
        Tokens ordered line by line, left to right.
    """
    return tokenize_lines(text.split("\n"), file_path)


def reconstruct(tokens: Iterable[Token]) -> str:
    """
    Rebuild the original text from a token stream.

    Joining all values gives the text plus the final line's terminator,
    which is dropped here.
    """
    text = "".join(token.value for token in tokens)
    return text[:-1] if text.endswith("\n") else text
