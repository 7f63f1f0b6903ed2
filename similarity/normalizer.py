"""
Source code normalization for similarity scoring.

This module strips comments and string literal contents from source code,
collapses whitespace and lowercases the result, so that formatting and
incidental text do not influence the similarity score.
"""
import re
from dataclasses import dataclass
from enum import Enum

STRING_PLACEHOLDER = '"STR"'
CHAR_PLACEHOLDER = "'STR'"

_DOUBLE_QUOTED = r'"(?:\\.|[^"\\])*"'
_SINGLE_QUOTED = r"'(?:\\.|[^'\\])*'"


@dataclass(frozen=True)
class CommentSyntax:
    """Comment delimiters of a language family."""
    line: tuple[str, ...]  # Markers that comment out the rest of the line
    block: tuple[tuple[str, str], ...]  # (opening, closing) delimiter pairs


class LanguageFamily(Enum):
    """Language families sharing the same comment syntax."""
    C_FAMILY = CommentSyntax(line=("//",), block=(("/*", "*/"),))
    PYTHON = CommentSyntax(line=("#",), block=(("'''", "'''"), ('"""', '"""')))

    @classmethod
    def for_language(cls, language: str | None) -> "LanguageFamily":
        """
        Resolve the family of a submission language tag.

        Args:
            language: Language tag as stored with the submission (e.g. "cpp")

        Returns:
            Matching LanguageFamily, C_FAMILY for unknown tags

        Examples:
            >>> LanguageFamily.for_language("Python") is LanguageFamily.PYTHON
            True
            >>> LanguageFamily.for_language("brainfuck") is LanguageFamily.C_FAMILY
            True
        """
        if not language:
            return cls.C_FAMILY
        return LANGUAGE_FAMILIES.get(language.strip().lower(), cls.C_FAMILY)


LANGUAGE_FAMILIES = {
    "c": LanguageFamily.C_FAMILY,
    "cpp": LanguageFamily.C_FAMILY,
    "c++": LanguageFamily.C_FAMILY,
    "java": LanguageFamily.C_FAMILY,
    "javascript": LanguageFamily.C_FAMILY,
    "typescript": LanguageFamily.C_FAMILY,
    "csharp": LanguageFamily.C_FAMILY,
    "go": LanguageFamily.C_FAMILY,
    "rust": LanguageFamily.C_FAMILY,
    "kotlin": LanguageFamily.C_FAMILY,
    "swift": LanguageFamily.C_FAMILY,
    "python": LanguageFamily.PYTHON,
    "python3": LanguageFamily.PYTHON,
}


def _build_scrub_pattern(syntax: CommentSyntax) -> re.Pattern:
    # Block comments go first so that ''' wins over a plain ' literal
    comments = [
        re.escape(opening) + r"[\s\S]*?" + re.escape(closing)
        for opening, closing in syntax.block
    ]
    comments += [re.escape(marker) + r"[^\n]*" for marker in syntax.line]
    return re.compile(
        f"(?P<comment>{'|'.join(comments)})"
        f"|(?P<double>{_DOUBLE_QUOTED})"
        f"|(?P<single>{_SINGLE_QUOTED})"
    )


_SCRUB_PATTERNS = {family: _build_scrub_pattern(family.value) for family in LanguageFamily}


def _scrub(match: re.Match) -> str:
    if match.group("comment") is not None:
        return ""
    if match.group("double") is not None:
        return STRING_PLACEHOLDER
    return CHAR_PLACEHOLDER


def strip_comments_and_strings(code: str, family: LanguageFamily) -> str:
    """
    Remove comments and replace string literal contents with placeholders.

    Comments and literals are matched in a single left-to-right scan, so a
    comment marker inside a string literal is left alone and vice versa.

    Args:
        code: Raw source code
        family: Language family whose comment syntax applies

    Returns:
        Code without comments, with "STR" / 'STR' placeholders for literals
    """
    return _SCRUB_PATTERNS[family].sub(_scrub, code)


def normalize_code(code: str, language: str | None) -> str:
    """
    Normalize source code for comparison.

    Args:
        code: Raw source code of a submission
        language: Submission language tag

    Returns:
        Single-line, lowercased code with comments removed, string literals
        replaced by placeholders and whitespace runs collapsed

    Examples:
        >>> normalize_code('int x = 1; // note\\nprintf("Hi");', "c")
        'int x = 1; printf("str");'
    """
    family = LanguageFamily.for_language(language)
    normalized = strip_comments_and_strings(code or "", family)
    normalized = re.sub(r"\s+", " ", normalized).strip()
    return normalized.lower()
