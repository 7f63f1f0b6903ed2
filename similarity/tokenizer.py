"""
Tokenizer for normalized source code.
"""
import re

STRUCTURAL_CHARS = "{}()[];,."

_SPLIT_PATTERN = re.compile(
    r"\s+|(?=[{}()\[\];,.])|(?<=[{}()\[\];,.])"
)


def tokenize(code: str) -> list[str]:
    """
    Split normalized code into tokens.

    Whitespace separates tokens, and each structural character
    ({ } ( ) [ ] ; , .) becomes a token of its own.

    Examples:
        >>> tokenize("int main() { return 0; }")
        ['int', 'main', '(', ')', '{', 'return', '0', ';', '}']
    """
    return [token for token in _SPLIT_PATTERN.split(code) if token]
