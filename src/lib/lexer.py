"""
Pygments lexers for template sources

Delimiters are configurable, so a lexer class is generated per delimiter set
and cached. Used by the ast print mode to show highlighted template source.

Token types:
- Comment: Comment tags ({# ... #})
- Name.Tag: Delimiters of statement and expression tags
- Keyword: Statement keyword (block, endblock, extends, include, import, ...)
- Name.Variable: Expression contents
- String: Quoted template names and other statement arguments
- Text: Literal text between tags
"""

import re
from functools import lru_cache
from typing import Type

from pygments.lexer import RegexLexer, bygroups
from pygments.token import Comment, Keyword, Name, Operator, String, Text, Whitespace

from ..models.config import SyntaxDefinition

_MARKER = r'[-+~]?'


@lru_cache(maxsize=None)
def lexerClass_forSyntax(syntax: SyntaxDefinition) -> Type[RegexLexer]:
    """
    Build a RegexLexer subclass for one delimiter set

    Args:
        syntax: Delimiter set (hashable, so classes are cached per set)

    Returns:
        RegexLexer subclass; instantiate it to highlight
    """
    bs, be = re.escape(syntax.block_start), re.escape(syntax.block_end)
    es, ee = re.escape(syntax.expr_start), re.escape(syntax.expr_end)
    cs, ce = re.escape(syntax.comment_start), re.escape(syntax.comment_end)
    openers = '|'.join((bs, es, cs))

    tokens = {
        'root': [
            (rf'{cs}.*?{ce}', Comment),
            (rf'({bs}{_MARKER})(\s*)(\w+)', bygroups(Name.Tag, Whitespace, Keyword), 'statement'),
            (rf'{es}{_MARKER}', Name.Tag, 'expression'),
            (rf'(?:(?!{openers}).)+', Text),
            (r'.', Text),
        ],
        'statement': [
            (rf'{_MARKER}{be}', Name.Tag, '#pop'),
            (r'"[^"]*"|\'[^\']*\'', String),
            (r'\bas\b', Keyword),
            (r'\s+', Whitespace),
            (r'[^\s"\']', Name.Variable),
        ],
        'expression': [
            (rf'{_MARKER}{ee}', Name.Tag, '#pop'),
            (r'"[^"]*"|\'[^\']*\'', String),
            (r'[-+*/%<>=!|.]', Operator),
            (r'\s+', Whitespace),
            (r'[^\s"\']', Name.Variable),
        ],
    }

    return type(
        'StencilLexer',
        (RegexLexer,),
        {
            'name': 'Stencil',
            'aliases': ['stencil'],
            'filenames': [],
            'flags': re.DOTALL,
            'tokens': tokens,
        },
    )


def lexer_forSyntax(syntax: SyntaxDefinition) -> RegexLexer:
    """
    Get a lexer instance for a delimiter set

    Example:
        >>> from pygments import highlight
        >>> from pygments.formatters import TerminalFormatter
        >>> lexer = lexer_forSyntax(SyntaxDefinition())
        >>> print(highlight("Hi {{ name }}", lexer, TerminalFormatter()))
    """
    return lexerClass_forSyntax(syntax)()
