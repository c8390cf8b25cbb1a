"""PHP static analysis scanners.

This package provides AST-based analysis of PHP source code using
tree-sitter. The ``ASTEngine`` parses sources, the ``NameResolver`` maps
names to their fully-qualified form, and the ``KeywordMatcher`` builds on
both to find keyword and label occurrences.

Quick start::

    from php_keyword_impact.scanners.php import KeywordMatcher

    matcher = KeywordMatcher(keywords=["let"], labels=["using"])
    result = matcher.analyze_source(b"<?php let();")
    for match in result.keyword_matches:
        print(match.keyword, match.confidence.value)
"""

from .ast_engine import ASTEngine, ParsedAST
from .keyword_matcher import KeywordMatcher, vendor_for_path
from .name_resolver import NameResolver, ResolvedNames

__all__ = [
    "ASTEngine",
    "KeywordMatcher",
    "NameResolver",
    "ParsedAST",
    "ResolvedNames",
    "vendor_for_path",
]
