"""Core AST parsing engine for PHP analysis.

This module provides a thin interface around tree-sitter for parsing PHP
source code into ASTs and walking them. The name resolver and the keyword
matcher are both built on top of it.

Usage::

    engine = ASTEngine()
    ast = engine.parse("<?php let(); function scope() {}")
    ast.walk(lambda node, depth: print("  " * depth + node.type))
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import tree_sitter as ts
import tree_sitter_php as ts_php

logger = logging.getLogger(__name__)

# Node types naming a callee in ``function_call_expression``
NAME_NODE_TYPES = frozenset({"name", "qualified_name", "relative_name"})


# ---------------------------------------------------------------------------
# ParsedAST wrapper
# ---------------------------------------------------------------------------


class ParsedAST:
    """Wrapper around a tree-sitter parse tree with convenience methods.

    Attributes:
        tree: The underlying ``tree_sitter.Tree``.
        source_code: Original source string that was parsed.
    """

    __slots__ = ("tree", "source_code", "_source_bytes")

    def __init__(self, tree: ts.Tree, source_code: str) -> None:
        self.tree = tree
        self.source_code = source_code
        self._source_bytes: bytes = source_code.encode("utf-8")

    @property
    def root_node(self) -> ts.Node:
        """Return the root node of the parse tree."""
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        """Return ``True`` if the tree contains any parse errors."""
        return self.tree.root_node.has_error

    def get_text(self, node: ts.Node) -> str:
        """Extract the source text spanned by *node*."""
        return self._source_bytes[node.start_byte:node.end_byte].decode(
            "utf-8", errors="replace"
        )

    def walk(self, visitor: Callable[[ts.Node, int], bool | None]) -> None:
        """Depth-first, pre-order walk of the AST using a visitor callback.

        The *visitor* is called with ``(node, depth)`` for every node.
        If the visitor returns ``False`` explicitly, the subtree rooted
        at that node is skipped.

        The walk keeps its own stack: long concatenation chains produce
        trees far deeper than Python's recursion limit.
        """
        stack: list[tuple[ts.Node, int]] = [(self.tree.root_node, 0)]
        while stack:
            node, depth = stack.pop()
            if visitor(node, depth) is False:
                continue
            children = node.children
            for child in reversed(children):
                stack.append((child, depth + 1))


# ---------------------------------------------------------------------------
# ASTEngine
# ---------------------------------------------------------------------------


class ASTEngine:
    """Core AST parsing engine for PHP.

    Initialises the tree-sitter ``Language`` and its parser lazily on first
    use and caches them for the lifetime of the engine instance. One engine
    is meant to be reused for many files; trees are owned by the returned
    ``ParsedAST`` and released with it.
    """

    def __init__(self) -> None:
        self._language: ts.Language | None = None
        self._parser: ts.Parser | None = None

    def _get_parser(self) -> ts.Parser:
        """Return (and cache) a ``Parser`` for PHP with inline HTML."""
        if self._parser is None:
            self._language = ts.Language(ts_php.language_php())
            self._parser = ts.Parser(language=self._language)
        return self._parser

    def parse(self, source_code: str) -> ParsedAST:
        """Parse *source_code* into a ``ParsedAST``.

        Syntax errors do not raise: tree-sitter recovers and marks the
        affected region with ``ERROR`` nodes (see ``ParsedAST.has_errors``).
        """
        tree = self._get_parser().parse(source_code.encode("utf-8"))
        return ParsedAST(tree=tree, source_code=source_code)


def last_segment(name: str) -> str:
    """Return the part of a namespaced name after the last backslash."""
    return name.rsplit("\\", 1)[-1]
