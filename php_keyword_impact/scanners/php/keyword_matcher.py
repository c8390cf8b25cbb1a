"""Keyword and label matching over PHP syntax trees.

Each file is parsed once, its names are resolved once, and a single
depth-first walk classifies every occurrence of a requested term:

* call targets and first-class callable targets give a *soft* match,
* function declarations give a *soft* match on the declared name and a
  *hard* match on the resolved fully-qualified name,
* bare, resolved-qualified and fully-qualified identifiers give *hard*
  matches,
* goto labels and named arguments give label matches.

Categories are checked independently, so ``let()`` counts once as a soft
call target and once as a hard bare identifier.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import tree_sitter as ts

from ...models import Confidence, FileMatches, KeywordMatch, LabelMatch, Vendor
from .ast_engine import NAME_NODE_TYPES, ASTEngine, ParsedAST, last_segment
from .name_resolver import NameResolver, ResolvedNames

logger = logging.getLogger(__name__)

# Parents under which a ``name`` node is part of a larger name.
_COMPOSITE_NAME_PARENTS = frozenset(
    {
        "variable_name",
        "qualified_name",
        "relative_name",
        "namespace_name",
        "namespace_name_as_prefix",
    }
)


class Resolver(Protocol):
    def resolve(self, ast: ParsedAST) -> ResolvedNames: ...


def vendor_for_path(path: Path, sources_root: Path) -> Vendor:
    """Classify *path* by the ``<vendor>/<project>`` directories it lives in."""
    try:
        parts = Path(path).relative_to(sources_root).parts
    except ValueError:
        return Vendor.OTHER
    return Vendor.from_package("/".join(parts[:2]).lower())


class KeywordMatcher:
    """Finds requested keywords and labels in PHP sources.

    A matcher owns one ``ASTEngine`` whose parser is reused for every file
    it analyzes; trees are released as soon as their walk finishes. Create
    one matcher per worker process.

    Args:
        keywords: Identifier keywords to look for.
        labels: Label names to look for.
        resolver: Name resolver; defaults to ``NameResolver``.
    """

    def __init__(
        self,
        keywords: Iterable[str],
        labels: Iterable[str] = (),
        resolver: Resolver | None = None,
    ) -> None:
        self.keywords = frozenset(k.lower() for k in keywords)
        self.labels = tuple(dict.fromkeys(label.lower() for label in labels))
        self.engine = ASTEngine()
        self.resolver = resolver or NameResolver()

    def analyze_file(self, path: Path, sources_root: Path) -> FileMatches:
        """Analyze one file of the corpus.

        Unreadable files and parser failures yield an empty result.
        """
        vendor = vendor_for_path(path, sources_root)
        try:
            source = Path(path).read_bytes()
        except OSError as e:
            logger.debug(f"Skipping unreadable file {path}: {e}")
            return FileMatches()

        try:
            return self.analyze_source(source, vendor, path=str(path))
        except Exception:
            logger.debug(f"Error analyzing {path}", exc_info=True)
            return FileMatches()

    def analyze_source(
        self,
        source: bytes | str,
        vendor: Vendor = Vendor.OTHER,
        path: str | None = None,
    ) -> FileMatches:
        """Return every keyword and label match in *source*."""
        if isinstance(source, bytes):
            source = source.decode("utf-8", errors="replace")

        result = FileMatches()
        if not self.keywords and not self.labels:
            return result

        ast = self.engine.parse(source)
        if ast.has_errors:
            logger.debug(f"Syntax errors in {path or '<source>'}, matching recovered tree")
        resolved = self.resolver.resolve(ast)
        walk = _MatchWalk(self, ast, resolved, vendor, path, result)
        ast.walk(walk.visit)
        return result


class _MatchWalk:
    """State of one walk over one file."""

    def __init__(
        self,
        matcher: KeywordMatcher,
        ast: ParsedAST,
        resolved: ResolvedNames,
        vendor: Vendor,
        path: str | None,
        result: FileMatches,
    ) -> None:
        self.keywords = matcher.keywords
        self.labels = matcher.labels
        self.ast = ast
        self.resolved = resolved
        self.vendor = vendor
        self.path = path
        self.result = result
        # Start bytes of declaration names, already counted by their
        # function_definition.
        self.consumed: set[int] = set()

    def visit(self, node: ts.Node, _depth: int) -> None:
        node_type = node.type

        if node_type == "function_call_expression":
            self._check_call(node)
        elif node_type == "function_definition":
            self._check_declaration(node)
        elif node_type == "name":
            self._check_bare_name(node)
        elif node_type in ("qualified_name", "relative_name"):
            self._check_qualified_name(node)

        if self.labels:
            if node_type in ("named_label_statement", "goto_statement"):
                label_node = next(
                    (c for c in node.named_children if c.type == "name"), None
                )
                self._check_label(label_node)
            elif node_type == "argument":
                self._check_label(node.child_by_field_name("name"))

    # ------------------------------------------------------------------
    # Keyword categories
    # ------------------------------------------------------------------

    def _check_call(self, node: ts.Node) -> None:
        callee = node.child_by_field_name("function")
        if callee is None or callee.type not in NAME_NODE_TYPES:
            return
        name = self.resolved.get(callee) or self.ast.get_text(callee)
        self._match_keyword(last_segment(name), callee, Confidence.SOFT)

    def _check_declaration(self, node: ts.Node) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        self.consumed.add(name_node.start_byte)

        short_name = self.ast.get_text(name_node)
        self._match_keyword(short_name, name_node, Confidence.SOFT)

        fqn = self.resolved.get(name_node) or short_name
        self._match_keyword(last_segment(fqn), name_node, Confidence.HARD)

    def _check_bare_name(self, node: ts.Node) -> None:
        if node.start_byte in self.consumed:
            return
        parent = node.parent
        if parent is not None and parent.type in _COMPOSITE_NAME_PARENTS:
            return
        self._match_keyword(self.ast.get_text(node), node, Confidence.HARD)

    def _check_qualified_name(self, node: ts.Node) -> None:
        text = self.ast.get_text(node)
        if text.startswith("\\"):
            self._match_keyword(last_segment(text), node, Confidence.HARD)
            return

        fqn = self.resolved.get(node)
        if fqn is not None:
            self._match_keyword(last_segment(fqn), node, Confidence.HARD)

    def _match_keyword(self, text: str, node: ts.Node, confidence: Confidence) -> None:
        keyword = text.lower()
        if keyword in self.keywords:
            self.result.keyword_matches.append(
                KeywordMatch(
                    keyword=keyword,
                    vendor=self.vendor,
                    confidence=confidence,
                    path=self.path,
                    line=node.start_point.row + 1,
                )
            )

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def _check_label(self, node: ts.Node | None) -> None:
        if node is None:
            return
        text = self.ast.get_text(node).lower()
        for label in self.labels:
            if text == label:
                self.result.label_matches.append(
                    LabelMatch(
                        label=label,
                        vendor=self.vendor,
                        path=self.path,
                        line=node.start_point.row + 1,
                    )
                )
