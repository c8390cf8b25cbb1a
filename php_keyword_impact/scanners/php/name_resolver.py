"""PHP namespace name resolution over a tree-sitter parse tree.

Maps the positions of name nodes to the fully-qualified names they refer to,
following PHP's rules for namespace declarations, ``use`` imports (class,
``use function`` and group forms) and aliases. Only positions the resolver
can vouch for are recorded; the keyword matcher treats a missing entry as
"unresolved".

Limitations:
    * Unqualified function calls are resolved against the current namespace
      only. PHP's runtime fallback to the global function of the same name
      is not modelled.
    * ``use const`` imports are tracked but constants are never looked up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import tree_sitter as ts

from .ast_engine import NAME_NODE_TYPES, ParsedAST

logger = logging.getLogger(__name__)

_USE_KIND_CLASS = "class"
_USE_KIND_FUNCTION = "function"
_USE_KIND_CONST = "const"


class ResolvedNames:
    """Fully-qualified names keyed by the start byte of the resolved node."""

    __slots__ = ("_names",)

    def __init__(self) -> None:
        self._names: dict[int, str] = {}

    def add(self, node: ts.Node, fqn: str) -> None:
        self._names[node.start_byte] = fqn

    def get(self, node: ts.Node) -> str | None:
        return self._names.get(node.start_byte)

    def __contains__(self, node: ts.Node) -> bool:
        return node.start_byte in self._names

    def __len__(self) -> int:
        return len(self._names)


@dataclass
class _Scope:
    """Imports in effect inside one namespace block."""

    namespace: str = ""
    classes: dict[str, str] = field(default_factory=dict)
    functions: dict[str, str] = field(default_factory=dict)
    constants: dict[str, str] = field(default_factory=dict)

    def imports_for(self, kind: str) -> dict[str, str]:
        if kind == _USE_KIND_FUNCTION:
            return self.functions
        if kind == _USE_KIND_CONST:
            return self.constants
        return self.classes

    def qualify(self, name: str) -> str:
        return f"{self.namespace}\\{name}" if self.namespace else name


class NameResolver:
    """Default name resolver for PHP sources.

    Any object exposing ``resolve(ast) -> ResolvedNames`` can replace it in
    ``KeywordMatcher``.
    """

    def resolve(self, ast: ParsedAST) -> ResolvedNames:
        resolved = ResolvedNames()
        scope = _Scope()

        # Statements are visited in source order. A namespace with a body
        # gets its own scope for that body; ``namespace X;`` replaces the
        # scope for the statements that follow it.
        stack: list[tuple[ts.Node, _Scope]] = [(ast.root_node, scope)]
        while stack:
            node, scope = stack.pop()
            node_type = node.type

            if node_type == "namespace_definition":
                new_scope = _Scope(namespace=self._namespace_of(ast, node))
                body = node.child_by_field_name("body")
                if body is None:
                    # Later siblings were pushed under the old scope object;
                    # switch it in place so they see the new namespace.
                    scope.namespace = new_scope.namespace
                    scope.classes.clear()
                    scope.functions.clear()
                    scope.constants.clear()
                else:
                    stack.append((body, new_scope))
                continue

            if node_type == "namespace_use_declaration":
                self._register_use(ast, node, scope)
                continue

            if node_type == "function_definition":
                name_node = node.child_by_field_name("name")
                if name_node is not None:
                    resolved.add(name_node, scope.qualify(ast.get_text(name_node)))

            elif node_type == "function_call_expression":
                callee = node.child_by_field_name("function")
                if callee is not None and callee.type in NAME_NODE_TYPES:
                    fqn = self._resolve_function(ast.get_text(callee), scope)
                    resolved.add(callee, fqn)

            elif node_type in ("qualified_name", "relative_name"):
                if node not in resolved:
                    fqn = self._resolve_class(ast.get_text(node), scope)
                    if fqn is not None:
                        resolved.add(node, fqn)
                continue

            for child in reversed(node.children):
                stack.append((child, scope))

        return resolved

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    @staticmethod
    def _namespace_of(ast: ParsedAST, node: ts.Node) -> str:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return ""
        return ast.get_text(name_node).strip("\\")

    def _register_use(self, ast: ParsedAST, node: ts.Node, scope: _Scope) -> None:
        kind = self._use_kind(node)
        prefix = ""

        for child in node.named_children:
            if child.type == "namespace_name":
                # Group use: ``use Foo\Bar\{A, B as C};``
                prefix = ast.get_text(child).strip("\\")
            elif child.type in ("namespace_use_clause", "namespace_use_group_clause"):
                self._register_clause(ast, child, kind, "", scope)
            elif child.type == "namespace_use_group":
                for clause in child.named_children:
                    if clause.type in ("namespace_use_clause", "namespace_use_group_clause"):
                        self._register_clause(ast, clause, kind, prefix, scope)

    def _register_clause(
        self,
        ast: ParsedAST,
        clause: ts.Node,
        kind: str,
        prefix: str,
        scope: _Scope,
    ) -> None:
        kind = self._use_kind(clause, default=kind)
        target: str | None = None
        alias: str | None = None

        alias_node = clause.child_by_field_name("alias")
        if alias_node is not None:
            alias = ast.get_text(alias_node)

        for child in clause.named_children:
            if alias_node is not None and child.start_byte == alias_node.start_byte:
                continue
            if child.type in ("name", "qualified_name", "namespace_name") and target is None:
                target = ast.get_text(child).strip("\\")
            elif child.type == "namespace_aliasing_clause":
                alias_name = next(
                    (c for c in child.named_children if c.type == "name"), None
                )
                if alias_name is not None:
                    alias = ast.get_text(alias_name)

        if not target:
            return

        fqn = f"{prefix}\\{target}" if prefix else target
        short = alias or fqn.rsplit("\\", 1)[-1]
        scope.imports_for(kind)[short.lower()] = fqn

    @staticmethod
    def _use_kind(node: ts.Node, default: str = _USE_KIND_CLASS) -> str:
        type_node = node.child_by_field_name("type")
        candidates = [type_node] if type_node is not None else node.children
        for child in candidates:
            if child.type == "namespace_function_or_const":
                candidates = child.children
                break
        for child in candidates:
            if child.type in (_USE_KIND_FUNCTION, _USE_KIND_CONST):
                return child.type
        return default

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_function(text: str, scope: _Scope) -> str:
        if text.startswith("\\"):
            return text[1:]
        if text.lower().startswith("namespace\\"):
            return scope.qualify(text[len("namespace\\"):])
        if "\\" not in text:
            imported = scope.functions.get(text.lower())
            return imported if imported is not None else scope.qualify(text)

        first, rest = text.split("\\", 1)
        imported = scope.classes.get(first.lower())
        if imported is not None:
            return f"{imported}\\{rest}"
        return scope.qualify(text)

    @staticmethod
    def _resolve_class(text: str, scope: _Scope) -> str | None:
        if text.startswith("\\"):
            return text[1:]
        if text.lower().startswith("namespace\\"):
            return scope.qualify(text[len("namespace\\"):])
        if "\\" not in text:
            return None

        first, rest = text.split("\\", 1)
        imported = scope.classes.get(first.lower())
        if imported is not None:
            return f"{imported}\\{rest}"
        return scope.qualify(text)
