"""
VoidGuard — C# source parser using tree-sitter.
"""

from __future__ import annotations

import tree_sitter_c_sharp as tscsharp
from tree_sitter import Language, Parser

from voidguard.core.syntax import SyntaxTree


CSHARP_LANGUAGE = Language(tscsharp.language())


class CSharpParser:
    """Thin wrapper around tree-sitter for C# source code."""

    def __init__(self) -> None:
        self._parser = Parser(CSHARP_LANGUAGE)

    def parse(self, code: str, path: str = "<source>", strict: bool = False) -> SyntaxTree:
        """Parse C# source into a SyntaxTree.

        Trees containing error nodes are still returned so that the valid
        declarations in them can be analyzed. With ``strict=True`` a
        ValueError is raised instead.
        """
        source_bytes = code.encode("utf-8")
        tree = self._parser.parse(source_bytes)
        if strict and tree.root_node.has_error:
            raise ValueError(f"Failed to parse C# source code: {path}")
        return SyntaxTree(path=path, text=code, source=source_bytes, tree=tree)
