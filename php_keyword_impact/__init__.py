"""Measure how often candidate PHP keywords are already used as identifiers.

The pipeline downloads popular Packagist packages, walks their PHP sources
with tree-sitter, and reports how many function calls, declarations, names
and labels would break if a word became reserved.
"""

__version__ = "0.1.0"
