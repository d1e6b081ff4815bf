"""
Advanced note query language.

This package provides the pure-Python query stack:
- lexer: Tokens for fields, boolean keywords, parentheses, phrases and terms
- query_ast: Operator tree (closed union of frozen dataclasses)
- parser: Recursive-descent parser and syntax validation
- evaluator: Set-algebra evaluation against a corpus snapshot
- explainer: Matched fields, excerpts and highlight offsets
- suggestions: Completions for partially typed queries
"""
