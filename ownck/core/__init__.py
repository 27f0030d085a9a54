"""
ownck.core: shared span/diagnostic types used by every verifier stage.

Modules:
  - span: best-effort source location attached to IR statements
  - diagnostics: Diagnostic record and the violation taxonomy
"""

__all__ = [
	"diagnostics",
	"span",
]
