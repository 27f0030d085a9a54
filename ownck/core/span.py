# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lightweight source span representation used by diagnostics.

The verifier never sees source text, so a Span is whatever location the
upstream normalizer attached to an IR statement: optional file/line/column
when the front end had one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (best-effort file/line/column)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None

	def is_known(self) -> bool:
		return self.line is not None

	def describe(self) -> str:
		"""`line:column` with `?` placeholders for unknown parts."""
		line = "?" if self.line is None else str(self.line)
		col = "?" if self.column is None else str(self.column)
		return f"{line}:{col}"


__all__ = ["Span"]
