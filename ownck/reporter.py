# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Diagnostic aggregation for one unit.

Both checkers push into the same reporter. The final sequence is ordered by
program position, ownership diagnostics before borrow diagnostics at the same
position, then emission order; exact repeats of (kind, binding, location)
are kept once.
"""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from ownck.core.diagnostics import Diagnostic


class DiagnosticReporter:
	"""Append-only diagnostic sink with stable ordering."""

	def __init__(self) -> None:
		self._items: List[Tuple[int, Diagnostic]] = []

	def add(self, diag: Diagnostic) -> None:
		self._items.append((len(self._items), diag))

	def extend(self, diags: Iterable[Diagnostic]) -> None:
		for d in diags:
			self.add(d)

	def __len__(self) -> int:
		return len(self._items)

	def diagnostics(self) -> List[Diagnostic]:
		"""Ordered, deduplicated diagnostics collected so far."""
		ordered = sorted(self._items, key=lambda item: (item[1].sort_key(), item[0]))
		seen: Set[tuple] = set()
		out: List[Diagnostic] = []
		for _, diag in ordered:
			key = diag.dedup_key()
			if key in seen:
				continue
			seen.add(key)
			out.append(diag)
		return out

	def has_errors(self) -> bool:
		return any(d.severity == "error" for _, d in self._items)


__all__ = ["DiagnosticReporter"]
