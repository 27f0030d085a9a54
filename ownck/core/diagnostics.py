# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Common diagnostic structure for the ownership and borrow passes.

A diagnostic names the violated rule (`DiagnosticKind`), the binding and/or
borrow involved, and where it happened: the statement's program position plus
the best-effort `Span` the front end attached to it.

Diagnostics are immutable once emitted; the reporter orders and deduplicates
them but never rewrites them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .span import Span


class DiagnosticKind(Enum):
	"""Violation taxonomy. Values are the stable names used in JSON output."""

	USE_AFTER_MOVE = "UseAfterMove"
	DOUBLE_UNIQUE_BORROW = "DoubleUniqueBorrow"
	SHARED_AND_UNIQUE_BORROW_CONFLICT = "SharedAndUniqueBorrowConflict"
	BORROW_OF_MOVED_VALUE = "BorrowOfMovedValue"
	DANGLING_REFERENCE = "DanglingReference"
	ASSIGN_WHILE_BORROWED = "AssignWhileBorrowed"
	UNRESOLVED_NAME = "UnresolvedName"
	MALFORMED_SCOPE = "MalformedScope"

	@property
	def code(self) -> str:
		return _CODES[self]

	@property
	def fatal(self) -> bool:
		return self is DiagnosticKind.MALFORMED_SCOPE


_CODES = {
	DiagnosticKind.USE_AFTER_MOVE: "E-OWN-USE-AFTER-MOVE",
	DiagnosticKind.DOUBLE_UNIQUE_BORROW: "E-BRW-DOUBLE-UNIQUE",
	DiagnosticKind.SHARED_AND_UNIQUE_BORROW_CONFLICT: "E-BRW-SHARED-UNIQUE",
	DiagnosticKind.BORROW_OF_MOVED_VALUE: "E-BRW-MOVED-VALUE",
	DiagnosticKind.DANGLING_REFERENCE: "E-BRW-DANGLING",
	DiagnosticKind.ASSIGN_WHILE_BORROWED: "E-BRW-ASSIGN-BORROWED",
	DiagnosticKind.UNRESOLVED_NAME: "E-IR-UNRESOLVED-NAME",
	DiagnosticKind.MALFORMED_SCOPE: "E-IR-MALFORMED-SCOPE",
}


class Component(Enum):
	"""Which pass emitted a diagnostic. Order doubles as the tie-break rank."""

	STRUCTURE = 0
	OWNERSHIP = 1
	BORROW = 2

	@property
	def phase(self) -> str:
		return self.name.lower()


@dataclass(frozen=True)
class Diagnostic:
	"""Represents one verifier diagnostic (error or note)."""

	kind: DiagnosticKind
	message: str
	position: int
	component: Component
	binding: Optional[str] = None
	borrow: Optional[str] = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Source location (Span() denotes unknown).
	notes: Tuple[str, ...] = ()

	@property
	def code(self) -> str:
		return self.kind.code

	@property
	def phase(self) -> str:
		return self.component.phase

	def dedup_key(self) -> Tuple[DiagnosticKind, Optional[str], int]:
		"""Identity used to drop exact repeats: (kind, binding, location)."""
		return (self.kind, self.binding, self.position)

	def sort_key(self) -> Tuple[int, int]:
		return (self.position, self.component.value)

	def render(self) -> str:
		"""`code: message` as printed by the driver."""
		return f"{self.code}: {self.message}"


__all__ = ["Component", "Diagnostic", "DiagnosticKind"]
