# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Unit verifier: scope tree → ownership tracker ∥ borrow checker → reporter.

One `Verifier` owns all mutable state for one unit, so independent units can
be verified concurrently without locking (see `ownck.batch`).

Traversal is a strict depth-first walk in statement order. Each statement is
handed to the ownership tracker first and the borrow checker second; at each
block end the borrow checker looks for references that would outlive the
block's bindings before the tracker drops them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from ownck import ir as I
from ownck.borrow_checker_pass import BorrowChecker
from ownck.core.diagnostics import Component, Diagnostic, DiagnosticKind
from ownck.ownership import OwnershipTracker
from ownck.reporter import DiagnosticReporter
from ownck.scope_tree import MalformedScopeError, ResolvedStmt, Scope, ScopeTree, ScopeTreeBuilder


@dataclass(frozen=True)
class VerifierOptions:
	"""
	Knobs shared by the verifier, the batch runner and the CLI.

	- allow_assign_while_borrowed: accept `Assign` to a binding that has an
	  active borrow instead of reporting `AssignWhileBorrowed`.
	- default_value_kind: kind for declarations with neither an annotation nor
	  an initializer to infer from.
	"""

	allow_assign_while_borrowed: bool = False
	default_value_kind: I.ValueKind = I.ValueKind.MOVE


class Verifier:
	"""
	Verify one unit.

	After `run()`, `tree`, `ownership` and `borrows` stay available for
	inspection (they are None when the unit was structurally malformed).
	"""

	def __init__(self, statements: Sequence[I.IRStmt], options: Optional[VerifierOptions] = None) -> None:
		self.statements = statements
		self.options = options or VerifierOptions()
		self.reporter = DiagnosticReporter()
		self.tree: Optional[ScopeTree] = None
		self.ownership: Optional[OwnershipTracker] = None
		self.borrows: Optional[BorrowChecker] = None

	def run(self) -> List[Diagnostic]:
		self.reporter = DiagnosticReporter()
		try:
			self.tree = ScopeTreeBuilder(default_value_kind=self.options.default_value_kind).build(self.statements)
		except MalformedScopeError as err:
			self.tree = None
			self.ownership = None
			self.borrows = None
			return [
				Diagnostic(
					kind=DiagnosticKind.MALFORMED_SCOPE,
					message=str(err),
					position=err.position,
					component=Component.STRUCTURE,
					span=err.loc,
				)
			]
		self.ownership = OwnershipTracker(emit=self.reporter.add)
		self.borrows = BorrowChecker(
			tree=self.tree,
			ownership=self.ownership,
			emit=self.reporter.add,
			allow_assign_while_borrowed=self.options.allow_assign_while_borrowed,
		)
		self._walk(self.tree.root)
		return self.reporter.diagnostics()

	def _walk(self, scope: Scope) -> None:
		for item in scope.items:
			if isinstance(item, Scope):
				self._walk(item)
			else:
				self._statement(item)
		assert self.borrows is not None and self.ownership is not None
		self.borrows.exit_scope(scope)
		self.ownership.exit_scope(scope)

	def _statement(self, rs: ResolvedStmt) -> None:
		assert self.borrows is not None and self.ownership is not None
		for name in rs.unresolved:
			self.reporter.add(
				Diagnostic(
					kind=DiagnosticKind.UNRESOLVED_NAME,
					message=_unresolved_message(rs, name),
					position=rs.position,
					component=Component.STRUCTURE,
					binding=name,
					span=rs.loc,
				)
			)
		self.ownership.handle(rs)
		self.borrows.handle(rs)


def _unresolved_message(rs: ResolvedStmt, name: str) -> str:
	if isinstance(rs.stmt, I.BorrowUse) and rs.binding is not None:
		return f"'{name}' is not a reference"
	return f"'{name}' is not declared in this scope"


def verify_unit(
	unit: Union[I.Unit, Sequence[I.IRStmt]], options: Optional[VerifierOptions] = None
) -> List[Diagnostic]:
	"""
	Verify a unit (or a bare statement list) and return its ordered diagnostics.

	An empty list means the unit is ownership-and-borrow sound.
	"""
	statements = unit.statements if isinstance(unit, I.Unit) else unit
	return Verifier(statements, options).run()


__all__ = ["Verifier", "VerifierOptions", "verify_unit"]
