# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Ownership state tracking: one state machine per binding.

    UNINITIALIZED --Declare--> OWNED --MoveUse (move-kind)--> MOVED
                                 |                              |
                                 +--scope exit--> DROPPED       +--Assign--> OWNED

Copy-kind bindings never leave OWNED through a use. A use of a MOVED binding
is a `UseAfterMove`; the state stays MOVED so later uses are checked against
the same (erroneous) state, and every distinct use site is reported.

The tracker is driven statement by statement by the verifier's depth-first
walk; it does not traverse the tree itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Tuple

from ownck import ir as I
from ownck.core.diagnostics import Component, Diagnostic, DiagnosticKind
from ownck.core.span import Span
from ownck.scope_tree import Binding, ResolvedStmt, Scope


class OwnershipState(Enum):
	"""Validity state for a binding."""

	UNINITIALIZED = auto()
	OWNED = auto()
	MOVED = auto()
	DROPPED = auto()


@dataclass(frozen=True)
class Transition:
	"""One recorded state change (for inspection and tests)."""

	position: int
	binding: Binding
	old: OwnershipState
	new: OwnershipState


def _init_span(init: object, fallback: Span) -> Span:
	loc = getattr(init, "loc", None)
	if isinstance(loc, Span) and loc.is_known():
		return loc
	return fallback


@dataclass
class OwnershipTracker:
	"""
	Per-unit ownership state.

	`emit` receives every diagnostic; the verifier wires it to the reporter.
	`moved_at` keeps the position of the most recent move of each binding so
	the borrow checker can tell whether a target moved after a borrow.
	"""

	emit: Callable[[Diagnostic], None]
	states: Dict[int, OwnershipState] = field(default_factory=dict)
	moved_at: Dict[int, int] = field(default_factory=dict)
	transitions: List[Transition] = field(default_factory=list)

	def state_of(self, binding: Binding) -> OwnershipState:
		"""Lookup helper with UNINITIALIZED default for bindings not yet declared."""
		return self.states.get(binding.binding_id, OwnershipState.UNINITIALIZED)

	def moved_since(self, binding: Binding, position: int) -> bool:
		"""
		True when `binding` was moved after `position`.

		A later `Assign` makes the binding OWNED again but does not undo this:
		a borrow taken before the move never sees the new value.
		"""
		return self.moved_at.get(binding.binding_id, -1) > position

	def _set_state(self, binding: Binding, value: OwnershipState, position: int) -> None:
		old = self.state_of(binding)
		if old is value:
			return
		self.states[binding.binding_id] = value
		self.transitions.append(Transition(position=position, binding=binding, old=old, new=value))

	def _use_after_move(self, binding: Binding, position: int, span: Span) -> None:
		notes: Tuple[str, ...] = ()
		moved = self.moved_at.get(binding.binding_id)
		if moved is not None:
			notes = (f"value moved at statement {moved}",)
		self.emit(
			Diagnostic(
				kind=DiagnosticKind.USE_AFTER_MOVE,
				message=f"use after move of '{binding.name}'",
				position=position,
				component=Component.OWNERSHIP,
				binding=binding.name,
				span=span,
				notes=notes,
			)
		)

	def move_use(self, binding: Binding, position: int, span: Optional[Span] = None) -> None:
		"""Consume `binding` by value."""
		span = span or Span()
		if binding.value_kind is I.ValueKind.COPY:
			return
		curr = self.state_of(binding)
		if curr is OwnershipState.MOVED:
			self._use_after_move(binding, position, span)
			return
		self._set_state(binding, OwnershipState.MOVED, position)
		self.moved_at[binding.binding_id] = position

	def copy_use(self, binding: Binding, position: int, span: Optional[Span] = None) -> None:
		"""Read `binding` without consuming it."""
		if binding.value_kind is I.ValueKind.COPY:
			return
		if self.state_of(binding) is OwnershipState.MOVED:
			self._use_after_move(binding, position, span or Span())

	def _transfer_from(self, source: Binding, position: int, span: Span) -> None:
		"""Binding-to-binding transfer: a move-use for move-kind sources."""
		if source.value_kind is I.ValueKind.MOVE:
			self.move_use(source, position, span)
		else:
			self.copy_use(source, position, span)

	def handle(self, rs: ResolvedStmt) -> None:
		"""
		Apply the state effect of one resolved statement.

		Names that did not resolve are reported elsewhere; whatever did resolve
		still takes effect.
		"""
		stmt = rs.stmt
		span = rs.loc
		if isinstance(stmt, (I.Declare, I.Assign)):
			init = stmt.initializer if isinstance(stmt, I.Declare) else stmt.value
			if rs.source is not None:
				self._transfer_from(rs.source, rs.position, _init_span(init, span))
			if rs.binding is not None:
				# Declaration, or drop-then-reinit which is legal from OWNED and MOVED alike.
				self._set_state(rs.binding, OwnershipState.OWNED, rs.position)
		elif isinstance(stmt, I.MoveUse):
			if rs.binding is not None:
				self.move_use(rs.binding, rs.position, span)
		elif isinstance(stmt, I.CopyUse):
			if rs.binding is not None:
				self.copy_use(rs.binding, rs.position, span)
		elif isinstance(stmt, I.BorrowCreate):
			# The reference variable is initialized by its borrow.
			if rs.binding is not None:
				self._set_state(rs.binding, OwnershipState.OWNED, rs.position)
		# DeclareRef leaves the slot uninitialized; BorrowUse and block markers
		# have no ownership effect.

	def exit_scope(self, scope: Scope) -> None:
		"""Drop every binding declared directly in `scope` that still owns its value."""
		for b in scope.bindings:
			if self.state_of(b) is OwnershipState.OWNED:
				self._set_state(b, OwnershipState.DROPPED, scope.end_pos)


__all__ = ["OwnershipState", "OwnershipTracker", "Transition"]
