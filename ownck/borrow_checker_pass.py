# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Borrow-check pass: active borrows per binding and their conflicts.

Scope:
- Driven by the same depth-first walk as the ownership tracker, one resolved
  statement at a time, after the tracker has applied that statement.
- Shared borrows coexist; a unique borrow excludes every other active borrow
  of the same target. Borrowing a moved/dropped binding is rejected.
- Borrow lifetimes are NLL-lite: a borrow is live from its creation to the
  last use of its reference variable, found by a lazy forward scan over
  program order. A reference that is never used keeps its borrow live until
  the end of the block that encloses the reference.
- A use of a borrow whose target moved after the borrow was created is a
  dangling reference, as is a borrow still needed after its target's scope
  has exited.

The checker never changes ownership state; it only reads it through the
tracker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from ownck import ir as I
from ownck.core.diagnostics import Component, Diagnostic, DiagnosticKind
from ownck.core.span import Span
from ownck.ownership import OwnershipState, OwnershipTracker
from ownck.scope_tree import Binding, ResolvedStmt, Scope, ScopeTree


@dataclass(frozen=True)
class Borrow:
	"""
	A loan of `target` held by the reference variable `ref`.

	`scope_id` is the scope enclosing the reference variable: the borrow cannot
	be needed outside it. `origin` is the program position of its creation.
	"""

	borrow_id: int
	ref: Binding
	target: Binding
	kind: I.BorrowKind
	origin: int
	scope_id: int
	origin_span: Span = field(default_factory=Span)


@dataclass(frozen=True)
class _Extent:
	"""Forward-scan result: last use of the reference and where scanning stopped."""

	last_use: Optional[int]
	stop: int


@dataclass
class BorrowChecker:
	"""
	Per-unit borrow state.

	Inputs:
	- tree: the scope tree (its flat `program` drives last-use scans).
	- ownership: the tracker whose binding states this checker consults.
	- emit: diagnostic sink (the verifier wires it to the reporter).
	"""

	tree: ScopeTree
	ownership: OwnershipTracker
	emit: Callable[[Diagnostic], None]
	allow_assign_while_borrowed: bool = False
	borrows: List[Borrow] = field(default_factory=list)
	# Reference binding id -> borrow it currently holds (None when rejected).
	held: Dict[int, Optional[Borrow]] = field(default_factory=dict)
	escaped: Set[int] = field(default_factory=set)
	_extents: Dict[int, _Extent] = field(init=False, default_factory=dict, repr=False)

	def _diagnostic(
		self,
		kind: DiagnosticKind,
		message: str,
		position: int,
		span: Span,
		*,
		binding: Optional[str] = None,
		borrow: Optional[str] = None,
		notes: Tuple[str, ...] = (),
	) -> None:
		self.emit(
			Diagnostic(
				kind=kind,
				message=message,
				position=position,
				component=Component.BORROW,
				binding=binding,
				borrow=borrow,
				span=span,
				notes=notes,
			)
		)

	def _loan_notes(self, loan: Borrow) -> Tuple[str, ...]:
		"""Notes explaining why a conflicting borrow is still live."""
		notes = [f"borrow '{loan.ref.name}' created at statement {loan.origin}"]
		ext = self.extent(loan)
		if ext.last_use is not None:
			notes.append(f"borrow '{loan.ref.name}' is used later at statement {ext.last_use}")
		return tuple(notes)

	def extent(self, loan: Borrow) -> _Extent:
		"""
		Scan forward from the borrow's origin for uses of its reference.

		Scanning stops at the end of the reference's scope, or where the same
		reference slot is rebound by another borrow. Cached per borrow.
		"""
		cached = self._extents.get(loan.borrow_id)
		if cached is not None:
			return cached
		ref_id = loan.ref.binding_id
		limit = self.tree.scope(loan.scope_id).end_pos
		last_use: Optional[int] = None
		stop = limit
		for rs in self.tree.program[loan.origin + 1 : limit]:
			if rs.binding is None or rs.binding.binding_id != ref_id:
				continue
			if isinstance(rs.stmt, I.BorrowCreate):
				stop = rs.position - 1
				break
			if isinstance(rs.stmt, I.BorrowUse) and not rs.unresolved:
				last_use = rs.position
		ext = _Extent(last_use=last_use, stop=stop)
		self._extents[loan.borrow_id] = ext
		return ext

	def live_until(self, loan: Borrow) -> int:
		"""Last program position at which `loan` is live."""
		ext = self.extent(loan)
		return ext.last_use if ext.last_use is not None else ext.stop

	def is_active(self, loan: Borrow, position: int) -> bool:
		if loan.borrow_id in self.escaped:
			return False
		if not (loan.origin < position <= self.live_until(loan)):
			return False
		return not self.ownership.moved_since(loan.target, loan.origin)

	def active_borrows(self, target: Binding, position: int) -> List[Borrow]:
		"""Borrows of `target` live at `position`, in creation order."""
		return [
			b
			for b in self.borrows
			if b.target.binding_id == target.binding_id and self.is_active(b, position)
		]

	def _create(self, rs: ResolvedStmt) -> None:
		stmt = rs.stmt
		assert isinstance(stmt, I.BorrowCreate)
		ref = rs.binding
		target = rs.source
		if ref is None:
			return
		# Rejected borrows still bind the reference name but hold no loan.
		self.held[ref.binding_id] = None
		if target is None:
			return
		pos = rs.position
		span = rs.loc
		state = self.ownership.state_of(target)
		if state is not OwnershipState.OWNED:
			what = "uninitialized" if state is OwnershipState.UNINITIALIZED else state.name.lower()
			notes: Tuple[str, ...] = ()
			moved = self.ownership.moved_at.get(target.binding_id)
			if state is OwnershipState.MOVED and moved is not None:
				notes = (f"value moved at statement {moved}",)
			self._diagnostic(
				DiagnosticKind.BORROW_OF_MOVED_VALUE,
				f"cannot borrow {what} value '{target.name}'",
				pos,
				span,
				binding=target.name,
				borrow=ref.name,
				notes=notes,
			)
			return
		for loan in self.active_borrows(target, pos):
			if stmt.kind is I.BorrowKind.SHARED and loan.kind is I.BorrowKind.UNIQUE:
				self._diagnostic(
					DiagnosticKind.SHARED_AND_UNIQUE_BORROW_CONFLICT,
					f"cannot take shared borrow while unique borrow active on '{target.name}'",
					pos,
					span,
					binding=target.name,
					borrow=ref.name,
					notes=self._loan_notes(loan),
				)
				return
			if stmt.kind is I.BorrowKind.UNIQUE:
				if loan.kind is I.BorrowKind.UNIQUE:
					kind = DiagnosticKind.DOUBLE_UNIQUE_BORROW
					msg = f"cannot take unique borrow while unique borrow active on '{target.name}'"
				else:
					kind = DiagnosticKind.SHARED_AND_UNIQUE_BORROW_CONFLICT
					msg = f"cannot take unique borrow while shared borrow active on '{target.name}'"
				self._diagnostic(kind, msg, pos, span, binding=target.name, borrow=ref.name, notes=self._loan_notes(loan))
				return
		loan = Borrow(
			borrow_id=len(self.borrows),
			ref=ref,
			target=target,
			kind=stmt.kind,
			origin=pos,
			scope_id=ref.scope_id,
			origin_span=span,
		)
		self.borrows.append(loan)
		self.held[ref.binding_id] = loan

	def _use(self, rs: ResolvedStmt) -> None:
		if rs.unresolved or rs.binding is None:
			return
		loan = self.held.get(rs.binding.binding_id)
		if loan is None or loan.borrow_id in self.escaped:
			return
		if self.ownership.moved_since(loan.target, loan.origin):
			moved = self.ownership.moved_at[loan.target.binding_id]
			self._diagnostic(
				DiagnosticKind.DANGLING_REFERENCE,
				f"reference '{loan.ref.name}' used after '{loan.target.name}' was moved",
				rs.position,
				rs.loc,
				binding=loan.target.name,
				borrow=loan.ref.name,
				notes=(
					f"borrow '{loan.ref.name}' created at statement {loan.origin}",
					f"value moved at statement {moved}",
				),
			)

	def _assign(self, rs: ResolvedStmt) -> None:
		if self.allow_assign_while_borrowed or rs.binding is None:
			return
		for loan in self.active_borrows(rs.binding, rs.position):
			self._diagnostic(
				DiagnosticKind.ASSIGN_WHILE_BORROWED,
				f"cannot assign to '{rs.binding.name}' while it is borrowed",
				rs.position,
				rs.loc,
				binding=rs.binding.name,
				borrow=loan.ref.name,
				notes=self._loan_notes(loan),
			)
			return

	def handle(self, rs: ResolvedStmt) -> None:
		"""Check one resolved statement against the active borrow set."""
		if isinstance(rs.stmt, I.BorrowCreate):
			self._create(rs)
		elif isinstance(rs.stmt, I.BorrowUse):
			self._use(rs)
		elif isinstance(rs.stmt, I.Assign):
			self._assign(rs)

	def exit_scope(self, scope: Scope) -> None:
		"""
		Reject borrows that would outlive a binding local to `scope`.

		Must run before the tracker drops the scope's bindings. Borrows whose
		target already moved are left to the use-site check.
		"""
		for loan in self.borrows:
			if loan.target.scope_id != scope.scope_id or loan.borrow_id in self.escaped:
				continue
			if self.ownership.moved_since(loan.target, loan.origin):
				continue
			ext = self.extent(loan)
			if ext.last_use is None or ext.last_use <= scope.end_pos:
				continue
			self.escaped.add(loan.borrow_id)
			self._diagnostic(
				DiagnosticKind.DANGLING_REFERENCE,
				f"'{loan.target.name}' does not live long enough: reference '{loan.ref.name}' is used after its block ends",
				scope.end_pos,
				scope.end_loc,
				binding=loan.target.name,
				borrow=loan.ref.name,
				notes=(
					f"borrow '{loan.ref.name}' created at statement {loan.origin}",
					f"reference used at statement {ext.last_use}",
				),
			)


__all__ = ["Borrow", "BorrowChecker"]
