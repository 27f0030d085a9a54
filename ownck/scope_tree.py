# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Scope tree construction and lexical name resolution.

The builder turns a flat (or nested) IR statement sequence into:
  * a tree of `Scope` nodes, one per block, whose ordered `items` interleave
    resolved statements and child scopes, and
  * `program`, the same statements as a flat list indexed by program
    position (block markers included), used by forward scans.

Names are resolved while building, so every later pass works with `Binding`
identities instead of strings. A binding is visible in its declaring scope
and that scope's descendants, from its declaration onward; a later
declaration of the same name shadows it.

Scope structure is a precondition: an unmatched `BlockEnd` (or a block left
open at the end of the unit) raises `MalformedScopeError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

from ownck import ir as I
from ownck.core.span import Span


class MalformedScopeError(ValueError):
	"""
	Unbalanced block markers.

	Carries the offending program position and span so the verifier can turn
	it into a structured `MalformedScope` diagnostic.
	"""

	def __init__(self, message: str, *, position: int, loc: Span | None = None) -> None:
		super().__init__(message)
		self.position = position
		self.loc = loc or Span()


@dataclass(frozen=True)
class Binding:
	"""
	A named storage location introduced by exactly one declaration.

	`is_ref` marks reference variables (introduced by `BorrowCreate` or
	`DeclareRef`); `is_slot` marks the `DeclareRef` form, which later
	`BorrowCreate` statements bind into instead of declaring a fresh ref.
	"""

	binding_id: int
	name: str
	scope_id: int
	value_kind: I.ValueKind
	decl_pos: int
	is_ref: bool = False
	is_slot: bool = False


@dataclass(frozen=True)
class ResolvedStmt:
	"""
	An IR statement at a program position with its names resolved.

	- `binding`: the binding declared, used or assigned (the reference
	  variable for borrow statements).
	- `source`: the `VarRef` source for declare/assign, or the borrow target.
	- `unresolved`: names that did not resolve; the statement has no state
	  effect when this is non-empty.
	"""

	position: int
	stmt: I.IRStmt
	scope_id: int
	binding: Optional[Binding] = None
	source: Optional[Binding] = None
	unresolved: Tuple[str, ...] = ()

	@property
	def loc(self) -> Span:
		return getattr(self.stmt, "loc", None) or Span()


@dataclass(eq=False)
class Scope:
	"""
	A block in the scope tree.

	`start_pos`/`end_pos` are the positions of the block's markers; the root
	scope spans (-1, len(program)).
	"""

	scope_id: int
	parent: Optional["Scope"]
	start_pos: int
	end_pos: int = -1
	items: List[Union[ResolvedStmt, "Scope"]] = field(default_factory=list)
	bindings: List[Binding] = field(default_factory=list)
	end_loc: Span = field(default_factory=Span)

	@property
	def depth(self) -> int:
		d = 0
		cur = self.parent
		while cur is not None:
			d += 1
			cur = cur.parent
		return d

	def is_within(self, other: "Scope") -> bool:
		"""True when this scope is `other` or nested inside it."""
		cur: Optional[Scope] = self
		while cur is not None:
			if cur is other:
				return True
			cur = cur.parent
		return False

	def children(self) -> List["Scope"]:
		return [it for it in self.items if isinstance(it, Scope)]


@dataclass
class ScopeTree:
	"""Result of `ScopeTreeBuilder.build`."""

	root: Scope
	program: List[ResolvedStmt]
	scopes: List[Scope]
	bindings: List[Binding]

	def scope(self, scope_id: int) -> Scope:
		return self.scopes[scope_id]

	def walk_scopes(self) -> Iterator[Scope]:
		"""Depth-first, entry-ordered iteration over every scope."""
		stack = [self.root]
		while stack:
			sc = stack.pop()
			yield sc
			stack.extend(reversed(sc.children()))


class ScopeTreeBuilder:
	"""
	Build a `ScopeTree` from IR statements.

	`default_value_kind` is used for declarations that neither annotate a
	kind nor have an initializer to infer it from.
	"""

	def __init__(self, *, default_value_kind: I.ValueKind = I.ValueKind.MOVE) -> None:
		self.default_value_kind = default_value_kind
		self._scopes: List[Scope] = []
		self._bindings: List[Binding] = []
		self._program: List[ResolvedStmt] = []
		# One name table per open scope; popped on block exit.
		self._env: List[Dict[str, Binding]] = []

	def build(self, statements: Sequence[I.IRStmt]) -> ScopeTree:
		self._scopes = []
		self._bindings = []
		self._program = []
		self._env = []

		flat = I.flatten(statements)
		root = self._new_scope(parent=None, start_pos=-1)
		self._env.append({})
		stack: List[Scope] = [root]

		for pos, stmt in enumerate(flat):
			current = stack[-1]
			if isinstance(stmt, I.BlockStart):
				self._program.append(ResolvedStmt(position=pos, stmt=stmt, scope_id=current.scope_id))
				child = self._new_scope(parent=current, start_pos=pos)
				current.items.append(child)
				stack.append(child)
				self._env.append({})
				continue
			if isinstance(stmt, I.BlockEnd):
				if len(stack) == 1:
					raise MalformedScopeError(
						f"unmatched block end at statement {pos}",
						position=pos,
						loc=stmt.loc,
					)
				current.end_pos = pos
				current.end_loc = stmt.loc
				stack.pop()
				self._env.pop()
				self._program.append(ResolvedStmt(position=pos, stmt=stmt, scope_id=stack[-1].scope_id))
				continue
			resolved = self._resolve(pos, stmt, current)
			self._program.append(resolved)
			current.items.append(resolved)

		if len(stack) > 1:
			open_scope = stack[-1]
			raise MalformedScopeError(
				f"block opened at statement {open_scope.start_pos} is never closed",
				position=open_scope.start_pos,
				loc=flat[open_scope.start_pos].loc,
			)
		root.end_pos = len(flat)
		return ScopeTree(root=root, program=self._program, scopes=self._scopes, bindings=self._bindings)

	def _new_scope(self, *, parent: Optional[Scope], start_pos: int) -> Scope:
		sc = Scope(scope_id=len(self._scopes), parent=parent, start_pos=start_pos)
		self._scopes.append(sc)
		return sc

	def _lookup(self, name: str) -> Optional[Binding]:
		for table in reversed(self._env):
			if name in table:
				return table[name]
		return None

	def _declare(
		self,
		scope: Scope,
		name: str,
		kind: I.ValueKind,
		pos: int,
		*,
		is_ref: bool = False,
		is_slot: bool = False,
	) -> Binding:
		b = Binding(
			binding_id=len(self._bindings),
			name=name,
			scope_id=scope.scope_id,
			value_kind=kind,
			decl_pos=pos,
			is_ref=is_ref,
			is_slot=is_slot,
		)
		self._bindings.append(b)
		scope.bindings.append(b)
		self._env[-1][name] = b
		return b

	def _resolve_init(self, init: Optional[I.Initializer]) -> Tuple[Optional[Binding], Tuple[str, ...]]:
		if isinstance(init, I.VarRef):
			src = self._lookup(init.name)
			if src is None:
				return None, (init.name,)
			return src, ()
		return None, ()

	def _resolve(self, pos: int, stmt: I.IRStmt, scope: Scope) -> ResolvedStmt:
		sid = scope.scope_id
		if isinstance(stmt, I.Declare):
			# The initializer is resolved before the new name becomes visible
			# (`let x = x` reads the outer x).
			src, missing = self._resolve_init(stmt.initializer)
			kind = stmt.value_kind
			if kind is None:
				if isinstance(stmt.initializer, I.Literal):
					kind = stmt.initializer.kind
				elif src is not None:
					kind = src.value_kind
				else:
					kind = self.default_value_kind
			b = self._declare(scope, stmt.name, kind, pos)
			return ResolvedStmt(position=pos, stmt=stmt, scope_id=sid, binding=b, source=src, unresolved=missing)
		if isinstance(stmt, I.DeclareRef):
			b = self._declare(scope, stmt.name, I.ValueKind.COPY, pos, is_ref=True, is_slot=True)
			return ResolvedStmt(position=pos, stmt=stmt, scope_id=sid, binding=b)
		if isinstance(stmt, I.Assign):
			src, missing = self._resolve_init(stmt.value)
			b = self._lookup(stmt.name)
			if b is None:
				missing = missing + (stmt.name,)
			return ResolvedStmt(position=pos, stmt=stmt, scope_id=sid, binding=b, source=src, unresolved=missing)
		if isinstance(stmt, (I.MoveUse, I.CopyUse)):
			b = self._lookup(stmt.name)
			missing = () if b is not None else (stmt.name,)
			return ResolvedStmt(position=pos, stmt=stmt, scope_id=sid, binding=b, unresolved=missing)
		if isinstance(stmt, I.BorrowCreate):
			target = self._lookup(stmt.target)
			existing = self._lookup(stmt.ref)
			if existing is not None and existing.is_slot:
				ref = existing
			else:
				ref = self._declare(scope, stmt.ref, I.ValueKind.COPY, pos, is_ref=True)
			missing = () if target is not None else (stmt.target,)
			return ResolvedStmt(position=pos, stmt=stmt, scope_id=sid, binding=ref, source=target, unresolved=missing)
		if isinstance(stmt, I.BorrowUse):
			ref = self._lookup(stmt.ref)
			if ref is None or not ref.is_ref:
				return ResolvedStmt(position=pos, stmt=stmt, scope_id=sid, binding=ref, unresolved=(stmt.ref,))
			return ResolvedStmt(position=pos, stmt=stmt, scope_id=sid, binding=ref)
		raise TypeError(f"unsupported IR statement: {type(stmt).__name__}")


def build_scope_tree(
	statements: Sequence[I.IRStmt], *, default_value_kind: I.ValueKind = I.ValueKind.MOVE
) -> ScopeTree:
	"""Convenience wrapper around `ScopeTreeBuilder().build`."""
	return ScopeTreeBuilder(default_value_kind=default_value_kind).build(statements)


__all__ = [
	"Binding",
	"MalformedScopeError",
	"ResolvedStmt",
	"Scope",
	"ScopeTree",
	"ScopeTreeBuilder",
	"build_scope_tree",
]
