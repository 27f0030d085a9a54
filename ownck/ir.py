# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Ownership IR consumed by the verifier.

Pipeline placement:
  front end (external) → normalized IR (this file) → scope tree → checks

The IR is a flat or nested statement sequence describing only what matters
for ownership: where bindings are declared, where they are moved, copied,
reassigned or borrowed, and where blocks open and close. Everything else
(expressions, types beyond Copy/Move, control flow) has already been erased
by the front end.

Guiding rules:
- Nodes carry names, not resolved bindings; the scope tree builder resolves
  names lexically.
- Blocks may be written either as `BlockStart`/`BlockEnd` markers or as a
  nested `Block`; both produce the same scope tree and program positions.
- Every statement carries a best-effort `loc` span for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Sequence, Union

from ownck.core.span import Span


# Base node kinds

class IRNode:
	"""Base class for all IR nodes."""
	pass


class IRExpr(IRNode):
	"""Base class for initializer/value expressions."""
	pass


class IRStmt(IRNode):
	"""Base class for all IR statements."""
	pass


class ValueKind(Enum):
	"""Copy values are duplicated on use; Move values transfer ownership."""
	COPY = auto()
	MOVE = auto()


class BorrowKind(Enum):
	"""Shared borrows are read-only and may coexist; unique borrows are exclusive."""
	SHARED = auto()
	UNIQUE = auto()


# Expressions

@dataclass
class Literal(IRExpr):
	"""A fresh value; `kind` is the only type information the verifier needs."""
	value: object = None
	kind: ValueKind = ValueKind.MOVE


@dataclass
class VarRef(IRExpr):
	"""Binding-to-binding transfer: `let y = x` / `y = x`."""
	name: str
	loc: Span = field(default_factory=Span)


Initializer = Union[Literal, VarRef]


# Statements

@dataclass
class Declare(IRStmt):
	"""
	Introduce `name` in the current scope.

	`value_kind` is the explicit annotation; when omitted the kind is taken
	from the initializer (or the verifier's default).
	"""
	name: str
	value_kind: Optional[ValueKind] = None
	initializer: Optional[Initializer] = None
	loc: Span = field(default_factory=Span)


@dataclass
class DeclareRef(IRStmt):
	"""Reference variable declared ahead of its borrow (`let r; ... r = &x;`)."""
	name: str
	loc: Span = field(default_factory=Span)


@dataclass
class Assign(IRStmt):
	"""Reassign an existing binding (drop-then-reinit)."""
	name: str
	value: Optional[Initializer] = None
	loc: Span = field(default_factory=Span)


@dataclass
class MoveUse(IRStmt):
	"""Consuming use: pass by value, return, or binding-to-binding assignment."""
	name: str
	loc: Span = field(default_factory=Span)


@dataclass
class CopyUse(IRStmt):
	"""Non-consuming read."""
	name: str
	loc: Span = field(default_factory=Span)


@dataclass
class BorrowCreate(IRStmt):
	"""`ref = &target` (shared) or `ref = &mut target` (unique)."""
	ref: str
	target: str
	kind: BorrowKind = BorrowKind.SHARED
	loc: Span = field(default_factory=Span)


@dataclass
class BorrowUse(IRStmt):
	"""Use of a reference variable (read or write through it)."""
	ref: str
	loc: Span = field(default_factory=Span)


@dataclass
class BlockStart(IRStmt):
	loc: Span = field(default_factory=Span)


@dataclass
class BlockEnd(IRStmt):
	loc: Span = field(default_factory=Span)


@dataclass
class Block(IRStmt):
	"""Nested form of a `BlockStart ... BlockEnd` pair."""
	statements: List[IRStmt] = field(default_factory=list)
	loc: Span = field(default_factory=Span)
	end_loc: Span = field(default_factory=Span)


@dataclass
class Unit(IRNode):
	"""One independently verifiable compilation unit (function, module, ...)."""
	name: str
	statements: List[IRStmt] = field(default_factory=list)


def flatten(statements: Sequence[IRStmt]) -> List[IRStmt]:
	"""
	Expand nested `Block` nodes into explicit `BlockStart`/`BlockEnd` markers.

	Program positions are indices into the returned list.
	"""
	out: List[IRStmt] = []
	for stmt in statements:
		if isinstance(stmt, Block):
			out.append(BlockStart(loc=stmt.loc))
			out.extend(flatten(stmt.statements))
			out.append(BlockEnd(loc=stmt.end_loc))
		else:
			out.append(stmt)
	return out


__all__ = [
	"IRNode",
	"IRExpr",
	"IRStmt",
	"ValueKind",
	"BorrowKind",
	"Literal",
	"VarRef",
	"Initializer",
	"Declare",
	"DeclareRef",
	"Assign",
	"MoveUse",
	"CopyUse",
	"BorrowCreate",
	"BorrowUse",
	"BlockStart",
	"BlockEnd",
	"Block",
	"Unit",
	"flatten",
]
