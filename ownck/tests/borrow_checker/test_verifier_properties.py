# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Whole-unit properties: fatal structure errors, determinism, unresolved names."""

from __future__ import annotations

from ownck import ir as I
from ownck.core.diagnostics import DiagnosticKind
from ownck.verifier import Verifier, VerifierOptions, verify_unit

MOVE = I.ValueKind.MOVE
COPY = I.ValueKind.COPY


def _messy_unit() -> I.Unit:
	return I.Unit(
		name="messy",
		statements=[
			I.Declare("s", MOVE, I.Literal("text")),
			I.Declare("n", COPY, I.Literal(1)),
			I.BorrowCreate("r", "s", I.BorrowKind.UNIQUE),
			I.BorrowCreate("q", "s", I.BorrowKind.SHARED),
			I.MoveUse("s"),
			I.BorrowUse("r"),
			I.CopyUse("s"),
			I.MoveUse("n"),
			I.DeclareRef("out"),
			I.Block(
				statements=[
					I.Declare("t", MOVE),
					I.BorrowCreate("out", "t", I.BorrowKind.SHARED),
					I.MoveUse("ghost"),
				]
			),
			I.BorrowUse("out"),
		],
	)


def test_malformed_scope_is_the_only_diagnostic():
	"""An unmatched BlockEnd aborts the unit even when other violations exist."""
	v = Verifier(
		[
			I.Declare("x", MOVE),
			I.MoveUse("x"),
			I.CopyUse("x"),
			I.BlockEnd(),
		]
	)
	diags = v.run()
	assert [(d.kind, d.position) for d in diags] == [(DiagnosticKind.MALFORMED_SCOPE, 3)]
	assert diags[0].code == "E-IR-MALFORMED-SCOPE"
	assert v.tree is None and v.ownership is None and v.borrows is None


def test_unclosed_block_is_malformed():
	diags = verify_unit([I.BlockStart(), I.Declare("x", MOVE)])
	assert [(d.kind, d.position) for d in diags] == [(DiagnosticKind.MALFORMED_SCOPE, 0)]


def test_every_independent_violation_is_reported_in_one_pass():
	diags = verify_unit(_messy_unit())
	assert [(d.kind, d.position) for d in diags] == [
		(DiagnosticKind.SHARED_AND_UNIQUE_BORROW_CONFLICT, 3),
		(DiagnosticKind.DANGLING_REFERENCE, 5),
		(DiagnosticKind.USE_AFTER_MOVE, 6),
		(DiagnosticKind.UNRESOLVED_NAME, 12),
		(DiagnosticKind.DANGLING_REFERENCE, 13),
	]


def test_verifying_twice_is_identical():
	unit = _messy_unit()
	first = verify_unit(unit)
	second = verify_unit(unit)
	assert first == second
	v = Verifier(unit.statements)
	assert v.run() == v.run() == first


def test_copy_kind_bindings_never_report_use_after_move():
	stmts: list[I.IRStmt] = [I.Declare("c", COPY, I.Literal(3))]
	stmts += [I.MoveUse("c"), I.CopyUse("c")] * 4
	stmts += [I.Block(statements=[I.Declare("d", initializer=I.VarRef("c")), I.MoveUse("d"), I.MoveUse("d")])]
	diags = verify_unit(stmts)
	assert not [d for d in diags if d.kind is DiagnosticKind.USE_AFTER_MOVE]


def test_unresolved_names_are_reported_without_aborting():
	diags = verify_unit(
		[
			I.MoveUse("nope"),
			I.Declare("x", MOVE),
			I.BorrowUse("x"),
			I.MoveUse("x"),
			I.CopyUse("x"),
		]
	)
	assert [(d.kind, d.position) for d in diags] == [
		(DiagnosticKind.UNRESOLVED_NAME, 0),
		(DiagnosticKind.UNRESOLVED_NAME, 2),
		(DiagnosticKind.USE_AFTER_MOVE, 4),
	]
	assert diags[0].message == "'nope' is not declared in this scope"
	assert diags[1].message == "'x' is not a reference"


def test_declaration_with_unresolved_initializer_still_declares():
	diags = verify_unit([I.Declare("y", initializer=I.VarRef("missing")), I.MoveUse("y"), I.MoveUse("y")])
	assert [(d.kind, d.position) for d in diags] == [
		(DiagnosticKind.UNRESOLVED_NAME, 0),
		(DiagnosticKind.USE_AFTER_MOVE, 2),
	]


def test_default_value_kind_option_applies_to_bare_declarations():
	stmts = [I.Declare("x"), I.MoveUse("x"), I.MoveUse("x")]
	assert verify_unit(stmts, VerifierOptions(default_value_kind=COPY)) == []
	assert len(verify_unit(stmts)) == 1


def test_unit_and_bare_statement_list_are_equivalent():
	unit = _messy_unit()
	assert verify_unit(unit) == verify_unit(list(unit.statements))
