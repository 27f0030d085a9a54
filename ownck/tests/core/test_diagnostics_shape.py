# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Diagnostics shape and reporter ordering.

These tests do not depend on source locations (the IR built here has none);
they lock down that diagnostics always carry a structured `Span`, a stable
code, and come out ordered and deduplicated.
"""

from __future__ import annotations

from ownck import ir as I
from ownck.core.diagnostics import Component, Diagnostic, DiagnosticKind
from ownck.core.span import Span
from ownck.reporter import DiagnosticReporter
from ownck.verifier import verify_unit


def _diag(kind: DiagnosticKind, pos: int, component: Component, binding: str = "x") -> Diagnostic:
	return Diagnostic(kind=kind, message=kind.value, position=pos, component=component, binding=binding)


def test_verifier_diagnostics_always_have_spans():
	"""Diagnostics must always carry a `Span` (sentinel allowed)."""
	diags = verify_unit(
		[
			I.Declare("x", I.ValueKind.MOVE),
			I.MoveUse("x"),
			I.CopyUse("x"),
			I.BorrowCreate("r", "x"),
			I.MoveUse("missing"),
		]
	)
	assert diags, "expected at least one diagnostic"
	assert all(isinstance(d.span, Span) for d in diags)


def test_statement_span_is_carried_into_diagnostic():
	loc = Span(file="m.src", line=7, column=3)
	[diag] = verify_unit([I.Declare("x"), I.MoveUse("x"), I.CopyUse("x", loc=loc)])
	assert diag.span == loc
	assert diag.span.describe() == "7:3"


def test_codes_are_stable_and_prefixed_in_render():
	[diag] = verify_unit([I.Declare("x"), I.MoveUse("x"), I.MoveUse("x")])
	assert diag.code == "E-OWN-USE-AFTER-MOVE"
	assert diag.render().startswith("E-OWN-USE-AFTER-MOVE: ")
	assert diag.phase == "ownership"
	assert DiagnosticKind.MALFORMED_SCOPE.fatal
	assert not DiagnosticKind.DANGLING_REFERENCE.fatal


def test_reporter_orders_by_position_then_component():
	"""Ownership diagnostics precede borrow diagnostics at the same position."""
	rep = DiagnosticReporter()
	late_borrow = _diag(DiagnosticKind.DANGLING_REFERENCE, 3, Component.BORROW)
	late_own = _diag(DiagnosticKind.USE_AFTER_MOVE, 3, Component.OWNERSHIP)
	early = _diag(DiagnosticKind.USE_AFTER_MOVE, 1, Component.OWNERSHIP, binding="y")
	rep.extend([late_borrow, late_own, early])
	assert rep.diagnostics() == [early, late_own, late_borrow]


def test_reporter_drops_exact_repeats_only():
	"""Same (kind, binding, location) is kept once; a different binding is not a repeat."""
	rep = DiagnosticReporter()
	a = _diag(DiagnosticKind.USE_AFTER_MOVE, 2, Component.OWNERSHIP)
	rep.add(a)
	rep.add(_diag(DiagnosticKind.USE_AFTER_MOVE, 2, Component.OWNERSHIP))
	b = _diag(DiagnosticKind.USE_AFTER_MOVE, 2, Component.OWNERSHIP, binding="y")
	rep.add(b)
	assert rep.diagnostics() == [a, b]
	assert len(rep) == 3
	assert rep.has_errors()
