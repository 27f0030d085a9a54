# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Batch verification: declaration order, isolation and cooperative stop."""

from __future__ import annotations

import threading

import pytest

from ownck import ir as I
from ownck.batch import UnitReport, verify_units
from ownck.core.diagnostics import DiagnosticKind
from ownck.verifier import VerifierOptions, verify_unit

MOVE = I.ValueKind.MOVE


def _units(count: int) -> list[I.Unit]:
	"""Alternate sound and use-after-move units; names encode the index."""
	out = []
	for i in range(count):
		stmts: list[I.IRStmt] = [I.Declare("x", MOVE), I.MoveUse("x")]
		if i % 2:
			stmts.append(I.MoveUse("x"))
		out.append(I.Unit(name=f"u{i}", statements=stmts))
	return out


@pytest.mark.parametrize("jobs", [1, 3, 8])
def test_reports_follow_declaration_order(jobs):
	units = _units(10)
	reports = verify_units(units, jobs=jobs)
	assert [r.name for r in reports] == [u.name for u in units]
	assert [r.index for r in reports] == list(range(10))
	for i, rep in enumerate(reports):
		assert not rep.skipped
		if i % 2:
			assert [d.kind for d in rep.diagnostics] == [DiagnosticKind.USE_AFTER_MOVE]
			assert not rep.ok
		else:
			assert rep.diagnostics == ()
			assert rep.ok


def test_parallel_results_match_sequential_verification():
	units = _units(7)
	reports = verify_units(units, jobs=4)
	assert [list(r.diagnostics) for r in reports] == [verify_unit(u) for u in units]


def test_options_reach_every_unit():
	units = _units(4)
	reports = verify_units(units, VerifierOptions(default_value_kind=I.ValueKind.COPY), jobs=2)
	# Explicit MOVE annotations still win over the default.
	assert [r.ok for r in reports] == [True, False, True, False]
	bare = [I.Unit(name="bare", statements=[I.Declare("x"), I.MoveUse("x"), I.MoveUse("x")])]
	assert verify_units(bare, VerifierOptions(default_value_kind=I.ValueKind.COPY))[0].ok


@pytest.mark.parametrize("jobs", [1, 4])
def test_stop_before_start_skips_everything(jobs):
	stop = threading.Event()
	stop.set()
	units = _units(5)
	reports = verify_units(units, jobs=jobs, stop=stop)
	assert [r.name for r in reports] == [u.name for u in units]
	assert all(r.skipped for r in reports)
	assert not any(r.ok for r in reports)


def test_empty_batch():
	assert verify_units([], jobs=4) == []


def test_unit_report_ok_ignores_non_error_severities():
	assert UnitReport(name="a", index=0).ok
	assert not UnitReport(name="a", index=0, skipped=True).ok
