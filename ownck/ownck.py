# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ownck command-line driver.

Reads one or more IR JSON files (see `ownck.ir_json`), verifies every unit
they contain and reports diagnostics. This is a thin consumer of the
verifier: all checking lives in `ownck.verifier`.

With --json, prints a single `{"exit_code": ..., "diagnostics": [...]}`
object to stdout; otherwise prints `file:line:col: severity: message` lines
to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from ownck import ir as I
from ownck.batch import verify_units
from ownck.core.diagnostics import Diagnostic
from ownck.ir_json import IRFormatError, load_units_json
from ownck.verifier import VerifierOptions

logger = logging.getLogger(__name__)


def _diag_to_json(diag: Diagnostic, unit: str, source: Path) -> dict:
	"""Render a Diagnostic to a structured JSON-friendly dict."""
	file = diag.span.file or str(source)
	return {
		"phase": diag.phase,
		"kind": diag.kind.value,
		"code": diag.code,
		"message": diag.message,
		"severity": diag.severity,
		"unit": unit,
		"position": diag.position,
		"binding": diag.binding,
		"borrow": diag.borrow,
		"file": file,
		"line": diag.span.line,
		"column": diag.span.column,
		"notes": list(diag.notes),
	}


def _load_error_json(source: Path, msg: str) -> dict:
	return {
		"phase": "load",
		"kind": None,
		"code": None,
		"message": msg,
		"severity": "error",
		"unit": None,
		"position": None,
		"binding": None,
		"borrow": None,
		"file": str(source),
		"line": None,
		"column": None,
		"notes": [],
	}


def main(argv: list[str] | None = None) -> int:
	"""
	Verify IR files. Exit code is 1 when any file fails to load or any unit
	has an error diagnostic, else 0.
	"""
	parser = argparse.ArgumentParser(description="ownck: static ownership and borrow verifier")
	parser.add_argument("source", type=Path, nargs="+", help="Path(s) to IR JSON file(s)")
	parser.add_argument(
		"--json",
		action="store_true",
		help="Emit diagnostics as JSON (phase/kind/code/message/severity/unit/file/line/column)",
	)
	parser.add_argument("-j", "--jobs", type=int, default=1, help="Verify up to N units in parallel (default: 1)")
	parser.add_argument(
		"--allow-assign-while-borrowed",
		action="store_true",
		help="Accept reassignment of a binding that has an active borrow",
	)
	parser.add_argument(
		"--default-kind",
		choices=["move", "copy"],
		default="move",
		help="Value kind for declarations with no annotation or initializer (default: move)",
	)
	parser.add_argument("-v", "--verbose", action="store_true", help="Log per-unit progress to stderr")
	args = parser.parse_args(argv)

	if args.verbose:
		logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

	options = VerifierOptions(
		allow_assign_while_borrowed=args.allow_assign_while_borrowed,
		default_value_kind=I.ValueKind.COPY if args.default_kind == "copy" else I.ValueKind.MOVE,
	)

	exit_code = 0
	json_diags: List[dict] = []
	# Units from every file are verified as one batch; keep the file for each.
	units: List[I.Unit] = []
	owners: List[Path] = []
	for source_path in args.source:
		try:
			loaded = load_units_json(source_path)
		except (OSError, IRFormatError) as err:
			exit_code = 1
			msg = str(err)
			if args.json:
				json_diags.append(_load_error_json(source_path, msg))
			else:
				print(f"{source_path}:?:?: error: {msg}", file=sys.stderr)
			continue
		logger.debug("loaded %d unit(s) from %s", len(loaded), source_path)
		units.extend(loaded)
		owners.extend([source_path] * len(loaded))

	reports = verify_units(units, options, jobs=args.jobs)
	for rep, source_path in zip(reports, owners):
		for d in rep.diagnostics:
			if d.severity == "error":
				exit_code = 1
			if args.json:
				json_diags.append(_diag_to_json(d, rep.name, source_path))
			else:
				file = d.span.file or str(source_path)
				print(f"{file}:{d.span.describe()}: {d.severity}: {d.render()} [{rep.name}]", file=sys.stderr)
				for note in d.notes:
					print(f"{file}:{d.span.describe()}: note: {note}", file=sys.stderr)

	if args.json:
		print(json.dumps({"exit_code": exit_code, "diagnostics": json_diags}))
	return exit_code


__all__ = ["main"]
