# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Verify many independent units, optionally in parallel.

Units share no mutable state: each worker builds its own scope tree, tracker
and borrow checker. Reports come back in unit declaration order no matter
which worker finishes first, so output stays deterministic.

Cancellation is cooperative and coarse: once `stop` is set no further unit
is scheduled; units already running finish and keep their results. Units
that never started are reported with `skipped=True`.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ownck import ir as I
from ownck.core.diagnostics import Diagnostic
from ownck.verifier import VerifierOptions, verify_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnitReport:
	"""Diagnostics for one unit, in reporter order."""

	name: str
	index: int
	diagnostics: Tuple[Diagnostic, ...] = ()
	skipped: bool = False

	@property
	def ok(self) -> bool:
		return not self.skipped and not any(d.severity == "error" for d in self.diagnostics)


def _verify_one(index: int, unit: I.Unit, options: VerifierOptions) -> UnitReport:
	diags = verify_unit(unit, options)
	logger.debug("verified unit %r: %d diagnostic(s)", unit.name, len(diags))
	return UnitReport(name=unit.name, index=index, diagnostics=tuple(diags))


def verify_units(
	units: Sequence[I.Unit],
	options: Optional[VerifierOptions] = None,
	*,
	jobs: int = 1,
	stop: Optional[threading.Event] = None,
) -> List[UnitReport]:
	"""
	Verify `units` and return one report per unit in declaration order.

	`jobs` bounds the number of units in flight. With `jobs <= 1` units run
	sequentially on the calling thread.
	"""
	opts = options or VerifierOptions()
	reports: Dict[int, UnitReport] = {}

	if jobs <= 1:
		for idx, unit in enumerate(units):
			if stop is not None and stop.is_set():
				break
			reports[idx] = _verify_one(idx, unit, opts)
	else:
		pending: Dict[Future, int] = {}
		next_idx = 0
		with ThreadPoolExecutor(max_workers=jobs) as executor:
			while True:
				while next_idx < len(units) and len(pending) < jobs:
					if stop is not None and stop.is_set():
						break
					fut = executor.submit(_verify_one, next_idx, units[next_idx], opts)
					pending[fut] = next_idx
					next_idx += 1
				if not pending:
					break
				done, _ = wait(list(pending), return_when=FIRST_COMPLETED)
				for fut in done:
					idx = pending.pop(fut)
					reports[idx] = fut.result()

	out: List[UnitReport] = []
	for idx, unit in enumerate(units):
		rep = reports.get(idx)
		if rep is None:
			rep = UnitReport(name=unit.name, index=idx, skipped=True)
		out.append(rep)
	skipped = sum(1 for r in out if r.skipped)
	logger.info(
		"verified %d unit(s) (workers=%d, skipped=%d, with diagnostics=%d)",
		len(out) - skipped,
		max(jobs, 1),
		skipped,
		sum(1 for r in out if r.diagnostics),
	)
	return out


__all__ = ["UnitReport", "verify_units"]
