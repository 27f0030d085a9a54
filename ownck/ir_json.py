# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
JSON interchange for ownership IR.

The front end that normalizes source code hands units over in this format;
the verifier never reads source text itself.

Format (pinned for v0, JSON):
{
  "format": "ownck-ir",
  "version": 0,
  "units": [
    {
      "name": "main",
      "statements": [
        {"op": "declare", "name": "x", "kind": "move", "init": {"literal": "hi"}},
        {"op": "declare", "name": "y", "init": {"var": "x"}},
        {"op": "copy", "name": "y", "line": 3, "column": 5},
        {"op": "block", "statements": [ ... ]},
        {"op": "borrow", "ref": "r", "target": "y", "kind": "unique"},
        {"op": "use_ref", "ref": "r"}
      ]
    }
  ]
}

Ops: declare, declare_ref, assign, move, copy, borrow, use_ref,
block_start, block_end, block. `line`/`column` are optional on every
statement. A literal initializer may carry `"kind": "copy"|"move"`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping, Optional

from ownck import ir as I
from ownck.core.span import Span

FORMAT = "ownck-ir"
VERSION = 0

_VALUE_KINDS = {"copy": I.ValueKind.COPY, "move": I.ValueKind.MOVE}
_BORROW_KINDS = {
	"shared": I.BorrowKind.SHARED,
	"unique": I.BorrowKind.UNIQUE,
	# Accepted spellings from front ends that speak in mutability terms.
	"mut": I.BorrowKind.UNIQUE,
}


class IRFormatError(ValueError):
	"""Malformed IR document; `where` names the offending element."""

	def __init__(self, message: str, *, where: str = "") -> None:
		super().__init__(f"{where}: {message}" if where else message)
		self.where = where


def _position_field(obj: Mapping[str, Any], key: str, where: str) -> Optional[int]:
	val = obj.get(key)
	# JSON true/false decode as bool, an int subclass.
	if val is not None and (isinstance(val, bool) or not isinstance(val, int)):
		raise IRFormatError(f"{key} must be an integer", where=where)
	return val


def _span(obj: Mapping[str, Any], file: Optional[str], where: str) -> Span:
	line = _position_field(obj, "line", where)
	column = _position_field(obj, "column", where)
	if line is None and column is None:
		return Span(file=file) if file else Span()
	return Span(file=file, line=line, column=column)


def _str_field(obj: Mapping[str, Any], key: str, where: str) -> str:
	val = obj.get(key)
	if not isinstance(val, str) or not val:
		raise IRFormatError(f"missing or empty '{key}'", where=where)
	return val


def _value_kind(raw: Any, where: str) -> Optional[I.ValueKind]:
	if raw is None:
		return None
	kind = _VALUE_KINDS.get(str(raw).lower())
	if kind is None:
		raise IRFormatError(f"unknown value kind {raw!r}", where=where)
	return kind


def _initializer(raw: Any, where: str, file: Optional[str]) -> Optional[I.Initializer]:
	if raw is None:
		return None
	if not isinstance(raw, dict):
		raise IRFormatError("initializer must be an object", where=where)
	if "var" in raw:
		name = raw["var"]
		if not isinstance(name, str) or not name:
			raise IRFormatError("initializer 'var' must be a name", where=where)
		return I.VarRef(name=name, loc=_span(raw, file, where))
	if "literal" in raw:
		kind = _value_kind(raw.get("kind"), where) or I.ValueKind.MOVE
		return I.Literal(value=raw["literal"], kind=kind)
	raise IRFormatError("initializer needs 'var' or 'literal'", where=where)


def _statement(obj: Any, where: str, file: Optional[str]) -> I.IRStmt:
	if not isinstance(obj, dict):
		raise IRFormatError("statement must be an object", where=where)
	op = obj.get("op")
	loc = _span(obj, file, where)
	if op == "declare":
		return I.Declare(
			name=_str_field(obj, "name", where),
			value_kind=_value_kind(obj.get("kind"), where),
			initializer=_initializer(obj.get("init"), where, file),
			loc=loc,
		)
	if op == "declare_ref":
		return I.DeclareRef(name=_str_field(obj, "name", where), loc=loc)
	if op == "assign":
		return I.Assign(
			name=_str_field(obj, "name", where),
			value=_initializer(obj.get("value"), where, file),
			loc=loc,
		)
	if op == "move":
		return I.MoveUse(name=_str_field(obj, "name", where), loc=loc)
	if op == "copy":
		return I.CopyUse(name=_str_field(obj, "name", where), loc=loc)
	if op == "borrow":
		raw_kind = str(obj.get("kind") or "shared").lower()
		kind = _BORROW_KINDS.get(raw_kind)
		if kind is None:
			raise IRFormatError(f"unknown borrow kind {raw_kind!r}", where=where)
		return I.BorrowCreate(
			ref=_str_field(obj, "ref", where),
			target=_str_field(obj, "target", where),
			kind=kind,
			loc=loc,
		)
	if op == "use_ref":
		return I.BorrowUse(ref=_str_field(obj, "ref", where), loc=loc)
	if op == "block_start":
		return I.BlockStart(loc=loc)
	if op == "block_end":
		return I.BlockEnd(loc=loc)
	if op == "block":
		body = obj.get("statements") or []
		if not isinstance(body, list):
			raise IRFormatError("block statements must be a list", where=where)
		end = obj.get("end") or {}
		if not isinstance(end, dict):
			raise IRFormatError("block end must be an object", where=where)
		return I.Block(
			statements=[_statement(s, f"{where}.statements[{i}]", file) for i, s in enumerate(body)],
			loc=loc,
			end_loc=_span(end, file, f"{where}.end"),
		)
	raise IRFormatError(f"unknown op {op!r}", where=where)


def units_from_obj(obj: Any, *, file: Optional[str] = None) -> List[I.Unit]:
	"""Decode an already-parsed JSON document into units."""
	if not isinstance(obj, dict):
		raise IRFormatError("IR document must be a JSON object")
	if obj.get("format") != FORMAT or obj.get("version") != VERSION:
		raise IRFormatError("unsupported IR format/version")
	raw_units = obj.get("units")
	if not isinstance(raw_units, list):
		raise IRFormatError("'units' must be a list")
	units: List[I.Unit] = []
	for ui, raw in enumerate(raw_units):
		where = f"units[{ui}]"
		if not isinstance(raw, dict):
			raise IRFormatError("unit must be an object", where=where)
		name = raw.get("name") or f"unit{ui}"
		stmts = raw.get("statements")
		if not isinstance(stmts, list):
			raise IRFormatError("'statements' must be a list", where=where)
		units.append(
			I.Unit(
				name=str(name),
				statements=[_statement(s, f"{where}.statements[{si}]", file) for si, s in enumerate(stmts)],
			)
		)
	return units


def load_units_json(path: Path) -> List[I.Unit]:
	"""Load every unit from an IR JSON file."""
	try:
		obj = json.loads(path.read_text(encoding="utf-8"))
	except UnicodeDecodeError as err:
		raise IRFormatError(f"not valid UTF-8: byte offset {err.start}") from err
	except json.JSONDecodeError as err:
		raise IRFormatError(f"invalid JSON: {err.msg} (line {err.lineno})") from err
	return units_from_obj(obj, file=str(path))


__all__ = ["FORMAT", "VERSION", "IRFormatError", "load_units_json", "units_from_obj"]
