# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ownck: static ownership and borrow verifier.

Stages:
  ir: normalized statement IR handed over by a front end
  scope_tree: scope tree + lexical name resolution
  ownership / borrow_checker_pass: the two checks, run in one walk
  reporter: ordered, deduplicated diagnostics

The CLI entrypoint is `ownck.ownck:main`.
"""

from ownck.verifier import Verifier, VerifierOptions, verify_unit

__all__ = ["Verifier", "VerifierOptions", "verify_unit"]
