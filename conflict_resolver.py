#!/usr/bin/env python3
"""
Conflict resolution for restores onto an index that already exists on the target.

The importer asks a resolver what to do; the resolver may prompt the operator,
apply a fixed policy, or be replaced by a test double.
"""

from enum import Enum


class ConflictChoice(Enum):
    DELETE = "delete"
    SKIP = "skip"
    SKIP_ALL = "skip-all"


class FixedPolicyResolver:
    """Always answers with the same choice (--auto-skip / --overwrite)."""

    def __init__(self, choice=ConflictChoice.SKIP):
        self.choice = choice

    def resolve(self, unit, existing_count):
        return self.choice


class InteractivePromptResolver:
    """Asks the operator: delete and re-restore, skip this one, or skip all remaining."""

    def __init__(self, prompt=input):
        self._prompt = prompt

    def resolve(self, unit, existing_count):
        answer = self._prompt("Delete and re-restore? (yes/no/skip-all): ").strip().lower()
        if answer == "skip-all":
            return ConflictChoice.SKIP_ALL
        if answer in ("y", "yes"):
            return ConflictChoice.DELETE
        return ConflictChoice.SKIP
