"""Outcomes of a release run.

Usage:
    match release_sub_repositories(cwd, config):
        case Released(count):
            ...
        case Aborted() | NothingToRelease():
            ...
        case Failed(cause):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Released:
    """The run went through; ``count`` packages were released."""

    count: int


@dataclass(frozen=True, slots=True)
class Aborted:
    """The operator picked no target or declined the confirmation."""


@dataclass(frozen=True, slots=True)
class NothingToRelease:
    """No package differs from what the registry and GitHub have."""


@dataclass(frozen=True, slots=True)
class Failed:
    """An unexpected error stopped the run."""

    cause: BaseException


ReleaseOutcome = Released | Aborted | NothingToRelease | Failed


def exit_code(outcome: ReleaseOutcome) -> int:
    return 1 if isinstance(outcome, Failed) else 0
