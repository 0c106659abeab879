"""Enumeration of solver items and solver x judge pairs."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .prompts import slugify


@dataclass(frozen=True)
class SolverItem:
    model: str
    slug: str


@dataclass(frozen=True)
class JudgePair:
    solver_model: str
    judge_model: str

    @property
    def key(self) -> str:
        return pair_key(self.solver_model, self.judge_model)


def pair_key(solver_model: str, judge_model: str) -> str:
    return f"{solver_model}|{judge_model}"


def _distinct(models: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(models))


@dataclass(frozen=True)
class WorkCatalog:
    """Deterministic work list derived from the configured model pools.

    Repeated identifiers in either list collapse onto one logical item, keeping
    the position of their first occurrence.
    """

    solver_models: tuple[str, ...]
    judge_models: tuple[str, ...]

    @classmethod
    def from_lists(cls, solver_models: Sequence[str], judge_models: Sequence[str]) -> "WorkCatalog":
        return cls(solver_models=tuple(solver_models), judge_models=tuple(judge_models))

    def solver_items(self) -> list[SolverItem]:
        return [SolverItem(model=model, slug=slugify(model)) for model in _distinct(self.solver_models)]

    def judges(self) -> list[str]:
        return _distinct(self.judge_models)

    def judge_pairs(self, solved_models: Iterable[str]) -> list[JudgePair]:
        """Cross product of solved solvers (outer, in order obtained) and judges (inner)."""

        judges = self.judges()
        return [
            JudgePair(solver_model=solver, judge_model=judge)
            for solver in _distinct(solved_models)
            for judge in judges
        ]
