"""On-disk benchmark state: solution documents, critiques and run metadata."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .catalog import pair_key
from .parsing import Verdict
from .prompts import slugify
from .runlog import RunLog

HTML_MARKER = "<html"

CRITIQUE_FIELDS = ("solverModel", "solverSlug", "judgeModel", "verdict", "explanation")


class ParseCorruption(ValueError):
    """The persisted critique collection is not a list of critique records."""


class InvalidArtifact(ValueError):
    """A solution file is missing, empty, or has no HTML document root."""


@dataclass(frozen=True)
class SolutionRecord:
    model: str
    slug: str
    text: str

    @property
    def looks_like_html(self) -> bool:
        return HTML_MARKER in self.text.lower()


@dataclass(frozen=True)
class Critique:
    solver_model: str
    solver_slug: str
    judge_model: str
    verdict: Verdict
    explanation: str

    @property
    def key(self) -> str:
        return pair_key(self.solver_model, self.judge_model)

    def to_record(self) -> dict[str, str]:
        return {
            "solverModel": self.solver_model,
            "solverSlug": self.solver_slug,
            "judgeModel": self.judge_model,
            "verdict": self.verdict.value,
            "explanation": self.explanation,
        }

    @classmethod
    def from_record(cls, record: Any) -> "Critique":
        if not isinstance(record, Mapping):
            raise ParseCorruption(f"critique record is not an object: {record!r:.80}")
        for name in CRITIQUE_FIELDS:
            if not isinstance(record.get(name), str):
                raise ParseCorruption(f"critique record field {name!r} missing or not a string")
        if not record["solverModel"] or not record["judgeModel"]:
            raise ParseCorruption("critique record has an empty model identifier")
        try:
            verdict = Verdict(record["verdict"])
        except ValueError as exc:
            raise ParseCorruption(f"unknown verdict {record['verdict']!r}") from exc
        return cls(
            solver_model=record["solverModel"],
            solver_slug=record["solverSlug"],
            judge_model=record["judgeModel"],
            verdict=verdict,
            explanation=record["explanation"],
        )


def read_critiques(path: Path) -> list[Critique]:
    """Parse a critique file; raises ``ParseCorruption`` on any malformed content."""

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseCorruption(f"{path} is not valid JSON: {exc}") from exc

    if not isinstance(payload, list):
        raise ParseCorruption(f"{path} does not hold a list of critiques")
    return [Critique.from_record(item) for item in payload]


def _write_atomic(path: Path, text: str) -> None:
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class ResultStore:
    """Resumable state for one output directory.

    Layout::

        <root>/solutions/<slug>.html   one document per solver model
        <root>/data/critiques.json     every critique, rewritten on each append
        <root>/data/meta.json          snapshot of prompts and model pools
        <root>/logs/                   per-run log files
    """

    def __init__(self, root: str | Path, log: RunLog | None = None) -> None:
        self.root = Path(root)
        self.solutions_dir = self.root / "solutions"
        self.data_dir = self.root / "data"
        self.logs_dir = self.root / "logs"
        self.critiques_path = self.data_dir / "critiques.json"
        self.meta_path = self.data_dir / "meta.json"
        self.log = log
        self._critiques: list[Critique] = []
        self._done: set[str] = set()

    def ensure_dirs(self) -> None:
        for directory in (self.solutions_dir, self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def _warn(self, msg: str, *args: Any) -> None:
        if self.log is not None:
            self.log.warning(msg, *args)

    # Critiques

    def load(self) -> int:
        """Load prior critiques for resume; returns how many were kept."""

        self._critiques = []
        self._done = set()
        if not self.critiques_path.exists():
            return 0

        try:
            loaded = read_critiques(self.critiques_path)
        except (OSError, ParseCorruption) as exc:
            self._warn("Could not parse existing %s, starting fresh: %s", self.critiques_path, exc)
            return 0

        for critique in loaded:
            if critique.key in self._done:
                self._warn("Dropping duplicate critique for pair %s", critique.key)
                continue
            self._critiques.append(critique)
            self._done.add(critique.key)
        return len(self._critiques)

    @property
    def critiques(self) -> tuple[Critique, ...]:
        return tuple(self._critiques)

    def has_critique(self, key: str) -> bool:
        return key in self._done

    def append_critique(self, critique: Critique) -> None:
        """Record one critique and rewrite the whole collection before returning."""

        if critique.key in self._done:
            raise ValueError(f"critique already recorded for pair {critique.key}")

        # Memory only changes once the new collection is on disk.
        updated = [*self._critiques, critique]
        self.critiques_path.parent.mkdir(parents=True, exist_ok=True)
        _write_atomic(
            self.critiques_path,
            json.dumps([c.to_record() for c in updated], indent=2),
        )
        self._critiques = updated
        self._done.add(critique.key)

    # Solutions

    def solution_path(self, model: str) -> Path:
        return self.solutions_dir / f"{slugify(model)}.html"

    def load_solution(self, model: str) -> SolutionRecord:
        path = self.solution_path(model)
        if not path.is_file():
            raise InvalidArtifact(f"no solution file at {path}")

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidArtifact(f"cannot read solution file {path}: {exc}") from exc
        record = SolutionRecord(model=model, slug=slugify(model), text=text)
        if not text.strip():
            raise InvalidArtifact(f"solution file {path} is empty")
        if not record.looks_like_html:
            raise InvalidArtifact(f"solution file {path} has no {HTML_MARKER}> root")
        return record

    def has_solution(self, model: str) -> bool:
        try:
            self.load_solution(model)
        except InvalidArtifact:
            return False
        return True

    def write_solution(self, model: str, text: str) -> SolutionRecord:
        path = self.solution_path(model)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return SolutionRecord(model=model, slug=slugify(model), text=text)

    # Metadata

    def write_meta(self, meta: Mapping[str, Any]) -> Path:
        self.meta_path.parent.mkdir(parents=True, exist_ok=True)
        self.meta_path.write_text(json.dumps(dict(meta), indent=2), encoding="utf-8")
        return self.meta_path
