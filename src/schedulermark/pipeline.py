"""Two-phase benchmark run: solvers produce documents, judges grade every document."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any

from .catalog import JudgePair, WorkCatalog
from .client import ChatClient
from .parsing import Verdict, parse_verdict
from .prompts import (
    JUDGE_PROMPT_TEMPLATE,
    ORIGINAL_REQUEST,
    SOLVER_PROMPT,
    build_judge_prompt,
)
from .runlog import RunLog
from .store import Critique, InvalidArtifact, ResultStore, SolutionRecord


@dataclass(frozen=True)
class PipelineConfig:
    solver_max_tokens: int = 4096
    judge_max_tokens: int = 4096


@dataclass
class RunSummary:
    solutions_reused: int = 0
    solutions_generated: int = 0
    solver_failures: int = 0
    critiques_loaded: int = 0
    critiques_skipped: int = 0
    critiques_added: int = 0
    judge_errors: int = 0
    critiques_total: int = 0

    @property
    def solutions_available(self) -> int:
        return self.solutions_reused + self.solutions_generated


def build_run_metadata(catalog: WorkCatalog, *, now: dt.datetime | None = None) -> dict[str, Any]:
    """Snapshot of prompts and model pools for the current run."""

    stamp = now or dt.datetime.now(dt.timezone.utc)
    return {
        "originalRequest": ORIGINAL_REQUEST,
        "solverPrompt": SOLVER_PROMPT,
        "judgePromptTemplate": JUDGE_PROMPT_TEMPLATE,
        "solverModels": [item.model for item in catalog.solver_items()],
        "judgeModels": catalog.judges(),
        "lastRun": stamp.isoformat(),
    }


class BenchmarkPipeline:
    """Drives the solve phase and then the judge phase over a work catalog.

    Every unit of work (one solver call, one judge call) is isolated: its
    failure is logged and the loop moves on. Results are persisted before the
    next unit starts, so a restarted process resumes from disk.
    """

    def __init__(
        self,
        client: ChatClient,
        store: ResultStore,
        catalog: WorkCatalog,
        log: RunLog,
        config: PipelineConfig | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.catalog = catalog
        self.log = log
        self.config = config or PipelineConfig()
        self.summary = RunSummary()

    def run(self) -> RunSummary:
        self.summary = RunSummary()
        self.store.ensure_dirs()

        meta_path = self.store.write_meta(build_run_metadata(self.catalog))
        self.log.info("Wrote meta prompt info to %s", meta_path)

        loaded = self.store.load()
        self.summary.critiques_loaded = loaded
        if loaded:
            self.log.info("Loaded %d existing critiques; will skip those judge pairs.", loaded)

        self.log.info("=== SOLVER PHASE ===")
        solutions = self.solve_phase()

        self.log.info("=== JUDGE PHASE ===")
        self.judge_phase(solutions)

        self.summary.critiques_total = len(self.store.critiques)
        self.log.info(
            "Done. Solutions in %s, critiques in %s (total %d records).",
            self.store.solutions_dir,
            self.store.critiques_path,
            self.summary.critiques_total,
        )
        return self.summary

    def solve_phase(self) -> dict[str, SolutionRecord]:
        """Return solutions keyed by model, in the order they were obtained."""

        items = self.catalog.solver_items()
        total = len(items)
        solutions: dict[str, SolutionRecord] = {}

        for idx, item in enumerate(items, start=1):
            out_path = self.store.solution_path(item.model)
            try:
                existing = self.store.load_solution(item.model)
            except InvalidArtifact as exc:
                if out_path.exists():
                    self.log.warning("Existing solution for %s is unusable, regenerating: %s", item.model, exc)
            else:
                solutions[item.model] = existing
                self.summary.solutions_reused += 1
                self.log.info(
                    "[%d/%d] Skipping %s, solution already exists at %s", idx, total, item.model, out_path
                )
                continue

            self.log.info("[%d/%d] Generating solution for %s -> %s", idx, total, item.model, out_path)
            try:
                text = self.client.complete(
                    item.model,
                    SOLVER_PROMPT,
                    max_tokens=self.config.solver_max_tokens,
                )
                record = self.store.write_solution(item.model, text)
            except Exception as exc:
                self.summary.solver_failures += 1
                self.log.error("Error generating solution for %s: %s", item.model, exc)
                continue

            if not record.looks_like_html:
                self.log.warning(
                    "Warning: solution from %s does not appear to contain <html> tag.", item.model
                )
            solutions[item.model] = record
            self.summary.solutions_generated += 1

        return solutions

    def judge_phase(self, solutions: dict[str, SolutionRecord]) -> None:
        pairs = self.catalog.judge_pairs(solutions)
        total = len(pairs)

        for idx, pair in enumerate(pairs, start=1):
            if self.store.has_critique(pair.key):
                self.summary.critiques_skipped += 1
                self.log.info("[%d/%d] Skipping already-judged pair %s", idx, total, pair.key)
                continue

            self.log.info(
                "[%d/%d] Judge %s reviewing solution from %s...",
                idx,
                total,
                pair.judge_model,
                pair.solver_model,
            )
            critique = self._judge(pair, solutions[pair.solver_model])
            try:
                self.store.append_critique(critique)
            except Exception as exc:
                self.log.error("Could not record critique for %s: %s", pair.key, exc)
                continue
            self.summary.critiques_added += 1

    def _judge(self, pair: JudgePair, solution: SolutionRecord) -> Critique:
        try:
            raw = self.client.complete(
                pair.judge_model,
                build_judge_prompt(solution.text),
                max_tokens=self.config.judge_max_tokens,
            )
            parsed = parse_verdict(raw)
            verdict, explanation = parsed.verdict, parsed.explanation
        except Exception as exc:
            self.summary.judge_errors += 1
            self.log.error("Error judging %s with %s: %s", pair.solver_model, pair.judge_model, exc)
            verdict, explanation = Verdict.ERROR, str(exc)

        return Critique(
            solver_model=pair.solver_model,
            solver_slug=solution.slug,
            judge_model=pair.judge_model,
            verdict=verdict,
            explanation=explanation,
        )
