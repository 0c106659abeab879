import io
import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from schedulermark import store as store_module
from schedulermark.catalog import WorkCatalog
from schedulermark.client import RequestFailure, ShapeMismatch
from schedulermark.parsing import Verdict
from schedulermark.pipeline import BenchmarkPipeline, PipelineConfig
from schedulermark.prompts import SOLVER_PROMPT
from schedulermark.runlog import RunLog
from schedulermark.store import ResultStore

SOLVERS = ["org/solver-a", "org/solver-b"]
JUDGES = ["org/judge-x", "org/judge-y"]


class _FakeClient:
    """Answers solver prompts with HTML and judge prompts with a verdict."""

    def __init__(self, failing_solvers=(), failing_judges=(), solver_text=None, judge_text="YES\n\nlooks correct"):
        self.calls: list[tuple[str, str, int | None]] = []
        self.failing_solvers = set(failing_solvers)
        self.failing_judges = set(failing_judges)
        self.solver_text = solver_text
        self.judge_text = judge_text

    def complete(self, model: str, prompt: str, *, max_tokens: int | None = None) -> str:
        self.calls.append((model, prompt, max_tokens))
        if prompt == SOLVER_PROMPT:
            if model in self.failing_solvers:
                raise RequestFailure(model, 500, "Internal Server Error", "boom")
            if self.solver_text is not None:
                return self.solver_text
            return f"<!DOCTYPE html><html><body>{model}</body></html>"
        if model in self.failing_judges:
            raise ShapeMismatch(f"Unexpected response shape for {model}")
        return self.judge_text

    def solver_calls(self) -> list[str]:
        return [model for model, prompt, _ in self.calls if prompt == SOLVER_PROMPT]

    def judge_calls(self) -> list[str]:
        return [model for model, prompt, _ in self.calls if prompt != SOLVER_PROMPT]


class PipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.stream = io.StringIO()
        self.log = RunLog(stream=self.stream)

    def tearDown(self) -> None:
        self.log.close()
        self._tmp.cleanup()

    def _pipeline(self, client, solvers=SOLVERS, judges=JUDGES, config=None) -> BenchmarkPipeline:
        store = ResultStore(self.root, log=self.log)
        return BenchmarkPipeline(
            client=client,
            store=store,
            catalog=WorkCatalog.from_lists(solvers, judges),
            log=self.log,
            config=config,
        )

    def _persisted_keys(self) -> list[str]:
        payload = json.loads((self.root / "data" / "critiques.json").read_text(encoding="utf-8"))
        return [f"{r['solverModel']}|{r['judgeModel']}" for r in payload]

    def test_full_run_produces_every_pair_in_catalog_order(self) -> None:
        client = _FakeClient()
        summary = self._pipeline(client).run()

        self.assertEqual(summary.solutions_generated, 2)
        self.assertEqual(summary.critiques_added, 4)
        self.assertEqual(
            self._persisted_keys(),
            [
                "org/solver-a|org/judge-x",
                "org/solver-a|org/judge-y",
                "org/solver-b|org/judge-x",
                "org/solver-b|org/judge-y",
            ],
        )
        self.assertTrue((self.root / "solutions" / "org_solver-a.html").exists())
        meta = json.loads((self.root / "data" / "meta.json").read_text(encoding="utf-8"))
        self.assertEqual(meta["solverModels"], SOLVERS)
        self.assertEqual(meta["judgeModels"], JUDGES)
        self.assertIn("lastRun", meta)

    def test_solve_phase_completes_before_any_judging(self) -> None:
        client = _FakeClient()
        self._pipeline(client).run()
        kinds = ["solve" if prompt == SOLVER_PROMPT else "judge" for _, prompt, _ in client.calls]
        self.assertEqual(kinds, ["solve", "solve", "judge", "judge", "judge", "judge"])

    def test_phase_specific_token_budgets(self) -> None:
        client = _FakeClient()
        config = PipelineConfig(solver_max_tokens=9000, judge_max_tokens=700)
        self._pipeline(client, config=config).run()
        budgets = {("solve" if p == SOLVER_PROMPT else "judge", t) for _, p, t in client.calls}
        self.assertEqual(budgets, {("solve", 9000), ("judge", 700)})

    def test_resumed_run_makes_no_new_calls(self) -> None:
        self._pipeline(_FakeClient()).run()

        client = _FakeClient()
        summary = self._pipeline(client).run()

        self.assertEqual(client.calls, [])
        self.assertEqual(summary.solutions_reused, 2)
        self.assertEqual(summary.critiques_skipped, 4)
        self.assertEqual(summary.critiques_total, 4)

    def test_repeated_runs_keep_pair_keys_unique(self) -> None:
        self._pipeline(_FakeClient(failing_judges={"org/judge-y"})).run()
        self._pipeline(_FakeClient()).run()
        self._pipeline(_FakeClient(), judges=JUDGES + ["org/judge-z"]).run()

        keys = self._persisted_keys()
        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual(len(keys), 6)

    def test_failed_solver_is_dropped_without_affecting_others(self) -> None:
        client = _FakeClient(failing_solvers={"org/solver-a"})
        summary = self._pipeline(client).run()

        self.assertEqual(summary.solver_failures, 1)
        self.assertFalse((self.root / "solutions" / "org_solver-a.html").exists())
        keys = self._persisted_keys()
        self.assertEqual(keys, ["org/solver-b|org/judge-x", "org/solver-b|org/judge-y"])
        self.assertIn("Error generating solution for org/solver-a", self.stream.getvalue())

    def test_failed_solver_is_retried_on_next_run(self) -> None:
        self._pipeline(_FakeClient(failing_solvers={"org/solver-a"})).run()
        client = _FakeClient()
        self._pipeline(client).run()

        self.assertEqual(client.solver_calls(), ["org/solver-a"])
        self.assertEqual(client.judge_calls(), JUDGES)
        self.assertEqual(len(self._persisted_keys()), 4)

    def test_failed_judge_records_exactly_one_error_critique(self) -> None:
        client = _FakeClient(failing_judges={"org/judge-x"})
        pipeline = self._pipeline(client, solvers=["org/solver-a"])
        summary = pipeline.run()

        critiques = {c.key: c for c in pipeline.store.critiques}
        failed = critiques["org/solver-a|org/judge-x"]
        self.assertEqual(failed.verdict, Verdict.ERROR)
        self.assertIn("Unexpected response shape", failed.explanation)
        self.assertEqual(critiques["org/solver-a|org/judge-y"].verdict, Verdict.AFFIRMATIVE)
        self.assertEqual(summary.judge_errors, 1)

        # An ERROR critique is terminal: it is not re-judged on resume.
        client = _FakeClient()
        self._pipeline(client, solvers=["org/solver-a"]).run()
        self.assertEqual(client.judge_calls(), [])

    def test_judge_output_is_parsed(self) -> None:
        client = _FakeClient(judge_text="maybe\nhard to say")
        pipeline = self._pipeline(client, solvers=["org/solver-a"], judges=["org/judge-x"])
        pipeline.run()
        critique = pipeline.store.critiques[0]
        self.assertEqual(critique.verdict, Verdict.NEGATIVE)
        self.assertEqual(critique.explanation, "hard to say")
        self.assertEqual(critique.solver_slug, "org_solver-a")

    def test_markerless_solution_is_judged_then_regenerated_next_run(self) -> None:
        client = _FakeClient(solver_text="Here is your schedule in Markdown.")
        pipeline = self._pipeline(client, solvers=["org/solver-a"], judges=["org/judge-x"])
        summary = pipeline.run()

        self.assertEqual(summary.solutions_generated, 1)
        self.assertEqual(len(pipeline.store.critiques), 1)
        self.assertIn("does not appear to contain <html> tag", self.stream.getvalue())

        client = _FakeClient()
        self._pipeline(client, solvers=["org/solver-a"], judges=["org/judge-x"]).run()
        self.assertEqual(client.solver_calls(), ["org/solver-a"])
        self.assertEqual(client.judge_calls(), [])
        text = (self.root / "solutions" / "org_solver-a.html").read_text(encoding="utf-8")
        self.assertIn("<html>", text)

    def test_unrecorded_critique_is_logged_and_judged_again_next_run(self) -> None:
        real_write = store_module._write_atomic
        writes: list[Path] = []

        def _fail_first_write(path: Path, text: str) -> None:
            writes.append(path)
            if len(writes) == 1:
                raise OSError("disk full")
            real_write(path, text)

        solvers, judges = ["org/solver-a"], ["org/judge-x", "org/judge-y"]
        pipeline = self._pipeline(_FakeClient(), solvers=solvers, judges=judges)
        with patch("schedulermark.store._write_atomic", side_effect=_fail_first_write):
            summary = pipeline.run()

        self.assertIn("Could not record critique for org/solver-a|org/judge-x", self.stream.getvalue())
        self.assertEqual(summary.critiques_added, 1)
        self.assertEqual(summary.critiques_total, 1)
        self.assertFalse(pipeline.store.has_critique("org/solver-a|org/judge-x"))
        self.assertEqual(self._persisted_keys(), ["org/solver-a|org/judge-y"])

        client = _FakeClient()
        self._pipeline(client, solvers=solvers, judges=judges).run()
        self.assertEqual(client.judge_calls(), ["org/judge-x"])
        self.assertEqual(len(self._persisted_keys()), 2)

    def test_corrupt_critique_file_does_not_abort_run(self) -> None:
        (self.root / "data").mkdir(parents=True)
        (self.root / "data" / "critiques.json").write_text('{"oops": true}', encoding="utf-8")

        summary = self._pipeline(_FakeClient()).run()

        self.assertEqual(summary.critiques_loaded, 0)
        self.assertEqual(summary.critiques_added, 4)
        self.assertIn("starting fresh", self.stream.getvalue())

    def test_solve_phase_returns_solutions_in_obtained_order(self) -> None:
        pipeline = self._pipeline(_FakeClient(failing_solvers={"org/solver-a"}), solvers=["org/solver-a", "org/solver-b", "org/solver-c"])
        pipeline.store.ensure_dirs()
        solutions = pipeline.solve_phase()
        self.assertEqual(list(solutions), ["org/solver-b", "org/solver-c"])


if __name__ == "__main__":
    unittest.main()
