"""Command-line interface for running and inspecting the scheduling benchmark."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from .catalog import WorkCatalog
from .client import OpenRouterClient
from .config import BenchmarkSettings, ConfigError, resolve_settings
from .pipeline import BenchmarkPipeline, PipelineConfig
from .prompts import JUDGE_PROMPT_TEMPLATE, SOLVER_PROMPT
from .runlog import RunLog
from .store import ResultStore

PENDING = "-"


def _add_pool_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Root for solutions/, data/ and logs/ (default: $SCHEDULERMARK_OUTPUT_DIR or cwd).",
    )
    parser.add_argument(
        "--solver-models",
        nargs="+",
        default=None,
        help="Solver model identifiers, in run order (default: built-in pool).",
    )
    parser.add_argument(
        "--judge-models",
        nargs="+",
        default=None,
        help="Judge model identifiers, in run order (default: built-in pool).",
    )


def _settings_from_args(args: argparse.Namespace, *, require_api_key: bool) -> BenchmarkSettings:
    return resolve_settings(
        api_key=getattr(args, "api_key", None),
        solver_models=args.solver_models,
        judge_models=args.judge_models,
        base_url=getattr(args, "base_url", None),
        referer=getattr(args, "referer", None),
        title=getattr(args, "title", None),
        output_dir=args.output_dir,
        solver_max_tokens=getattr(args, "solver_max_tokens", 4096),
        judge_max_tokens=getattr(args, "judge_max_tokens", 4096),
        request_timeout=getattr(args, "request_timeout", 600),
        require_api_key=require_api_key,
    )


def _build_pipeline(settings: BenchmarkSettings, store: ResultStore, log: RunLog) -> BenchmarkPipeline:
    client = OpenRouterClient(
        api_key=settings.api_key,
        base_url=settings.base_url,
        referer=settings.referer,
        title=settings.title,
        timeout_sec=settings.request_timeout,
    )
    return BenchmarkPipeline(
        client=client,
        store=store,
        catalog=WorkCatalog.from_lists(settings.solver_models, settings.judge_models),
        log=log,
        config=PipelineConfig(
            solver_max_tokens=settings.solver_max_tokens,
            judge_max_tokens=settings.judge_max_tokens,
        ),
    )


def build_status_frame(store: ResultStore, catalog: WorkCatalog) -> pd.DataFrame:
    """Solver x judge verdict matrix; pairs without a critique show as pending."""

    solvers = [item.model for item in catalog.solver_items()]
    judges = catalog.judges()
    rows = [c.to_record() for c in store.critiques]

    if rows:
        frame = pd.DataFrame(rows).pivot(index="solverModel", columns="judgeModel", values="verdict")
    else:
        frame = pd.DataFrame()

    # Critiques for models outside the configured pools are not shown.
    matrix = frame.reindex(index=solvers, columns=judges).fillna(PENDING)
    matrix.index.name = "solver"
    matrix.columns.name = "judge"
    matrix.insert(0, "solution", ["ok" if store.has_solution(m) else "missing" for m in solvers])
    return matrix


def cmd_run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args, require_api_key=True)
    store = ResultStore(settings.output_dir)
    try:
        store.ensure_dirs()
    except OSError as exc:
        print(f"Error: cannot create output directories under {settings.output_dir}: {exc}", file=sys.stderr)
        return 1

    with RunLog(store.logs_dir) as log:
        store.log = log
        pipeline = _build_pipeline(settings, store, log)
        try:
            summary = pipeline.run()
        except OSError as exc:
            log.exception("Run aborted: %s", exc)
            return 1

        print(
            "Run summary: "
            f"solutions={summary.solutions_available} "
            f"(reused={summary.solutions_reused} generated={summary.solutions_generated} "
            f"failed={summary.solver_failures}) "
            f"critiques_added={summary.critiques_added} "
            f"skipped={summary.critiques_skipped} "
            f"judge_errors={summary.judge_errors} "
            f"total={summary.critiques_total}"
        )
        if log.path is not None:
            print(f"Run log: {log.path}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args, require_api_key=False)
    catalog = WorkCatalog.from_lists(settings.solver_models, settings.judge_models)

    with RunLog() as log:
        store = ResultStore(settings.output_dir, log=log)
        store.load()
        matrix = build_status_frame(store, catalog)

    done = int((matrix.drop(columns="solution") != PENDING).to_numpy().sum())
    total = len(matrix.index) * (len(matrix.columns) - 1)
    with pd.option_context("display.max_columns", None, "display.width", 200):
        print(matrix.to_string())
    print(f"Judged pairs: {done}/{total}")

    if args.csv:
        out = Path(args.csv)
        out.parent.mkdir(parents=True, exist_ok=True)
        matrix.to_csv(out)
        print(f"Saved status matrix: {out}")
    return 0


def cmd_prompts(args: argparse.Namespace) -> int:
    print(JUDGE_PROMPT_TEMPLATE if args.judge else SOLVER_PROMPT)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SchedulerMark: LLM solver/judge scheduling benchmark")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Generate missing solutions, then judge every unjudged pair")
    _add_pool_args(run)
    run.add_argument("--api-key", default=None, help="Defaults to $OPENROUTER_API_KEY.")
    run.add_argument("--base-url", default=None, help="Defaults to $OPENROUTER_BASE_URL or OpenRouter.")
    run.add_argument("--referer", default=None, help="HTTP-Referer attribution header.")
    run.add_argument("--title", default=None, help="X-Title attribution header.")
    run.add_argument("--solver-max-tokens", type=int, default=4096)
    run.add_argument("--judge-max-tokens", type=int, default=4096)
    run.add_argument("--request-timeout", type=int, default=600)
    run.set_defaults(func=cmd_run)

    status = sub.add_parser("status", help="Show which solutions and judge pairs are already done")
    _add_pool_args(status)
    status.add_argument("--csv", default=None, help="Also write the verdict matrix to this CSV.")
    status.set_defaults(func=cmd_status)

    prompts = sub.add_parser("prompts", help="Print the fixed solver prompt")
    prompts.add_argument("--judge", action="store_true", help="Print the judge prompt template instead.")
    prompts.set_defaults(func=cmd_prompts)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(override=False)
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
