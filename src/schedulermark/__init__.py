"""SchedulerMark: benchmark LLMs as solvers and judges of a fixed scheduling task."""

from .catalog import JudgePair, SolverItem, WorkCatalog
from .client import OpenRouterClient
from .parsing import Verdict, parse_verdict
from .pipeline import BenchmarkPipeline, PipelineConfig, RunSummary
from .store import Critique, ResultStore, SolutionRecord

__all__ = [
    "BenchmarkPipeline",
    "Critique",
    "JudgePair",
    "OpenRouterClient",
    "PipelineConfig",
    "ResultStore",
    "RunSummary",
    "SolutionRecord",
    "SolverItem",
    "Verdict",
    "WorkCatalog",
    "parse_verdict",
]
