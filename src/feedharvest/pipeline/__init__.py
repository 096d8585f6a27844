"""Pipeline orchestration - feed collection and article backlog."""

from .workflow import IngestionWorkflow, WorkflowStage, fetch_article, run_workflow

__all__ = ["IngestionWorkflow", "WorkflowStage", "fetch_article", "run_workflow"]
