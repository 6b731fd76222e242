"""Curation pipeline: stage orchestration and run lifecycle."""

from curator.pipeline.factory import create_collaborators, create_pipeline
from curator.pipeline.models import PipelineResult, RunTally
from curator.pipeline.orchestrator import (
    CurationPipeline,
    PipelineCollaborators,
    briefing_title,
    briefing_topics,
)
from curator.pipeline.state_machine import (
    VALID_TRANSITIONS,
    PipelineState,
    PipelineStateError,
    PipelineStateMachine,
)


__all__ = [
    "VALID_TRANSITIONS",
    "CurationPipeline",
    "PipelineCollaborators",
    "PipelineResult",
    "PipelineState",
    "PipelineStateError",
    "PipelineStateMachine",
    "RunTally",
    "briefing_title",
    "briefing_topics",
    "create_collaborators",
    "create_pipeline",
]
