"""Workflow modules."""

from ens_verification.workflow.chunking_strategy import (
    ChunkingStrategy,
    IterationPlan,
    split_lead_times,
)
from ens_verification.workflow.orchestrator import VerificationOrchestrator, verify
from ens_verification.workflow.processor import ChunkProcessor, ProcessingOptions

__all__ = [
    "verify",
    "VerificationOrchestrator",
    "ChunkProcessor",
    "ProcessingOptions",
    "ChunkingStrategy",
    "IterationPlan",
    "split_lead_times",
]
