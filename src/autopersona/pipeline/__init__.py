"""Generation pipeline: runs one job through its steps."""

from autopersona.pipeline.models import PipelineOutcome, PipelineStep, StepOutcome

__all__ = ["PipelineOutcome", "PipelineStep", "StepOutcome"]
