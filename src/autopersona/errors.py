"""Exception hierarchy shared across the scheduler, queue and pipeline."""

from __future__ import annotations


class AutopersonaError(Exception):
    """Base class for all autopersona errors."""


class ScheduleStoreError(AutopersonaError):
    """The schedule store could not be read or written."""


class QueueError(AutopersonaError):
    """The work queue rejected an enqueue or claim."""


class InvalidFrequencyError(AutopersonaError, ValueError):
    """A schedule frequency is malformed or of an unknown kind."""


class StepError(AutopersonaError):
    """A pipeline step failed.

    ``step`` names the pipeline step (see ``PipelineStep``) so the executor
    can record the failure against the right stage.
    """

    def __init__(self, message: str, step: str | None = None) -> None:
        super().__init__(message)
        self.step = step


class CollaboratorError(StepError):
    """An external service (LLM, image, face swap, publisher) returned an error."""
