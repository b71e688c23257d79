"""Exception types shared across the pipeline."""
from __future__ import annotations


class JobMailError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(JobMailError):
    """Unrecoverable setup problem (missing input file, bad config). Aborts the run."""


class ExtractionError(JobMailError):
    """The LLM answer could not be turned into job opportunities."""
