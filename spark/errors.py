"""
Pipeline error taxonomy.
Every failure is terminal for the run; the stage and table travel with the
exception so the operator log says where it broke.
"""

from typing import Optional


class PipelineError(Exception):
    """Base error for all pipeline stages."""

    def __init__(self, message: str, stage: Optional[str] = None, table: Optional[str] = None):
        self.stage = stage
        self.table = table
        context = []
        if stage:
            context.append(f"stage={stage}")
        if table:
            context.append(f"table={table}")
        if context:
            message = f"{message} [{', '.join(context)}]"
        super().__init__(message)


class SessionError(PipelineError):
    """Could not connect to the compute cluster."""
    pass


class TableNotFoundError(PipelineError):
    """A named input table does not exist in the catalog."""
    pass


class SchemaMismatchError(PipelineError):
    """A named input table is missing required columns."""

    def __init__(self, table: str, missing, stage: Optional[str] = None):
        self.missing = sorted(missing)
        super().__init__(
            f"Missing required columns: {', '.join(self.missing)}", stage=stage, table=table
        )


class PartitionError(PipelineError):
    """Degenerate split request or empty subset."""
    pass


class TrainingError(PipelineError):
    """The fitting library rejected the training data."""
    pass
