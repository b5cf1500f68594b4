"""Client request and response models."""

from pydantic import BaseModel, Field


class TrainParams(BaseModel):
    """Index training options. Unset options use the Service defaults.

    Attributes:
        batch_size: Vectors per training batch.
        max_iters: Maximum training iterations.
        tolerance: Convergence tolerance.
        max_memory: Memory cap in MB; 0 means no limit.
        n_lists: Number of IVF clusters; 0 lets the Service choose.
    """

    batch_size: int | None = Field(default=None, ge=0, description="Batch size")
    max_iters: int | None = Field(default=None, ge=0, description="Max iterations")
    tolerance: float | None = Field(default=None, gt=0, description="Tolerance")
    max_memory: int | None = Field(default=None, ge=0, description="Memory cap (MB)")
    n_lists: int | None = Field(default=None, ge=0, description="IVF clusters")


class ListIDsResult(BaseModel):
    """All item ids stored in an index."""

    ids: list[str] = Field(default_factory=list, description="Item ids")
    count: int = Field(default=0, description="Number of ids")
