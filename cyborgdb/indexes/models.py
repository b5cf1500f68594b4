"""Index configuration models.

Three variants share the IVF fields and are told apart by the ``type``
tag: ``ivf``, ``ivfflat`` and ``ivfpq``. Models are frozen; changing
an index configuration means recreating the index.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from cyborgdb.exceptions import InvalidFieldValueError


class IndexType(str, Enum):
    """Index variant tag."""

    IVF = "ivf"
    IVF_FLAT = "ivfflat"
    IVF_PQ = "ivfpq"


class DistanceMetric(str, Enum):
    """Distance metric used for similarity search."""

    EUCLIDEAN = "euclidean"
    COSINE = "cosine"
    INNER_PRODUCT = "inner_product"


class BaseIndexConfig(BaseModel):
    """Fields shared by every IVF-family index.

    Attributes:
        dimension: Vector dimensionality.
        metric: Distance metric.
        n_lists: Number of IVF clusters; 0 lets the Service choose.

    Integer fields are strict: numeric strings and booleans are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    dimension: int = Field(strict=True, description="Vector dimensionality")
    metric: DistanceMetric = Field(
        default=DistanceMetric.EUCLIDEAN,
        description="Distance metric",
    )
    n_lists: int = Field(
        default=0,
        strict=True,
        description="Number of IVF clusters (0 = Service default)",
    )

    @field_validator("dimension")
    @classmethod
    def _check_dimension(cls, value: int) -> int:
        if value <= 0:
            raise InvalidFieldValueError(
                f"dimension must be positive, got {value}",
                details={"field": "dimension", "value": value},
            )
        return value

    @field_validator("n_lists")
    @classmethod
    def _check_n_lists(cls, value: int) -> int:
        if value < 0:
            raise InvalidFieldValueError(
                f"n_lists must not be negative, got {value}",
                details={"field": "n_lists", "value": value},
            )
        return value

    @property
    def index_type(self) -> IndexType:
        """The variant tag."""
        return IndexType(getattr(self, "type"))


class IndexIVF(BaseIndexConfig):
    """IVF index: vectors partitioned into clusters, probed at query time."""

    type: Literal["ivf"] = "ivf"


class IndexIVFFlat(BaseIndexConfig):
    """IVFFlat index: IVF with full-precision vectors in each cluster."""

    type: Literal["ivfflat"] = "ivfflat"


class IndexIVFPQ(BaseIndexConfig):
    """IVFPQ index: IVF with product-quantized vectors.

    Attributes:
        pq_dim: Product quantization dimension, at most ``dimension``.
        pq_bits: Bits per quantization code.
    """

    type: Literal["ivfpq"] = "ivfpq"
    pq_dim: int = Field(strict=True, description="Product quantization dimension")
    pq_bits: int = Field(strict=True, description="Bits per PQ code")

    @field_validator("pq_dim", "pq_bits")
    @classmethod
    def _check_positive(cls, value: int, info: ValidationInfo) -> int:
        if value <= 0:
            name = info.field_name
            raise InvalidFieldValueError(
                f"{name} must be positive, got {value}",
                details={"field": name, "value": value},
            )
        return value

    @model_validator(mode="after")
    def _check_pq_dim_fits(self) -> "IndexIVFPQ":
        if self.pq_dim > self.dimension:
            raise InvalidFieldValueError(
                f"pq_dim ({self.pq_dim}) must not exceed dimension ({self.dimension})",
                details={"pq_dim": self.pq_dim, "dimension": self.dimension},
            )
        return self


IndexConfig = Annotated[
    IndexIVF | IndexIVFFlat | IndexIVFPQ,
    Field(discriminator="type"),
]


class IndexDescriptor(BaseModel):
    """Index description returned by the Service.

    Attributes:
        index_name: Index name.
        index_type: Variant tag.
        is_trained: Whether the index has been trained.
        index_config: Full configuration.
    """

    model_config = ConfigDict(frozen=True)

    index_name: str = Field(description="Index name")
    index_type: IndexType = Field(description="Index variant")
    is_trained: bool = Field(default=False, strict=True, description="Training state")
    index_config: IndexConfig | None = Field(
        default=None,
        description="Index configuration",
    )
