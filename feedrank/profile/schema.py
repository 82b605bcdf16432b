"""Weight profile schema."""

import math

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WeightProfile(BaseModel):
    """A named set of scorer weights kept in a YAML file.

    Example::

        name: chatty
        weights:
          favs: 1.0
          reblogs: 0.5
          diversity: 2.0
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = Field(default=None, description="Optional profile name")
    weights: dict[str, float] = Field(
        default_factory=dict, description="Scorer verbose name to weight"
    )

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: dict[str, float]) -> dict[str, float]:
        """Reject blank scorer names and non-finite weights."""
        for name, weight in v.items():
            if not name.strip():
                raise ValueError("Scorer name must not be blank")
            if not math.isfinite(weight):
                raise ValueError(f"Weight for '{name}' must be a finite number")
        return v
