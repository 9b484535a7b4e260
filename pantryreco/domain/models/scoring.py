# pantryreco/domain/models/scoring.py
from pydantic import BaseModel, Field


class ModeWeights(BaseModel):
    urgency: float
    availability: float
    model_config = {"frozen": True}


class ScoringConfig(BaseModel):
    """
    Every ranking constant in one place. Both query modes attach the same two
    functions (urgency, availability), summed then multiplied onto the base score.
    """
    discover: ModeWeights = ModeWeights(urgency=5.0, availability=1.5)
    search: ModeWeights = ModeWeights(urgency=1.2, availability=1.5)

    # search-mode text boosts
    name_boost: float = Field(3.0, gt=0)
    description_boost: float = Field(1.0, gt=0)
    ingredient_name_boost: float = Field(2.0, gt=0)

    # one constant-score should clause per preferred category
    preferred_category_boost: float = Field(1.0, gt=0)

    fuzzy_max_edits: int = Field(1, ge=1, le=2)  # Atlas only accepts 1 or 2
    fuzzy_prefix_length: int = Field(3, ge=0)

    collapse_by_name: bool = True

    model_config = {"frozen": True}
