"""
Base models for contextkit.
"""

from pydantic import BaseModel as PydanticBaseModel


class BaseModel(PydanticBaseModel):
    """
    Base model for all contextkit data structures.

    Provides common configuration and utilities.
    """

    class Config:
        # Allow field population by name or alias
        populate_by_name = True
        # Validate assignments after object creation
        validate_assignment = True
        # Use enum values instead of enum names
        use_enum_values = True
        # Reject unknown fields
        extra = "forbid"


class FrozenModel(BaseModel):
    """
    Immutable variant of the base model.

    Used for values that must not change once emitted, such as context items.
    """

    class Config:
        frozen = True
