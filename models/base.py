"""
Base schema and pagination helpers shared by the API models.
"""

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """
    Base for persisted-record schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class PaginationParams(BaseModel):
    """Standard pagination parameters."""
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def last_index(self) -> int:
        """Inclusive end index for range queries."""
        return self.offset + self.page_size - 1

    def total_pages(self, total: int) -> int:
        return (total + self.page_size - 1) // self.page_size  # Ceiling division
