"""Data models for derived work items."""

from pydantic import BaseModel, Field


class TaskResult(BaseModel):
    """One work item parsed from a summarization agent's response."""

    description: str = Field(..., description="Verb-led, manager-readable task line")
    estimated_hours: float = Field(0.5, description="Effort in 0.5 hour increments, minimum 0.5")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "description": "Implemented user authentication system",
                "estimated_hours": 2.0,
            }
        }
