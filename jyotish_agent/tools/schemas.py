"""
Tool input schemas.

Each model is both the JSON schema shown to the model and the validator
run before the executor. Birth data never appears here: executors take it
from the bound UserContext.
"""

from pydantic import BaseModel, ConfigDict, Field


class TransitInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Target date for prediction in YYYY-MM-DD format",
    )
    years: float | None = Field(
        None, gt=0, le=10, description="Duration in years, default 1.0"
    )
    include_moon: bool | None = Field(
        None, description="Include moon transits, default true"
    )


class VargaInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    varga_num: int = Field(
        ...,
        ge=1,
        le=60,
        description=(
            "Varga number: 9 for Marriage (Navamsa), 10 for Career (Dasamsa), "
            "2 for Wealth (Hora), 7 for Children (Saptamsa), 12 for Parents (Dwadasamsa)"
        ),
    )


class VarshaphalaInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    age: int = Field(
        ...,
        ge=0,
        le=120,
        description="Age for the solar return year (e.g., 24 for the 25th year of life)",
    )


class DashaInput(BaseModel):
    """No parameters needed - uses user birth data automatically."""
    model_config = ConfigDict(extra="ignore")


class BirthChartInput(BaseModel):
    """No parameters needed - uses user birth data automatically."""
    model_config = ConfigDict(extra="ignore")


class BookSearchInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query: str = Field(
        ...,
        min_length=1,
        description=(
            "The search query to find relevant information from astrology books. "
            "Be specific and include astrological terms."
        ),
    )
    topic: str | None = Field(
        None,
        description="Optional topic focus: remedies, predictions, yogas, doshas, etc.",
    )
