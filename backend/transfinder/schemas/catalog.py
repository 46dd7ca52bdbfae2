"""
Pydantic schema for transmission catalog rows.

The source JSON uses display-style keys ("Trans Type", "Engine Type / Size");
every field is untrusted free text and may be missing.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatalogRecord(BaseModel):
    """One vehicle/transmission combination from the catalog."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    make: str = Field("", alias="Make")
    model: str = Field("", alias="Model")
    year_range: str = Field("", alias="Years")
    trans_type: str = Field("", alias="Trans Type")
    engine_size: str = Field("", alias="Engine Type / Size")
    trans_model: str = Field("", alias="Trans Model")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @property
    def display_name(self) -> str:
        """'<make> <model>' as shown to users and offered as suggestions."""
        return " ".join(part for part in (self.make, self.model) if part)

    @property
    def searchable_text(self) -> str:
        """Lower-cased, hyphen-free text the keyword filter matches against."""
        text = " ".join((self.make, self.model, self.trans_type, self.engine_size))
        return text.lower().replace("-", "")
