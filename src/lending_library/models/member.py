"""
Member model for the Lending Library.

Members borrow and reserve books. The borrowing limit is a library-wide policy
(see ``LibraryConfig.borrow_limit``), so a member carries nothing but its
identity and display name.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Member(BaseModel):
    """Represents a library member who can borrow books."""

    id: str = Field(
        ...,
        description="Unique identifier of the member",
        min_length=1,
        max_length=64,
        examples=["m-alice", "m-bob"],
    )

    name: str = Field(
        ...,
        description="Full name of the member",
        min_length=1,
        max_length=200,
        examples=["Alice Smith", "Bob Jones"],
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Strip surrounding whitespace; a blank name is rejected."""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "m-alice",
                "name": "Alice Smith",
            }
        }
    )
