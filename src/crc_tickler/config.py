from pydantic import BaseModel, ConfigDict, Field, field_validator

from crc_tickler.search_space import DEFAULT_ALPHABET

MAX_COMMENT_LENGTH = 8


class SearchConfig(BaseModel):
    """Settings threaded through a single search session."""

    model_config = ConfigDict(frozen=True)

    verbose: bool = False
    workers: int = Field(default=16, ge=1)
    max_length: int = Field(default=MAX_COMMENT_LENGTH, ge=1, le=MAX_COMMENT_LENGTH)
    alphabet: str = DEFAULT_ALPHABET
    progress_interval: float = Field(default=0.1, gt=0)

    @field_validator("alphabet")
    @classmethod
    def check_alphabet(cls, value: str) -> str:
        if not value:
            raise ValueError("alphabet must not be empty")
        bad = [c for c in value if not " " <= c <= "~"]
        if bad:
            raise ValueError(f"alphabet must be printable ASCII, got {bad!r}")
        if len(set(value)) != len(value):
            raise ValueError("alphabet must not repeat characters")
        return value
