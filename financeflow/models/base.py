"""Shared model configuration."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class FinanceModel(BaseModel):
    """
    Base for every persisted model.

    Local JSON blobs use camelCase keys (isRecurring, dueDate, createdAt);
    Python code uses snake_case. Both spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_storage_dict(self) -> dict:
        """JSON-compatible dict with camelCase keys, as written to local storage."""
        return self.model_dump(mode="json", by_alias=True)
