"""Parameter types for utility configuration."""

from pydantic import BaseModel, Field

from docstore_util.cursor import DEFAULT_PAGE_SIZE

IDENTITY_FIELD = "__name__"
"""Sort key that orders documents by their path."""


class UtilParams(BaseModel, frozen=True):
    """Defaults applied by ``DocStoreUtil``."""

    default_page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    """Page size of the cursor created when a caller supplies none."""

    delete_batch_size: int = Field(default=300, ge=1)
    """Documents deleted per round by ``delete_collection``.

    Must not exceed the engine's batch write limit (500 for Firestore).
    """

    identity_field: str = IDENTITY_FIELD
    """Field used to order deletion rounds."""


class BatchWriteParams(BaseModel, frozen=True):
    """Common parameters for storage engine providers."""

    max_batch_writes: int = Field(default=500, ge=1)
    """Maximum number of writes accepted in one atomic batch."""
