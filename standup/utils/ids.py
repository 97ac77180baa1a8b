"""ObjectId helpers."""
from bson import ObjectId
from bson.errors import InvalidId

from standup.exceptions import NotFoundError


def to_object_id(value: str, resource: str) -> ObjectId:
    """
    Convert an API id to an ObjectId.

    A malformed id can never match a stored document, so it is reported the
    same way as a missing one.

    Raises:
        NotFoundError: If the id is not a valid ObjectId
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(resource, str(value))
