"""Paper metadata: the flat ``category`` and ``tags`` fields."""

from typing import List, Sequence, Union

from .errors import InvalidInput
from .frontmatter import SCALAR_TYPES, FrontmatterDocument, Scalar

CATEGORY_FIELD = "category"
TAGS_FIELD = "tags"


def normalize_tags(value: Union[str, Sequence[str]]) -> List[str]:
    """Accept a list of tags or a comma-separated string.

    "a, b ,c" -> ["a", "b", "c"]. Empty elements of a string are dropped.
    """
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    if isinstance(value, (list, tuple)):
        if not all(isinstance(t, str) for t in value):
            raise InvalidInput("tags must be strings")
        return list(value)
    raise InvalidInput("tags must be a list or a comma-separated string")


def set_category(doc: FrontmatterDocument, value: Scalar) -> None:
    """Replace (or add) the category. Other fields keep their place."""
    if not isinstance(value, SCALAR_TYPES):
        raise InvalidInput("category must be a single value")
    doc.fields[CATEGORY_FIELD] = value


def set_tags(doc: FrontmatterDocument, value: Union[str, Sequence[str]]) -> None:
    """Replace (or add) the tags with the normalized list."""
    doc.fields[TAGS_FIELD] = normalize_tags(value)
