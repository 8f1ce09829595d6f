"""Flattening of nested input-filter specifications into documented fields.

An input-filter specification is a tree. Leaves describe single inputs;
groups nest further specifications under a path segment, and collection
groups describe a list of such nested objects. The raw configuration is
validated once into ``LeafFieldSpec`` / ``GroupFieldSpec`` and then
walked depth-first::

    albums (collection)
      title                 ->  albums[]/title
      tracks (collection)
        number              ->  albums[]/tracks[]/number
"""

from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

import structlog
from pydantic import BaseModel, Field as ModelField, ValidationError, field_validator

from doc_builder.src.exceptions import MalformedFieldSpecError
from shared.models.documentation import Field

logger = structlog.get_logger(__name__)

PATH_SEPARATOR = "/"
COLLECTION_MARKER = "[]"


def join_path(prefix: str, segment: str) -> str:
    return f"{prefix}{PATH_SEPARATOR}{segment}" if prefix else segment


class LeafFieldSpec(BaseModel):
    """A single input."""

    name: str = ModelField(..., min_length=1)
    type: str = "string"
    required: bool = False
    description: str = ""
    example: Optional[Any] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: Any) -> Any:
        return v or "string"

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        return v or ""

    @field_validator("required", mode="before")
    @classmethod
    def default_required(cls, v: Any) -> Any:
        return False if v is None else v


class GroupFieldSpec(BaseModel):
    """Nested specification; a collection group documents a list of objects."""

    name: str = ModelField(..., min_length=1)
    collection: bool = False
    fields: Tuple["FieldSpec", ...]
    description: str = ""

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def segment(self) -> str:
        return f"{self.name}{COLLECTION_MARKER}" if self.collection else self.name


FieldSpec = Union[LeafFieldSpec, GroupFieldSpec]
GroupFieldSpec.model_rebuild()


def _entries(raw: Any, path: str = "") -> List[Any]:
    """Field entries of a list, or of a mapping whose keys name unnamed entries."""
    if isinstance(raw, dict):
        entries = []
        for key, entry in raw.items():
            if isinstance(entry, dict) and "name" not in entry:
                entry = {**entry, "name": str(key)}
            entries.append(entry)
        return entries
    if not isinstance(raw, list):
        raise MalformedFieldSpecError(path, f"expected a list of fields, got {type(raw).__name__}")
    return raw


def parse_field_spec(raw: Any, path: str = "") -> FieldSpec:
    """
    Validate one raw field specification entry.

    Args:
        raw: Raw entry from ``input_filter_specs``
        path: Path of the enclosing group, for error messages

    Returns:
        LeafFieldSpec or GroupFieldSpec

    Raises:
        MalformedFieldSpecError: If the entry cannot be interpreted
    """
    if not isinstance(raw, dict):
        raise MalformedFieldSpecError(path, f"expected a mapping, got {type(raw).__name__}")

    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise MalformedFieldSpecError(path, "field has no name")

    here = join_path(path, name)
    children = raw.get("fields")

    try:
        if children is None:
            if raw.get("collection"):
                raise MalformedFieldSpecError(here, "collection has no nested fields")
            return LeafFieldSpec.model_validate(raw)

        children = _entries(children, here)
        group = GroupFieldSpec.model_validate({**raw, "fields": ()})
        if group.collection and not children:
            raise MalformedFieldSpecError(here, "collection has no nested fields")

        child_path = join_path(path, group.segment)
        return group.model_copy(
            update={"fields": tuple(parse_field_spec(child, child_path) for child in children)}
        )
    except ValidationError as e:
        raise MalformedFieldSpecError(here, str(e)) from e


def parse_field_specs(raw: Any) -> Tuple[FieldSpec, ...]:
    """
    Validate a whole input-filter specification.

    A list of entries is taken as-is. A mapping is accepted too, at any
    depth; entries without a ``name`` are named after their key.
    """
    if raw is None:
        return ()
    return tuple(parse_field_spec(entry) for entry in _entries(raw))


class FieldTreeFlattener:
    """Depth-first flattening of field specifications, preserving sibling order."""

    def flatten(self, specs: Sequence[FieldSpec]) -> List[Field]:
        return list(self.iter_fields(specs))

    def flatten_config(self, raw: Any) -> List[Field]:
        """Validate then flatten a raw input-filter specification."""
        return self.flatten(parse_field_specs(raw))

    def iter_fields(self, specs: Sequence[FieldSpec], prefix: str = "") -> Iterator[Field]:
        for spec in specs:
            if isinstance(spec, GroupFieldSpec):
                yield from self.iter_fields(spec.fields, join_path(prefix, spec.segment))
                continue

            yield Field(
                name=join_path(prefix, spec.name),
                type=spec.type,
                required=spec.required,
                description=spec.description,
                example=spec.example,
            )
