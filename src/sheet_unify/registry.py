"""Ordered registry of the canonical (standard) field names."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from sheet_unify import DEFAULT_FIELDS
from sheet_unify.errors import ValidationError


class FieldRegistry:
    """Ordered, duplicate-free list of standard field names.

    Removing a field never touches file mappings that target it; the
    unification engine simply ignores targets that are no longer registered.
    """

    def __init__(self, fields: Iterable[str] | None = None) -> None:
        self._fields: list[str] = []
        for name in DEFAULT_FIELDS if fields is None else fields:
            self.add_field(name)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._fields))

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FieldRegistry({self._fields!r})"

    @property
    def fields(self) -> list[str]:
        """A copy of the current field names, in display order."""
        return list(self._fields)

    def add_field(self, name: str) -> str:
        field_name = name.strip() if isinstance(name, str) else ""
        if not field_name:
            raise ValidationError("Field name cannot be empty")
        if field_name in self._fields:
            raise ValidationError(f"Field already exists: {field_name!r}")
        self._fields.append(field_name)
        return field_name

    def remove_field(self, name: str) -> bool:
        """Remove *name*; returns ``False`` when it was not registered."""
        try:
            self._fields.remove(name)
        except ValueError:
            return False
        return True
