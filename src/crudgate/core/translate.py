"""
Field-name translation between the API vocabulary and storage columns.

A field map goes from external (API) name to storage name.  Names that are
not in the map pass through unchanged in both directions, and identity
fields (`id` and the table's primary keys) are never renamed.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional


class FieldTranslator:
    """Bidirectional renaming driven by a single external -> storage map."""

    def __init__(self, field_map: Optional[Mapping[str, str]] = None, identity_fields: Iterable[str] = ("id",)):
        self.identity_fields = frozenset(identity_fields)
        # Entries that would rename an identity field are ignored.
        self.field_map: Dict[str, str] = {
            api: storage
            for api, storage in (field_map or {}).items()
            if api not in self.identity_fields and storage not in self.identity_fields
        }
        # Built once; for a non-injective map the last entry wins.
        self.inverse_map: Dict[str, str] = {storage: api for api, storage in self.field_map.items()}

    def field_to_storage(self, name: str) -> str:
        if name in self.identity_fields:
            return name
        return self.field_map.get(name, name)

    def field_to_api(self, name: str) -> str:
        if name in self.identity_fields:
            return name
        return self.inverse_map.get(name, name)

    def fields_to_storage(self, names: Iterable[str]) -> List[str]:
        return [self.field_to_storage(name) for name in names]

    def to_storage(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Rename the keys of an API-side mapping to storage names."""
        return self._rename(data, self.field_to_storage)

    def to_api(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Rename the keys of a storage row to API names."""
        return self._rename(data, self.field_to_api)

    def _rename(self, data: Mapping[str, Any], rename) -> Dict[str, Any]:
        output: Dict[str, Any] = {}
        # Identity fields first so a renamed key can never shadow them.
        for key in self.identity_fields:
            if key in data:
                output[key] = data[key]
        for key, value in data.items():
            if key in self.identity_fields:
                continue
            output.setdefault(rename(key), value)
        return output

