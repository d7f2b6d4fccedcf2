# tenant_overlay/config/merge.py
"""
Key-path overlay of a tenant override onto the default template.

The merge is driven by the configuration schema, never by the shape of the
documents alone:

* model-valued keys merge recursively;
* map-valued keys merge per entry; an entry that is not already in the
  template is accepted only for maps declared open (e.g. the palette);
* scalars and arrays are replaced wholesale, arrays are never concatenated;
* keys the schema does not know are rejected and reported, not merged.
"""
import copy
from typing import Any, List, Mapping, Tuple, Type

from pydantic import BaseModel

from ..errors import ValidationIssue
from .schema import TenantConfig
from .tree import Path, field_key, format_path, is_open_map, mapping_value_type, model_type


def overlay_config(
    template: Mapping[str, Any], override: Mapping[str, Any]
) -> Tuple[dict, List[ValidationIssue]]:
    """Overlay ``override`` on ``template`` using the TenantConfig schema."""
    if not isinstance(override, Mapping):
        return copy.deepcopy(dict(template)), [
            ValidationIssue(path="<root>", reason="override must be an object")
        ]
    return overlay_model(TenantConfig, template, override)


def overlay_model(
    model: Type[BaseModel],
    base: Mapping[str, Any],
    override: Mapping[str, Any],
    path: Path = (),
) -> Tuple[dict, List[ValidationIssue]]:
    """
    Merge ``override`` onto ``base`` for a node described by ``model``.

    Returns the merged document and the issues found. Neither input is
    modified.
    """
    merged = copy.deepcopy(dict(base))
    issues: List[ValidationIssue] = []
    fields = {field_key(name, field): field for name, field in model.model_fields.items()}

    for key, value in override.items():
        key_path = path + (key,)
        field = fields.get(key)
        if field is None:
            issues.append(ValidationIssue(path=format_path(key_path), reason="unknown configuration key"))
            continue

        current = merged.get(key)
        sub_model = model_type(field.annotation)
        item_type = mapping_value_type(field.annotation)

        if sub_model is not None and isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key], sub_issues = overlay_model(sub_model, current, value, key_path)
            issues.extend(sub_issues)
        elif item_type is not None and isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key], sub_issues = _overlay_map(
                item_type, is_open_map(field), current, value, key_path
            )
            issues.extend(sub_issues)
        else:
            merged[key] = copy.deepcopy(value)

    return merged, issues


def _overlay_map(
    item_type: Any,
    open_map: bool,
    base: Mapping[str, Any],
    override: Mapping[str, Any],
    path: Path,
) -> Tuple[dict, List[ValidationIssue]]:
    merged = copy.deepcopy(dict(base))
    issues: List[ValidationIssue] = []
    item_model = model_type(item_type)

    for key, value in override.items():
        key_path = path + (key,)
        if key not in merged:
            if not open_map:
                issues.append(ValidationIssue(
                    path=format_path(key_path),
                    reason="unknown key; not defined in the default template",
                ))
                continue
            merged[key] = copy.deepcopy(value)
        elif item_model is not None and isinstance(value, Mapping) and isinstance(merged[key], Mapping):
            merged[key], sub_issues = overlay_model(item_model, merged[key], value, key_path)
            issues.extend(sub_issues)
        else:
            merged[key] = copy.deepcopy(value)

    return merged, issues
