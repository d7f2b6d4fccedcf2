# tenant_overlay/config/validator.py
"""
Schema validation of merged configuration documents.

Pure functions: no I/O, no logging of tenant data. Every failure is
reported as a path + reason pair so multi-field overrides can be debugged
in one pass.
"""
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ValidationError

from ..errors import ValidationIssue
from .brand import BrandIdentity, is_palette_reference
from .schema import TenantConfig
from .tree import format_path, iter_leaves


class ValidationReport(BaseModel):
    config: Optional[TenantConfig] = None
    issues: List[ValidationIssue] = []

    @property
    def valid(self) -> bool:
        return self.config is not None and not self.issues


def validate_config(document: Mapping[str, Any]) -> ValidationReport:
    """Validate a complete configuration document against the TenantConfig schema."""
    try:
        config = TenantConfig.model_validate(document)
    except ValidationError as exc:
        return ValidationReport(issues=issues_from_validation_error(exc))

    issues = check_palette_references(config.brand_identity, prefix=("brandIdentity",))
    if issues:
        return ValidationReport(issues=issues)
    return ValidationReport(config=config)


def issues_from_validation_error(exc: ValidationError) -> List[ValidationIssue]:
    return [
        ValidationIssue(path=format_path(error["loc"]), reason=error["msg"])
        for error in exc.errors()
    ]


def unresolved_tokens(brand: BrandIdentity, prefix: tuple = ()) -> List[Tuple[str, str]]:
    """(path, token) for every token-valued color leaf missing from ``colors.palette``."""
    palette: Mapping[str, str] = brand.colors.palette
    missing = []
    for path, value in iter_leaves(brand.colors, prefix + ("colors",)):
        if path[len(prefix) + 1] == "palette":
            continue
        if isinstance(value, str) and is_palette_reference(value) and value not in palette:
            missing.append((format_path(path), value))
    return missing


def check_palette_references(brand: BrandIdentity, prefix: tuple = ()) -> List[ValidationIssue]:
    return [
        ValidationIssue(path=path, reason=f"palette token '{token}' is not defined")
        for path, token in unresolved_tokens(brand, prefix)
    ]
