# tenant_overlay/config/template.py
import copy
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..errors import ConfigInvalidError
from .schema import TenantConfig
from .validator import validate_config

logger = logging.getLogger(__name__)

TEMPLATE_SLUG = "<default-template>"


class DefaultConfigTemplate(BaseModel):
    """The validated default configuration every tenant starts from."""
    document: Dict[str, Any]
    config: TenantConfig
    source: str
    loaded_at: datetime
    revision: int

    model_config = ConfigDict(frozen=True)


class DefaultTemplateProvider:
    """
    Holds the process-wide DefaultConfigTemplate and reloads it on demand.

    A template that fails validation is never installed: ``load`` raises
    ConfigInvalidError and the previously loaded template stays current.
    """

    def __init__(self, path: Optional[str] = None, document: Optional[Dict[str, Any]] = None):
        if path is None and document is None:
            raise ValueError("DefaultTemplateProvider needs a template path or document.")
        self.path = path
        self._document = document
        self._template: Optional[DefaultConfigTemplate] = None
        self._revision = 0

    @property
    def current(self) -> DefaultConfigTemplate:
        if self._template is None:
            raise RuntimeError("Default configuration template not loaded. Call load() first.")
        return self._template

    def _read_document(self) -> Dict[str, Any]:
        if self.path is None:
            return copy.deepcopy(self._document)
        with Path(self.path).open("r", encoding="utf-8") as fh:
            return json.load(fh)

    def load(self) -> DefaultConfigTemplate:
        """Read and validate the template, then install it as current."""
        source = self.path or "<in-memory>"
        logger.info(f"Loading default configuration template from {source}")
        document = self._read_document()

        report = validate_config(document)
        if not report.valid:
            logger.error(
                f"Default configuration template {source} is invalid: "
                + "; ".join(str(issue) for issue in report.issues)
            )
            raise ConfigInvalidError(TEMPLATE_SLUG, report.issues)

        self._revision += 1
        self._template = DefaultConfigTemplate(
            document=document,
            config=report.config,
            source=source,
            loaded_at=datetime.now(timezone.utc),
            revision=self._revision,
        )
        logger.info(f"Default configuration template revision {self._revision} installed.")
        return self._template

    reload = load
