# tenant_overlay/theme/assets.py
import re
from pathlib import Path

from ..errors import AssetNotFoundError, InvalidAssetPathError

ASSET_CATEGORIES = ("logos", "icons", "fonts", "images")
DEFAULT_BRAND_ID = "default"
BRAND_ID_REGEX = re.compile(r"^[A-Za-z0-9_-]+$")
FILENAME_REGEX = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")
ASSET_URL_PREFIX = "/brand-identity/brand"


def asset_url(category: str, filename: str, brand_id: str = DEFAULT_BRAND_ID) -> str:
    return f"{ASSET_URL_PREFIX}/{brand_id}/{category}/{filename}"


class BrandAssetResolver:
    """
    Maps ``(tenant slug, brand id, category, filename)`` to a file under
    ``<root>/<slug>/<brand id>/<category>/``. Nothing outside the tenant's
    own directory can be addressed.
    """

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def resolve(self, slug: str, brand_id: str, category: str, filename: str) -> Path:
        """
        Raises:
            InvalidAssetPathError: malformed brand id, unknown category or a traversal attempt
            AssetNotFoundError: the path is valid but no such file exists
        """
        if not BRAND_ID_REGEX.match(brand_id):
            raise InvalidAssetPathError("Invalid brand id format.")
        if not BRAND_ID_REGEX.match(slug):
            raise InvalidAssetPathError("Invalid tenant slug format.")
        if category not in ASSET_CATEGORIES:
            raise InvalidAssetPathError(f"Unknown asset category '{category}'.")
        if not FILENAME_REGEX.match(filename) or ".." in filename:
            raise InvalidAssetPathError("Invalid asset file name.")

        tenant_root = self.root / slug
        path = (tenant_root / brand_id / category / filename).resolve()
        if not path.is_relative_to(tenant_root.resolve()):
            raise InvalidAssetPathError("Invalid asset file name.")
        if not path.is_file():
            raise AssetNotFoundError()
        return path
