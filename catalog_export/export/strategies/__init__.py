"""Built-in export strategies.  Importing this package registers them."""

from catalog_export.export.strategies.authority import AuthorityExportStrategy
from catalog_export.export.strategies.instance import InstanceExportStrategy

__all__ = ["AuthorityExportStrategy", "InstanceExportStrategy"]
