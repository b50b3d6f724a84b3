"""Qt item models over the engine's view state."""

from .catalog_list_model import CatalogListModel
from .roles import Roles, role_names

__all__ = ["CatalogListModel", "Roles", "role_names"]
