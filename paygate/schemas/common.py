"""
Schemas comunes y base para reutilización.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


# Bolsa de parámetros específicos del proveedor (3DMode, 3DParams, ...)
Params = dict[str, Any]


class BaseSchema(BaseModel):
    """Schema base con configuración común."""

    model_config = ConfigDict(
        from_attributes=True,  # Permite crear desde objetos del SDK
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def get_param(params: Params | None, key: str, default: Any = None) -> Any:
    """Lee una clave de la bolsa de parámetros tolerando None."""
    if not params:
        return default
    return params.get(key, default)
