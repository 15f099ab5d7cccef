"""
Label/Selector Fabric do readyset-chart.

Labels de identidade por componente e selectors derivados por projeção.
"""

from .fabric import (
    ADAPTER,
    COMPONENTS,
    CONSUL_SERVER,
    SELECTOR_KEYS,
    SERVER,
    IdentityLabels,
    LabelFabric,
)

__all__ = [
    "ADAPTER",
    "COMPONENTS",
    "CONSUL_SERVER",
    "SELECTOR_KEYS",
    "SERVER",
    "IdentityLabels",
    "LabelFabric",
]
