"""
Topology Assembler do readyset-chart.

Documentos de recurso, cluster de descoberta e montagem do Render Output.
"""

from .assembler import assemble, component_name, component_ports
from .discovery import DiscoveryEndpoint, discovery_service_name, resolve_discovery_endpoint
from .resources import RenderOutput, ResourceDocument, render_yaml

__all__ = [
    "DiscoveryEndpoint",
    "RenderOutput",
    "ResourceDocument",
    "assemble",
    "component_name",
    "component_ports",
    "discovery_service_name",
    "render_yaml",
    "resolve_discovery_endpoint",
]
