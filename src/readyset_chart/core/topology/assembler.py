# src/readyset_chart/core/topology/assembler.py
"""
Topology Assembler do readyset-chart.

Este módulo consome a configuração efetiva e a Label/Selector Fabric e
emite o grafo de recursos de uma renderização, em ordem determinística.

Ordem de emissão:
    1. ServiceAccounts (server, adapter)
    2. ConfigMap do agente consul
    3. Service headless + StatefulSet do cluster de descoberta (se habilitado)
    4. Service + StatefulSet do server
    5. Service + Deployment do adapter

Decisões arquiteturais:
    - Cada número de porta é lido **uma vez** da configuração efetiva e
      usado para `port`, `targetPort` e `containerPort` do mesmo nome
    - Selectors de Services e workloads vêm sempre de `fabric.selector()`
    - `AUTHORITY_ADDRESS` vem de `resolve_discovery_endpoint`, antes de
      qualquer documento ser emitido
    - A credencial do banco upstream é sempre consumida por `secretKeyRef`

Invariantes:
    - A mesma configuração efetiva produz o mesmo Render Output
    - Referências cruzadas não resolvidas abortam a montagem

Limites explícitos:
    - Não resolve values (responsabilidade do Resolver)
    - Não valida invariantes do output (responsabilidade do Harness)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from readyset_chart.core.config.effective import EffectiveConfig
from readyset_chart.core.labels.fabric import ADAPTER, SERVER, LabelFabric

from .discovery import (
    AUTHORITY,
    DiscoveryEndpoint,
    agent_configmap,
    agent_sidecar,
    agent_volume,
    consul_server_documents,
    resolve_discovery_endpoint,
)
from .resources import (
    RenderOutput,
    ResourceDocument,
    container_port,
    env_field,
    env_secret,
    env_value,
    exec_probe,
    resource_requests,
    service_port,
)


MONITORING_PORT = "monitoring"
STATE_DIR = "/state"
STATE_VOLUME = "state"
# identifica o tipo de instalação para o telemetry reporter do adapter
DEPLOYMENT_ENV = "helm"

LOAD_BALANCER_ANNOTATIONS: Dict[str, str] = {
    "service.beta.kubernetes.io/aws-load-balancer-type": "external",
    "service.beta.kubernetes.io/aws-load-balancer-nlb-target-type": "ip",
    "service.beta.kubernetes.io/aws-load-balancer-scheme": "internet-facing",
}

SECURITY_CONTEXT: Dict[str, int] = {"runAsUser": 1000, "runAsGroup": 1000, "fsGroup": 1000}


def component_name(effective: EffectiveConfig, component: str) -> str:
    return f"{effective.release_name}-{component}"


def component_ports(effective: EffectiveConfig, component: str) -> List[Tuple[str, int]]:
    """Portas nomeadas expostas por um componente, na ordem de emissão."""
    if component == SERVER:
        return [(MONITORING_PORT, effective["readyset.server.httpPort"])]
    if component == ADAPTER:
        return [
            (effective["readyset.adapter.type"], effective["readyset.adapter.port"]),
            (MONITORING_PORT, effective["readyset.adapter.httpPort"]),
        ]
    raise KeyError(f"Componente sem portas declaradas: {component}")


def _health_probes(http_port: int) -> Dict[str, Any]:
    check = f"curl --fail http://127.0.0.1:{http_port}/health"
    return {
        "readinessProbe": exec_probe(check),
        "livenessProbe": exec_probe(check, initialDelaySeconds=5, periodSeconds=5, failureThreshold=2),
    }


def _image(effective: EffectiveConfig, component: str, image_name: str) -> str:
    root = f"readyset.{component}.image"
    return f"{effective[root + '.repository']}/{image_name}:{effective[root + '.tag']}"


def _upstream_db_url(effective: EffectiveConfig) -> Dict[str, Any]:
    return env_secret(
        "UPSTREAM_DB_URL",
        secret=effective["readyset.upstreamDatabase.secretName"],
        key=effective["readyset.upstreamDatabase.secretKey"],
    )


def _service_account(effective: EffectiveConfig, fabric: LabelFabric, component: str) -> ResourceDocument:
    return ResourceDocument.create(
        api_version="v1",
        kind="ServiceAccount",
        name=component_name(effective, component),
        namespace=effective.namespace,
        labels=fabric.labels(component),
        body_key=None,
    )


def _service(effective: EffectiveConfig, fabric: LabelFabric, component: str) -> ResourceDocument:
    identity = fabric.identity(component)
    exposed = effective[f"readyset.{component}.ingress.enabled"]
    return ResourceDocument.create(
        api_version="v1",
        kind="Service",
        name=component_name(effective, component),
        namespace=effective.namespace,
        labels=identity.labels,
        annotations=LOAD_BALANCER_ANNOTATIONS if exposed else None,
        spec={
            "type": "LoadBalancer" if exposed else "ClusterIP",
            "selector": dict(identity.selector),
            "ports": [service_port(n, p) for n, p in component_ports(effective, component)],
        },
    )


def _pod_template(
    effective: EffectiveConfig,
    fabric: LabelFabric,
    component: str,
    container: Dict[str, Any],
) -> Dict[str, Any]:
    return {
        "metadata": {"labels": dict(fabric.labels(component))},
        "spec": {
            "serviceAccountName": component_name(effective, component),
            "securityContext": dict(SECURITY_CONTEXT),
            "containers": [container, agent_sidecar(effective)],
            "volumes": [agent_volume(effective)],
        },
    }


# -----------------------------
# server
# -----------------------------

def _server_container(effective: EffectiveConfig, endpoint: DiscoveryEndpoint) -> Dict[str, Any]:
    http_port = effective["readyset.server.httpPort"]
    container = {
        "name": component_name(effective, SERVER),
        "image": _image(effective, SERVER, "readyset-server"),
        "imagePullPolicy": "Always",
        "env": [
            env_value("LISTEN_ADDRESS", f"0.0.0.0:{http_port}"),
            env_field("EXTERNAL_ADDRESS", "status.podIP"),
            _upstream_db_url(effective),
            env_value("DEPLOYMENT", effective["readyset.deployment"]),
            env_value("AUTHORITY", AUTHORITY),
            env_value("AUTHORITY_ADDRESS", endpoint.address),
            env_value("DB_DIR", STATE_DIR),
            env_value("LOG_FORMAT", "json"),
        ],
        "ports": [container_port(n, p) for n, p in component_ports(effective, SERVER)],
        "resources": resource_requests(
            effective["readyset.server.resources.requests.cpu"],
            effective["readyset.server.resources.requests.memory"],
        ),
        "volumeMounts": [{"name": STATE_VOLUME, "mountPath": STATE_DIR}],
    }
    container.update(_health_probes(http_port))
    return container


def _server_documents(
    effective: EffectiveConfig,
    fabric: LabelFabric,
    endpoint: DiscoveryEndpoint,
) -> Tuple[ResourceDocument, ResourceDocument]:
    name = component_name(effective, SERVER)
    identity = fabric.identity(SERVER)

    claim: Dict[str, Any] = {
        "metadata": {"name": STATE_VOLUME},
        "spec": {
            "accessModes": ["ReadWriteOnce"],
            "resources": {
                "requests": {"storage": effective["readyset.server.resources.requests.storage"]},
            },
        },
    }
    if effective["kubernetes.storageClass"]:
        claim["spec"]["storageClassName"] = effective["kubernetes.storageClass"]

    statefulset = ResourceDocument.create(
        api_version="apps/v1",
        kind="StatefulSet",
        name=name,
        namespace=effective.namespace,
        labels=identity.labels,
        spec={
            "serviceName": name,
            "replicas": effective["readyset.server.replicas"],
            "selector": {"matchLabels": dict(identity.selector)},
            "template": _pod_template(effective, fabric, SERVER, _server_container(effective, endpoint)),
            "volumeClaimTemplates": [claim],
        },
    )
    return _service(effective, fabric, SERVER), statefulset


# -----------------------------
# adapter
# -----------------------------

def _adapter_container(effective: EffectiveConfig, endpoint: DiscoveryEndpoint) -> Dict[str, Any]:
    port = effective["readyset.adapter.port"]
    http_port = effective["readyset.adapter.httpPort"]
    container = {
        "name": component_name(effective, ADAPTER),
        "image": _image(effective, ADAPTER, "readyset"),
        "imagePullPolicy": "Always",
        "env": [
            env_value("LISTEN_ADDRESS", f"0.0.0.0:{port}"),
            _upstream_db_url(effective),
            env_value("LOG_FORMAT", "json"),
            env_value("DEPLOYMENT", effective["readyset.deployment"]),
            env_value("DEPLOYMENT_ENV", DEPLOYMENT_ENV),
            env_value("DATABASE_TYPE", effective["readyset.adapter.type"]),
            env_value("AUTHORITY", AUTHORITY),
            env_value("AUTHORITY_ADDRESS", endpoint.address),
            env_value("METRICS_ADDRESS", f"0.0.0.0:{http_port}"),
            env_value("PROMETHEUS_METRICS", True),
            env_value("QUERY_LOG", effective["readyset.adapter.queryLog"]),
            env_value("RUST_BACKTRACE", 1),
            env_value("VIEWS_POLLING_INTERVAL", effective["readyset.adapter.viewsPollingInterval"]),
        ],
        "ports": [container_port(n, p) for n, p in component_ports(effective, ADAPTER)],
        "resources": resource_requests(
            effective["readyset.adapter.resources.requests.cpu"],
            effective["readyset.adapter.resources.requests.memory"],
        ),
    }
    container.update(_health_probes(http_port))
    return container


def _adapter_documents(
    effective: EffectiveConfig,
    fabric: LabelFabric,
    endpoint: DiscoveryEndpoint,
) -> Tuple[ResourceDocument, ResourceDocument]:
    identity = fabric.identity(ADAPTER)
    deployment = ResourceDocument.create(
        api_version="apps/v1",
        kind="Deployment",
        name=component_name(effective, ADAPTER),
        namespace=effective.namespace,
        labels=identity.labels,
        spec={
            "replicas": effective["readyset.adapter.replicas"],
            "strategy": {
                "type": "RollingUpdate",
                "rollingUpdate": {"maxSurge": "50%", "maxUnavailable": "25%"},
            },
            "selector": {"matchLabels": dict(identity.selector)},
            "template": _pod_template(effective, fabric, ADAPTER, _adapter_container(effective, endpoint)),
        },
    )
    return _service(effective, fabric, ADAPTER), deployment


def assemble(effective: EffectiveConfig, fabric: Optional[LabelFabric] = None) -> RenderOutput:
    """
    Monta o Render Output a partir da configuração efetiva.

    Args:
        effective: configuração efetiva produzida pelo Resolver.
        fabric: Label/Selector Fabric; derivada de `effective` quando omitida.

    Returns:
        RenderOutput: documentos na ordem de emissão do módulo.

    Raises:
        UnresolvedCrossReference: endereço de autoridade não derivável.
    """
    fabric = fabric or LabelFabric(effective)
    endpoint = resolve_discovery_endpoint(
        effective,
        required_by=f"{component_name(effective, SERVER)},{component_name(effective, ADAPTER)}",
    )

    documents: List[ResourceDocument] = [
        _service_account(effective, fabric, SERVER),
        _service_account(effective, fabric, ADAPTER),
        agent_configmap(effective, fabric, endpoint),
    ]
    if endpoint.in_cluster:
        documents.extend(consul_server_documents(effective, fabric))
    documents.extend(_server_documents(effective, fabric, endpoint))
    documents.extend(_adapter_documents(effective, fabric, endpoint))
    return RenderOutput(tuple(documents))
