# src/readyset_chart/core/topology/discovery.py
"""
Discovery Cluster (consul) do readyset-chart.

Este módulo concentra tudo que o restante da topologia precisa saber
sobre o cluster de descoberta: o endereço de autoridade consumido pelos
componentes, o sidecar de agente injetado nos pods e os recursos do
próprio cluster (Service headless + StatefulSet).

Decisões arquiteturais:
    - O endereço de autoridade é derivado da convenção de nomes
      (`<release>-consul-server:<httpPort>`), nunca digitado pelo operador
    - Com `consul.enabled=false` o endereço cai para `consul.externalAddress`;
      sem ele a montagem falha com `UnresolvedCrossReference`
    - O agente sidecar é um colaborador opaco: apenas o contrato de health
      (`127.0.0.1:8500/v1/health/node/<node>`) é modelado aqui

Invariantes:
    - O nome do Service do cluster e o endereço de autoridade vêm da mesma função
    - Portas do Service headless e do container consul vêm dos mesmos valores

Limites explícitos:
    - Não monta os workloads dos componentes (responsabilidade do Assembler)
    - Não valida o output renderizado
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from readyset_chart.core.config.effective import EffectiveConfig
from readyset_chart.core.exceptions import UnresolvedCrossReference
from readyset_chart.core.labels.fabric import CONSUL_SERVER, LabelFabric

from .resources import (
    ResourceDocument,
    container_port,
    env_field,
    env_value,
    exec_probe,
    service_port,
)


AUTHORITY = "consul"

AGENT_CONTAINER = "consul-agent"
AGENT_HTTP_PORT = 8500
AGENT_SERF_LAN_PORT = 8301
AGENT_DNS_PORT = 8600
AGENT_VOLUME = "consul-agent-entrypoint"
AGENT_ENTRYPOINT = "entrypoint.sh"
AGENT_MOUNT_PATH = "/usr/src/app"
AGENT_HEALTH_CHECK = (
    f"curl http://127.0.0.1:{AGENT_HTTP_PORT}/v1/health/node/$(hostname) 2>/dev/null"
    " | grep -E '\".+\"'"
)

CONSUL_DATA_DIR = "/consul/data"
CONSUL_DATA_VOLUME = "data"


@dataclass(frozen=True)
class DiscoveryEndpoint:
    """Endereço de autoridade resolvido para os componentes."""

    address: str
    service_name: Optional[str] = None
    port: Optional[int] = None

    @property
    def in_cluster(self) -> bool:
        return self.service_name is not None

    @property
    def host(self) -> str:
        return self.address.rsplit(":", 1)[0] if ":" in self.address else self.address


def discovery_service_name(effective: EffectiveConfig) -> str:
    return f"{effective.release_name}-consul-server"


def agent_configmap_name(effective: EffectiveConfig) -> str:
    return f"{effective.release_name}-consul-agent-cm"


def resolve_discovery_endpoint(effective: EffectiveConfig, *, required_by: str) -> DiscoveryEndpoint:
    """
    Resolve o endereço de autoridade usado por `AUTHORITY_ADDRESS`.

    Raises:
        UnresolvedCrossReference: cluster desabilitado e sem endereço externo.
    """
    if effective["consul.enabled"]:
        name = discovery_service_name(effective)
        port = effective["consul.server.httpPort"]
        return DiscoveryEndpoint(address=f"{name}:{port}", service_name=name, port=port)

    external = effective["consul.externalAddress"]
    if external:
        return DiscoveryEndpoint(address=external)

    raise UnresolvedCrossReference.for_reference(
        "AUTHORITY_ADDRESS",
        required_by=required_by,
        hint="Habilite consul.enabled ou informe consul.externalAddress",
    )


# -----------------------------
# Agente sidecar
# -----------------------------

def _retry_join_target(effective: EffectiveConfig, endpoint: DiscoveryEndpoint) -> str:
    if endpoint.in_cluster:
        return (
            f"{endpoint.service_name}.{effective.namespace}.svc"
            f":{effective['consul.server.serfLanPort']}"
        )
    return endpoint.host


def agent_entrypoint(effective: EffectiveConfig, endpoint: DiscoveryEndpoint) -> str:
    join = _retry_join_target(effective, endpoint)
    return "\n".join([
        "#!/bin/sh",
        "exec /usr/local/bin/docker-entrypoint.sh consul agent \\",
        '  -node="${MY_POD_NAME}" \\',
        '  -advertise="${ADVERTISE_IP}" \\',
        "  -bind=0.0.0.0 \\",
        "  -client=0.0.0.0 \\",
        f"  -data-dir={CONSUL_DATA_DIR} \\",
        "  -hcl='leave_on_terminate = true' \\",
        f'  -retry-join="{join}"',
        "",
    ])


def agent_configmap(
    effective: EffectiveConfig,
    fabric: LabelFabric,
    endpoint: DiscoveryEndpoint,
) -> ResourceDocument:
    return ResourceDocument.create(
        api_version="v1",
        kind="ConfigMap",
        name=agent_configmap_name(effective),
        namespace=effective.namespace,
        labels=fabric.labels(CONSUL_SERVER),
        spec={AGENT_ENTRYPOINT: agent_entrypoint(effective, endpoint)},
        body_key="data",
    )


def agent_volume(effective: EffectiveConfig) -> Dict[str, Any]:
    return {
        "name": AGENT_VOLUME,
        "configMap": {
            "name": agent_configmap_name(effective),
            "items": [{"key": AGENT_ENTRYPOINT, "path": AGENT_ENTRYPOINT}],
        },
    }


def agent_sidecar(effective: EffectiveConfig) -> Dict[str, Any]:
    """Container do agente consul injetado nos pods de server e adapter."""
    return {
        "name": AGENT_CONTAINER,
        "image": effective["consul.image"],
        "imagePullPolicy": "IfNotPresent",
        "command": ["/bin/sh", f"{AGENT_MOUNT_PATH}/{AGENT_ENTRYPOINT}"],
        "env": [
            env_field("MY_POD_NAME", "metadata.name"),
            env_field("ADVERTISE_IP", "status.podIP"),
            env_field("HOST_IP", "status.hostIP"),
            env_value("CONSUL_SERVER_NAMESPACE", effective.namespace),
        ],
        "ports": [
            container_port("http", AGENT_HTTP_PORT),
            container_port("serflan-tcp", AGENT_SERF_LAN_PORT),
            container_port("serflan-udp", AGENT_SERF_LAN_PORT, "UDP"),
            container_port("dns-tcp", AGENT_DNS_PORT),
            container_port("dns-udp", AGENT_DNS_PORT, "UDP"),
        ],
        "readinessProbe": exec_probe(AGENT_HEALTH_CHECK),
        "volumeMounts": [{"name": AGENT_VOLUME, "mountPath": AGENT_MOUNT_PATH}],
    }


# -----------------------------
# Cluster de descoberta
# -----------------------------

def _consul_ports(effective: EffectiveConfig) -> List[Tuple[str, int, str]]:
    http = effective["consul.server.httpPort"]
    serf = effective["consul.server.serfLanPort"]
    rpc = effective["consul.server.rpcPort"]
    dns = effective["consul.server.dnsPort"]
    return [
        ("http", http, "TCP"),
        ("serflan-tcp", serf, "TCP"),
        ("serflan-udp", serf, "UDP"),
        ("server", rpc, "TCP"),
        ("dns-tcp", dns, "TCP"),
        ("dns-udp", dns, "UDP"),
    ]


def _consul_args(effective: EffectiveConfig) -> List[str]:
    name = discovery_service_name(effective)
    ns = effective.namespace
    args = [
        "agent",
        "-server",
        f"-bootstrap-expect={effective['consul.server.bootstrapExpect']}",
        "-client=0.0.0.0",
        "-advertise=$(POD_IP)",
        f"-data-dir={CONSUL_DATA_DIR}",
        f"-http-port={effective['consul.server.httpPort']}",
        f"-serf-lan-port={effective['consul.server.serfLanPort']}",
        f"-server-port={effective['consul.server.rpcPort']}",
        f"-dns-port={effective['consul.server.dnsPort']}",
        "-ui",
    ]
    for i in range(effective["consul.server.replicas"]):
        args.append(f"-retry-join={name}-{i}.{name}.{ns}.svc")
    return args


def consul_server_documents(
    effective: EffectiveConfig,
    fabric: LabelFabric,
) -> Tuple[ResourceDocument, ResourceDocument]:
    """Service headless e StatefulSet do cluster de descoberta."""
    name = discovery_service_name(effective)
    identity = fabric.identity(CONSUL_SERVER)
    ports = _consul_ports(effective)
    http = effective["consul.server.httpPort"]

    service = ResourceDocument.create(
        api_version="v1",
        kind="Service",
        name=name,
        namespace=effective.namespace,
        labels=identity.labels,
        spec={
            "clusterIP": "None",
            "publishNotReadyAddresses": True,
            "selector": dict(identity.selector),
            "ports": [service_port(n, p, proto) for n, p, proto in ports],
        },
    )

    claim: Dict[str, Any] = {
        "metadata": {"name": CONSUL_DATA_VOLUME},
        "spec": {
            "accessModes": ["ReadWriteOnce"],
            "resources": {"requests": {"storage": effective["consul.server.storage"]}},
        },
    }
    if effective["kubernetes.storageClass"]:
        claim["spec"]["storageClassName"] = effective["kubernetes.storageClass"]

    container = {
        "name": "consul",
        "image": effective["consul.image"],
        "imagePullPolicy": "IfNotPresent",
        "args": _consul_args(effective),
        "env": [env_field("POD_IP", "status.podIP")],
        "ports": [container_port(n, p, proto) for n, p, proto in ports],
        "readinessProbe": exec_probe(
            f"curl http://127.0.0.1:{http}/v1/status/leader 2>/dev/null | grep -E '\".+\"'",
            initialDelaySeconds=5,
            periodSeconds=5,
        ),
        "resources": {
            "requests": {
                "cpu": effective["consul.server.resources.requests.cpu"],
                "memory": effective["consul.server.resources.requests.memory"],
            },
            "limits": {
                "cpu": effective["consul.server.resources.limits.cpu"],
                "memory": effective["consul.server.resources.limits.memory"],
            },
        },
        "volumeMounts": [{"name": CONSUL_DATA_VOLUME, "mountPath": CONSUL_DATA_DIR}],
    }

    statefulset = ResourceDocument.create(
        api_version="apps/v1",
        kind="StatefulSet",
        name=name,
        namespace=effective.namespace,
        labels=identity.labels,
        spec={
            "serviceName": name,
            "replicas": effective["consul.server.replicas"],
            "podManagementPolicy": "Parallel",
            "selector": {"matchLabels": dict(identity.selector)},
            "template": {
                "metadata": {"labels": dict(identity.labels)},
                "spec": {
                    "securityContext": {"runAsUser": 100, "runAsGroup": 1000, "fsGroup": 1000},
                    "containers": [container],
                },
            },
            "volumeClaimTemplates": [claim],
        },
    )
    return service, statefulset
