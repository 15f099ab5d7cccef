# src/readyset_chart/core/harness/rules.py
"""
Regras estruturais do Render-and-Validate Harness.

Cada regra recebe o Render Output e a configuração efetiva que o gerou
e levanta `StructuralInvariantViolation` na primeira violação encontrada.
As regras leem o output **como um consumidor externo leria**: nenhuma
delas reutiliza as funções do Assembler para obter valores esperados,
exceto quando o valor esperado é, por definição, a configuração efetiva.

Regras (ordem fixa de avaliação em `DEFAULT_RULES`):
    - unique-identities      → nenhum par (kind, namespace, name) se repete
    - namespace-consistency  → todo documento vive no namespace efetivo
    - label-selector-subset  → selectors ⊆ labels dos pods selecionados
    - port-agreement         → Service port == targetPort == containerPort homônimo
    - discovery-wiring       → AUTHORITY_ADDRESS aponta para Service/porta existentes
    - reference-integrity    → ServiceAccount, ConfigMap, serviceName e mounts existem
    - secret-by-reference    → UPSTREAM_DB_URL sempre via secretKeyRef

Limites explícitos:
    - Não renderiza nem resolve values
    - Não corrige o output
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Tuple

from readyset_chart.core.config.effective import EffectiveConfig
from readyset_chart.core.exceptions import StructuralInvariantViolation
from readyset_chart.core.topology.resources import RenderOutput, ResourceDocument, thaw


WORKLOAD_KINDS: Tuple[str, ...] = ("Deployment", "StatefulSet")

Check = Callable[[RenderOutput, EffectiveConfig], None]


@dataclass(frozen=True)
class Rule:
    """Regra nomeada do harness."""

    name: str
    check: Check = field(compare=False)

    def __call__(self, output: RenderOutput, effective: EffectiveConfig) -> None:
        self.check(output, effective)


# -----------------------------
# Navegação no output
# -----------------------------

def _workloads(output: RenderOutput) -> Tuple[ResourceDocument, ...]:
    return output.of_kind(*WORKLOAD_KINDS)


def _pod_labels(workload: ResourceDocument) -> Mapping[str, str]:
    return workload.spec["template"]["metadata"]["labels"]


def _pod_spec(workload: ResourceDocument) -> Mapping[str, Any]:
    return workload.spec["template"]["spec"]


def _containers(workload: ResourceDocument) -> Iterator[Mapping[str, Any]]:
    return iter(_pod_spec(workload).get("containers", ()))


def _is_subset(selector: Mapping[str, str], labels: Mapping[str, str]) -> bool:
    return all(labels.get(k) == v for k, v in selector.items())


def _selected_workloads(service: ResourceDocument, output: RenderOutput) -> List[ResourceDocument]:
    selector = service.spec.get("selector") or {}
    if not selector:
        return []
    return [w for w in _workloads(output) if _is_subset(selector, _pod_labels(w))]


def _violation(rule: str, pair: Tuple[str, ...], key_path: str, expected: Any, actual: Any) -> StructuralInvariantViolation:
    return StructuralInvariantViolation.for_rule(
        rule,
        resource_pair=pair,
        key_path=key_path,
        expected=thaw(expected),
        actual=thaw(actual),
    )


# -----------------------------
# Regras
# -----------------------------

def check_unique_identities(output: RenderOutput, effective: EffectiveConfig) -> None:
    seen: Dict[Tuple[str, str, str], ResourceDocument] = {}
    for doc in output:
        key = (doc.kind, doc.namespace, doc.name)
        if key in seen:
            raise _violation(
                "unique-identities",
                (seen[key].identity, doc.identity),
                "metadata.name",
                "identidade única por kind/namespace",
                doc.name,
            )
        seen[key] = doc


def check_namespace_consistency(output: RenderOutput, effective: EffectiveConfig) -> None:
    for doc in output:
        if doc.namespace != effective.namespace:
            raise _violation(
                "namespace-consistency",
                (doc.identity,),
                "metadata.namespace",
                effective.namespace,
                doc.namespace,
            )


def check_label_selector_subset(output: RenderOutput, effective: EffectiveConfig) -> None:
    rule = "label-selector-subset"
    for workload in _workloads(output):
        match = workload.spec["selector"]["matchLabels"]
        labels = _pod_labels(workload)
        if not match or not _is_subset(match, labels):
            raise _violation(rule, (workload.identity,), "spec.selector.matchLabels", labels, match)
        if not _is_subset(match, workload.labels):
            raise _violation(rule, (workload.identity,), "metadata.labels", match, workload.labels)

    for service in output.of_kind("Service"):
        selector = service.spec.get("selector") or {}
        if not _selected_workloads(service, output):
            raise _violation(
                rule,
                (service.identity,),
                "spec.selector",
                "selector contido nos labels de ao menos um pod template",
                selector,
            )


def check_port_agreement(output: RenderOutput, effective: EffectiveConfig) -> None:
    rule = "port-agreement"
    for service in output.of_kind("Service"):
        for workload in _selected_workloads(service, output):
            declared: Dict[str, Mapping[str, Any]] = {}
            for container in _containers(workload):
                for port in container.get("ports", ()):
                    declared.setdefault(port["name"], port)

            for port in service.spec.get("ports", ()):
                pair = (service.identity, workload.identity)
                name = port["name"]
                if port["port"] != port["targetPort"]:
                    raise _violation(rule, pair, f"spec.ports[{name}].targetPort", port["port"], port["targetPort"])
                target = declared.get(name)
                if target is None:
                    raise _violation(rule, pair, f"containers[].ports[{name}]", name, sorted(declared))
                if target["containerPort"] != port["targetPort"]:
                    raise _violation(
                        rule, pair, f"containers[].ports[{name}].containerPort",
                        port["targetPort"], target["containerPort"],
                    )
                if target.get("protocol", "TCP") != port.get("protocol", "TCP"):
                    raise _violation(
                        rule, pair, f"containers[].ports[{name}].protocol",
                        port.get("protocol", "TCP"), target.get("protocol", "TCP"),
                    )

    # portas não podem colidir dentro de um mesmo pod
    for workload in _workloads(output):
        bound: Dict[Tuple[int, str], str] = {}
        for container in _containers(workload):
            for port in container.get("ports", ()):
                key = (port["containerPort"], port.get("protocol", "TCP"))
                owner = f"{container['name']}/{port['name']}"
                if key in bound:
                    raise _violation(
                        rule, (workload.identity,), f"containers[{container['name']}].ports[{port['name']}]",
                        "porta livre no pod", f"{key[0]}/{key[1]} já usada por {bound[key]}",
                    )
                bound[key] = owner


def _env(container: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    for item in container.get("env", ()):
        if item["name"] == name:
            return item
    return {}


def check_discovery_wiring(output: RenderOutput, effective: EffectiveConfig) -> None:
    rule = "discovery-wiring"
    for workload in _workloads(output):
        for container in _containers(workload):
            item = _env(container, "AUTHORITY_ADDRESS")
            if not item:
                continue
            address = item.get("value", "")
            pair = (workload.identity,)
            key_path = f"containers[{container['name']}].env[AUTHORITY_ADDRESS]"

            if not effective["consul.enabled"]:
                if address != effective["consul.externalAddress"]:
                    raise _violation(rule, pair, key_path, effective["consul.externalAddress"], address)
                continue

            host, _, port = address.rpartition(":")
            try:
                service = output.find("Service", host)
            except KeyError:
                raise _violation(rule, pair, key_path, "Service de descoberta existente", address) from None

            ports = [p["port"] for p in service.spec.get("ports", ())]
            if not port.isdigit() or int(port) not in ports:
                raise _violation(rule, (workload.identity, service.identity), key_path, ports, address)


def check_reference_integrity(output: RenderOutput, effective: EffectiveConfig) -> None:
    rule = "reference-integrity"
    for workload in _workloads(output):
        pod = _pod_spec(workload)

        account = pod.get("serviceAccountName")
        if account:
            try:
                output.find("ServiceAccount", account)
            except KeyError:
                raise _violation(rule, (workload.identity,), "spec.template.spec.serviceAccountName",
                                 f"ServiceAccount/{account}", None) from None

        for volume in pod.get("volumes", ()):
            source = volume.get("configMap")
            if not source:
                continue
            try:
                configmap = output.find("ConfigMap", source["name"])
            except KeyError:
                raise _violation(rule, (workload.identity,), f"volumes[{volume['name']}].configMap",
                                 f"ConfigMap/{source['name']}", None) from None
            for item in source.get("items", ()):
                if item["key"] not in configmap.spec:
                    raise _violation(rule, (workload.identity, configmap.identity),
                                     f"volumes[{volume['name']}].configMap.items",
                                     item["key"], sorted(configmap.spec))

        if workload.kind == "StatefulSet":
            try:
                output.find("Service", workload.spec["serviceName"])
            except KeyError:
                raise _violation(rule, (workload.identity,), "spec.serviceName",
                                 f"Service/{workload.spec['serviceName']}", None) from None

        volumes = {v["name"] for v in pod.get("volumes", ())}
        volumes |= {c["metadata"]["name"] for c in workload.spec.get("volumeClaimTemplates", ())}
        for container in _containers(workload):
            for mount in container.get("volumeMounts", ()):
                if mount["name"] not in volumes:
                    raise _violation(rule, (workload.identity,),
                                     f"containers[{container['name']}].volumeMounts",
                                     sorted(volumes), mount["name"])


def check_secret_by_reference(output: RenderOutput, effective: EffectiveConfig) -> None:
    rule = "secret-by-reference"
    expected = {
        "name": effective["readyset.upstreamDatabase.secretName"],
        "key": effective["readyset.upstreamDatabase.secretKey"],
    }
    for workload in _workloads(output):
        for container in _containers(workload):
            item = _env(container, "UPSTREAM_DB_URL")
            if not item:
                continue
            key_path = f"containers[{container['name']}].env[UPSTREAM_DB_URL]"
            if "value" in item:
                raise _violation(rule, (workload.identity,), key_path, "secretKeyRef", "<literal>")
            ref = (item.get("valueFrom") or {}).get("secretKeyRef")
            if not ref or dict(ref) != expected:
                raise _violation(rule, (workload.identity,), key_path, expected, ref)


DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule("unique-identities", check_unique_identities),
    Rule("namespace-consistency", check_namespace_consistency),
    Rule("label-selector-subset", check_label_selector_subset),
    Rule("port-agreement", check_port_agreement),
    Rule("discovery-wiring", check_discovery_wiring),
    Rule("reference-integrity", check_reference_integrity),
    Rule("secret-by-reference", check_secret_by_reference),
)
