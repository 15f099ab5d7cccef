# tests/core/topology/test_assembler.py
"""
Testes do Topology Assembler.

Este módulo valida o Render Output montado a partir da configuração
efetiva:
- ordem determinística dos documentos
- concordância de portas entre Service e container (por nome)
- wiring do endereço de autoridade sem input do operador
- credencial upstream sempre por referência
- tipo de Service conforme ingress

Decisões arquiteturais:
    - Os testes leem o output como um consumidor externo
    - Nenhum valor esperado é obtido das funções internas do Assembler

Limites explícitos:
    - Regras do harness são testadas em tests/core/harness
"""

import pytest

try:
    from readyset_chart.core.config.resolver import resolve_config
    from readyset_chart.core.exceptions import UnresolvedCrossReference
    from readyset_chart.core.topology.assembler import assemble
    from readyset_chart.core.topology.resources import render_yaml
except Exception as e:  # noqa: BLE001
    assemble = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """
    Garante que o Assembler e o emissor YAML estejam disponíveis.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing topology modules. Implement:\n"
            "- src/readyset_chart/core/topology/assembler.py (assemble)\n"
            "- src/readyset_chart/core/topology/resources.py (RenderOutput, render_yaml)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _values(minimal_values, **overrides):
    values = {"namespace": minimal_values["namespace"], "readyset": dict(minimal_values["readyset"])}
    for key, value in overrides.items():
        if key in ("adapter", "server"):
            values["readyset"][key] = value
        else:
            values[key] = value
    return values


def _container(doc, name):
    for c in doc.to_dict()["spec"]["template"]["spec"]["containers"]:
        if c["name"] == name:
            return c
    raise KeyError(name)


def _env(container):
    return {e["name"]: e for e in container["env"]}


def test_document_order_is_deterministic(effective):
    """
    Verifica a ordem de emissão documentada do Assembler.

    Invariantes:
        - ServiceAccounts, ConfigMap, consul, server e adapter, nessa ordem
        - Nomes prefixados pelo releaseName
    """
    _require_imports()
    output = assemble(effective)
    assert [d.identity for d in output] == [
        "ServiceAccount/readyset-server",
        "ServiceAccount/readyset-adapter",
        "ConfigMap/readyset-consul-agent-cm",
        "Service/readyset-consul-server",
        "StatefulSet/readyset-consul-server",
        "Service/readyset-server",
        "StatefulSet/readyset-server",
        "Service/readyset-adapter",
        "Deployment/readyset-adapter",
    ]
    assert all(d.namespace == "readyset" for d in output)


def test_default_render_is_byte_identical(effective, minimal_values):
    """Duas renderizações all-default produzem o mesmo hash e o mesmo YAML."""
    _require_imports()
    first = assemble(effective)
    second = assemble(resolve_config(minimal_values))
    assert first.digest() == second.digest()
    assert render_yaml(first) == render_yaml(second)


@pytest.mark.parametrize(
    "adapter, data_port_name, data_port",
    [
        ({"type": "mysql"}, "mysql", 3306),
        ({"type": "postgresql"}, "postgresql", 5432),
        ({"type": "postgresql", "port": "5433"}, "postgresql", 5433),
        ({"port": 6000}, "mysql", 6000),
    ],
)
def test_adapter_port_agreement(minimal_values, adapter, data_port_name, data_port):
    """
    Verifica que Service e container do adapter concordam na porta de dados.

    Invariantes:
        - Service port == targetPort == containerPort do mesmo nome
        - LISTEN_ADDRESS usa a mesma porta
    """
    _require_imports()
    output = assemble(resolve_config(_values(minimal_values, adapter=adapter)))
    service = output.find("Service", "readyset-adapter").to_dict()
    ports = {p["name"]: p for p in service["spec"]["ports"]}
    assert ports[data_port_name]["port"] == data_port
    assert ports[data_port_name]["targetPort"] == data_port
    assert ports["monitoring"]["port"] == 6034

    container = _container(output.find("Deployment", "readyset-adapter"), "readyset-adapter")
    declared = {p["name"]: p["containerPort"] for p in container["ports"]}
    assert declared == {data_port_name: data_port, "monitoring": 6034}
    env = _env(container)
    assert env["LISTEN_ADDRESS"]["value"] == f"0.0.0.0:{data_port}"
    assert env["DATABASE_TYPE"]["value"] == data_port_name


def test_server_port_override_propagates(minimal_values):
    _require_imports()
    output = assemble(resolve_config(_values(minimal_values, server={"httpPort": 7033})))
    service = output.find("Service", "readyset-server").to_dict()
    assert service["spec"]["ports"] == [
        {"name": "monitoring", "port": 7033, "targetPort": 7033, "protocol": "TCP"}
    ]
    container = _container(output.find("StatefulSet", "readyset-server"), "readyset-server")
    assert container["ports"][0]["containerPort"] == 7033
    assert _env(container)["LISTEN_ADDRESS"]["value"] == "0.0.0.0:7033"
    probe = container["readinessProbe"]["exec"]["command"][-1]
    assert "127.0.0.1:7033/health" in probe


def test_discovery_address_is_derived(effective):
    """
    Verifica o wiring do endereço de autoridade sem input do operador.

    O endereço usado pelos componentes aponta para o Service do cluster
    de descoberta e para uma porta declarada nele.
    """
    _require_imports()
    output = assemble(effective)
    consul = output.find("Service", "readyset-consul-server").to_dict()
    assert consul["spec"]["clusterIP"] == "None"
    assert {"name": "http", "port": 8500, "targetPort": 8500, "protocol": "TCP"} in consul["spec"]["ports"]

    for kind, name in (("StatefulSet", "readyset-server"), ("Deployment", "readyset-adapter")):
        env = _env(_container(output.find(kind, name), name))
        assert env["AUTHORITY_ADDRESS"]["value"] == "readyset-consul-server:8500"
        assert env["AUTHORITY"]["value"] == "consul"


def test_external_discovery_skips_consul_cluster(minimal_values):
    _require_imports()
    values = _values(minimal_values, consul={"enabled": False, "externalAddress": "consul.internal:8500"})
    output = assemble(resolve_config(values))
    assert not any(d.name == "readyset-consul-server" for d in output)
    env = _env(_container(output.find("Deployment", "readyset-adapter"), "readyset-adapter"))
    assert env["AUTHORITY_ADDRESS"]["value"] == "consul.internal:8500"
    entrypoint = output.find("ConfigMap", "readyset-consul-agent-cm").to_dict()["data"]["entrypoint.sh"]
    assert '-retry-join="consul.internal"' in entrypoint


def test_disabled_discovery_without_address_is_unresolved(minimal_values):
    _require_imports()
    with pytest.raises(UnresolvedCrossReference) as exc:
        assemble(resolve_config(_values(minimal_values, consul={"enabled": False})))
    assert exc.value.reference == "AUTHORITY_ADDRESS"


def test_upstream_url_is_secret_reference(effective):
    _require_imports()
    output = assemble(effective)
    for kind, name in (("StatefulSet", "readyset-server"), ("Deployment", "readyset-adapter")):
        item = _env(_container(output.find(kind, name), name))["UPSTREAM_DB_URL"]
        assert "value" not in item
        assert item["valueFrom"] == {
            "secretKeyRef": {"name": "readyset-upstream-database", "key": "url"}
        }


def test_adapter_environment_defaults(effective):
    _require_imports()
    env = _env(_container(assemble(effective).find("Deployment", "readyset-adapter"), "readyset-adapter"))
    assert env["LOG_FORMAT"]["value"] == "json"
    assert env["DEPLOYMENT"]["value"] == "readyset"
    assert env["DEPLOYMENT_ENV"]["value"] == "helm"
    assert env["METRICS_ADDRESS"]["value"] == "0.0.0.0:6034"
    assert env["PROMETHEUS_METRICS"]["value"] == "true"
    assert env["QUERY_LOG"]["value"] == "true"
    assert env["RUST_BACKTRACE"]["value"] == "1"
    assert env["VIEWS_POLLING_INTERVAL"]["value"] == "180"


def test_ingress_controls_service_type(minimal_values, effective):
    _require_imports()
    exposed = assemble(effective).find("Service", "readyset-adapter").to_dict()
    assert exposed["spec"]["type"] == "LoadBalancer"
    assert exposed["metadata"]["annotations"]["service.beta.kubernetes.io/aws-load-balancer-type"] == "external"

    internal = assemble(
        resolve_config(_values(minimal_values, adapter={"ingress": {"enabled": False}}))
    ).find("Service", "readyset-adapter").to_dict()
    assert internal["spec"]["type"] == "ClusterIP"
    assert "annotations" not in internal["metadata"]


def test_storage_class_reaches_claim_templates(minimal_values):
    _require_imports()
    output = assemble(resolve_config(_values(minimal_values, kubernetes={"storageClass": "gp3"})))
    for name in ("readyset-server", "readyset-consul-server"):
        claims = output.find("StatefulSet", name).to_dict()["spec"]["volumeClaimTemplates"]
        assert claims[0]["spec"]["storageClassName"] == "gp3"


def test_agent_sidecar_in_component_pods(effective):
    _require_imports()
    output = assemble(effective)
    for kind, name in (("StatefulSet", "readyset-server"), ("Deployment", "readyset-adapter")):
        pod = output.find(kind, name).to_dict()["spec"]["template"]["spec"]
        agent = _container(output.find(kind, name), "consul-agent")
        assert "/v1/health/node/$(hostname)" in agent["readinessProbe"]["exec"]["command"][-1]
        assert pod["serviceAccountName"] == name
        assert pod["volumes"][0]["configMap"]["name"] == "readyset-consul-agent-cm"


def test_release_name_prefixes_resources(minimal_values):
    _require_imports()
    output = assemble(resolve_config(dict(minimal_values, releaseName="cache")))
    assert output.find("Deployment", "cache-adapter")
    env = _env(_container(output.find("Deployment", "cache-adapter"), "cache-adapter"))
    assert env["AUTHORITY_ADDRESS"]["value"] == "cache-consul-server:8500"
    assert env["DEPLOYMENT"]["value"] == "cache"


def test_render_yaml_is_multi_document(effective):
    _require_imports()
    import yaml

    text = render_yaml(assemble(effective))
    docs = list(yaml.safe_load_all(text))
    assert len(docs) == 9
    assert docs[0]["kind"] == "ServiceAccount"
    assert text.startswith("---")
