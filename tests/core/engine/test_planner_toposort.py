# tests/core/engine/test_planner_toposort.py
"""
Testes de ordenação topológica determinística no planner.

Este módulo valida que o Build produz um plano em que todo produtor
precede seus consumidores, usando a ordem de declaração como critério
de desempate.

Decisões arquiteturais:
    - Dependências são inferidas das referências, nunca declaradas
    - Empates são resolvidos pela ordem de declaração das instâncias

Invariantes:
    - Toda aresta aponta para trás no plano
    - A mesma entrada produz sempre o mesmo plano (e o mesmo hash)

Limites explícitos:
    - Não valida ciclos nem referências quebradas
    - Não executa instâncias
"""

import pytest

try:
    from deployflow.core.engine.planner import build_plan, topological_order
    from deployflow.core.graph.builder import build_graph
    from deployflow.core.modules.expressions import OutputRef
    from deployflow.core.modules.types import Deployment
except Exception as e:  # noqa: BLE001
    build_plan = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing planner. Implement:
- deployflow.core.engine.planner.build_plan
Import error: {_IMPORT_ERR}
""")


def test_consumer_declared_first_is_planned_after_producer(make_instance):
    """
    Verifica o cenário mínimo: B consome output de A.

    Mesmo declarada antes, B só pode aparecer depois de A no plano.
    """
    _require_imports()
    b = make_instance("B", params={"x": OutputRef("A", "out")})
    a = make_instance("A")

    plan = build_plan(Deployment(instances=(b, a)))

    assert plan.order == ["A", "B"]
    assert plan.entry("B").producers == ("A",)
    assert plan.entry("A").producers == ()


def test_ties_follow_declaration_order(make_instance):
    _require_imports()
    instances = (
        make_instance("c"),
        make_instance("a"),
        make_instance("b"),
    )
    assert build_plan(Deployment(instances=instances)).order == ["c", "a", "b"]


def test_every_edge_points_backwards(make_instance):
    """
    Propriedade: para toda aresta produtor → consumidor, o produtor vem antes.

    Grafo usado (declarado fora de ordem de propósito):

        db ← app ← lb
        net ← db, net ← app
    """
    _require_imports()
    instances = (
        make_instance("lb", params={"target": OutputRef("app", "out")}),
        make_instance("app", params={"db": OutputRef("db", "out"), "subnet": OutputRef("net", "out")}),
        make_instance("db", params={"subnet": OutputRef("net", "out")}),
        make_instance("net"),
        make_instance("monitoring"),
    )
    plan = build_plan(Deployment(instances=instances))
    position = {name: i for i, name in enumerate(plan.order)}

    graph = build_graph(instances)
    for edge in graph.edge_list():
        assert position[edge.producer] < position[edge.consumer]
    assert plan.order == ["net", "db", "app", "lb", "monitoring"]


def test_topological_order_restricted_to_active_subset(make_instance):
    _require_imports()
    instances = [make_instance("a"), make_instance("b", params={"x": OutputRef("a", "out")}), make_instance("c")]
    graph = build_graph(instances)
    assert topological_order(graph, ["b", "c"]) == ["b", "c"]


def test_plan_is_deterministic(make_instance):
    _require_imports()

    def _deployment():
        return Deployment(
            instances=(
                make_instance("b", params={"x": OutputRef("a", "out")}),
                make_instance("a"),
            )
        )

    first, second = build_plan(_deployment()), build_plan(_deployment())
    assert first.order == second.order
    assert first.to_dict() == second.to_dict()
    assert first.plan_hash() == second.plan_hash()
    assert len(first.plan_hash()) == 64
