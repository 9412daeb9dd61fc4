# tests/core/modules/test_module_types.py
"""
Testes do modelo de módulos (ParameterSpec, ModuleDefinition, ModuleInstance).

Os testes asseguram que:
- tipos declarados são checados estruturalmente (bool nunca é número)
- um default torna o parâmetro opcional e precisa respeitar o tipo
- nomes repetidos em uma definição são rejeitados
- condições de definição só referenciam parâmetros declarados
- a condição efetiva combina instância e definição

Limites explícitos:
    - Não valida grafo, planner ou execução
"""

import pytest

try:
    from deployflow.core.exceptions import DefinitionError
    from deployflow.core.modules.expressions import AllOf, Literal, OutputRef, ParamRef
    from deployflow.core.modules.types import (
        ModuleDefinition,
        ModuleInstance,
        OutputSpec,
        ParameterSpec,
        value_matches_type,
    )
except Exception as e:  # noqa: BLE001
    DefinitionError = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """Falha explicitamente quando o modelo de módulos não pode ser importado."""
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing module model. Implement:
- deployflow.core.modules.types
- deployflow.core.modules.expressions
Import error: {_IMPORT_ERR}
""")


@pytest.mark.parametrize(
    "value,type_name,expected",
    [
        ("x", "string", True),
        (1, "int", True),
        (True, "int", False),
        (1.5, "number", True),
        (False, "number", False),
        ({"a": 1}, "object", True),
        ([1, 2], "array", True),
        (None, "any", True),
        (3, "string", False),
    ],
)
def test_value_matches_type(value, type_name, expected):
    _require_imports()
    assert value_matches_type(value, type_name) is expected


def test_default_makes_parameter_optional():
    """
    Verifica que um parâmetro com default nunca é obrigatório.

    Invariantes:
        - `required` é forçado para False
        - `has_default` reflete a presença do default
    """
    _require_imports()
    spec = ParameterSpec("size", "int", required=True, default=3)
    assert spec.required is False
    assert spec.has_default


def test_default_must_match_declared_type():
    _require_imports()
    with pytest.raises(DefinitionError):
        ParameterSpec("size", "int", default="three")


def test_unsupported_type_is_rejected():
    _require_imports()
    with pytest.raises(DefinitionError):
        OutputSpec("out", "float64")


def test_duplicate_parameter_names_are_rejected():
    _require_imports()
    with pytest.raises(DefinitionError):
        ModuleDefinition(
            name="network",
            template="templates/network",
            parameters=(ParameterSpec("cidr"), ParameterSpec("cidr")),
        )


def test_definition_condition_only_reads_declared_parameters():
    """
    Verifica que a condição de uma definição só pode ler os próprios parâmetros.

    Uma condição de definição é avaliada no escopo da instância; referenciar
    um parâmetro não declarado tornaria a definição dependente do contexto.
    """
    _require_imports()
    with pytest.raises(DefinitionError) as exc:
        ModuleDefinition(
            name="database",
            template="templates/database",
            parameters=(ParameterSpec("enabled", "bool"),),
            condition=ParamRef("something_else"),
        )
    assert exc.value.details["parameter"] == "something_else"


def test_instance_wraps_raw_values_as_literals():
    _require_imports()
    definition = ModuleDefinition(
        name="app",
        template="templates/app",
        parameters=(ParameterSpec("replicas", "int"), ParameterSpec("tier", default="web")),
    )
    inst = ModuleInstance("app", definition, params={"replicas": 2})

    assert inst.params["replicas"] == Literal(2)
    assert inst.bound_expressions() == {"replicas": Literal(2), "tier": Literal("web")}
    assert inst.template == "templates/app"


def test_effective_condition_combines_instance_and_definition():
    """
    Verifica a condição efetiva de uma instância.

    A condição da definição tem seus ParamRefs substituídos pelas ligações
    da instância e é combinada (AND) com a condição da própria instância.
    """
    _require_imports()
    definition = ModuleDefinition(
        name="database",
        template="templates/database",
        parameters=(ParameterSpec("enabled", "bool"),),
        condition=ParamRef("enabled"),
    )
    inst = ModuleInstance(
        "db",
        definition,
        params={"enabled": ParamRef("deploy_db")},
        condition=OutputRef("network", "ready"),
    )

    assert inst.effective_condition() == AllOf((OutputRef("network", "ready"), ParamRef("deploy_db")))
    sources = [source for source, _ in inst.expressions()]
    assert sources == ["param:enabled", "condition"]


def test_instance_without_conditions_has_no_effective_condition(make_instance):
    _require_imports()
    assert make_instance("a").effective_condition() is None
