# src/deployflow/__init__.py
"""
deployflow — orquestração de deployments de infraestrutura por módulos.

Um deployment é composto por instâncias de módulos reutilizáveis. Cada
instância liga seus parâmetros a valores literais, a parâmetros externos
ou a outputs de outras instâncias; a ordem de deploy é inferida dessas
referências, nunca declarada à mão.

Operações públicas:
    - build_plan     → valida o deployment e produz o plano (PlanningError)
    - execute_plan   → executa o plano contra um Deployer (ExecutionError)
    - select_outputs → avalia os outputs de topo (UnresolvedOutputError)

Arquitetura em alto nível:
    - core.modules      → modelo de módulos e expressões
    - core.graph        → referências, grafo e condições
    - core.engine       → planner, coordenador e fachada `Engine`
    - core.catalog      → documentos YAML/JSON
    - core.config       → configuração do engine
    - core.traceability → Manifest e Event Log
"""

from .core.catalog import FileTemplateLoader, load_deployment, parse_deployment
from .core.engine import (
    CallableDeployer,
    Deployer,
    DeploymentPlan,
    DryRunDeployer,
    Engine,
    ResolvedOutputs,
    RunResult,
    build_plan,
    execute_plan,
    select_outputs,
)
from .core.exceptions import (
    CyclicDependencyError,
    DanglingReferenceError,
    DeployflowException,
    ExecutionError,
    InactiveDependencyError,
    PlanningError,
    UnresolvedOutputError,
)
from .core.modules import (
    Deployment,
    ModuleDefinition,
    ModuleInstance,
    OutputRef,
    OutputSpec,
    ParameterSpec,
    ParamRef,
    RunContext,
)

__version__ = "0.1.0"

__all__ = [
    "CallableDeployer",
    "CyclicDependencyError",
    "DanglingReferenceError",
    "Deployer",
    "Deployment",
    "DeploymentPlan",
    "DeployflowException",
    "DryRunDeployer",
    "Engine",
    "ExecutionError",
    "FileTemplateLoader",
    "InactiveDependencyError",
    "ModuleDefinition",
    "ModuleInstance",
    "OutputRef",
    "OutputSpec",
    "ParamRef",
    "ParameterSpec",
    "PlanningError",
    "ResolvedOutputs",
    "RunContext",
    "RunResult",
    "UnresolvedOutputError",
    "build_plan",
    "execute_plan",
    "load_deployment",
    "parse_deployment",
    "select_outputs",
    "__version__",
]
