# src/deployflow/core/__init__.py
"""
Core do deployflow.

Este pacote contém a implementação canônica do engine de orquestração de
deployments: dado um conjunto de instâncias de módulos que referenciam
outputs umas das outras, infere as dependências, valida a estrutura e
executa o deploy na ordem correta.

Componentes principais:
    - modules      → modelo (expressões, definições, instâncias, RunContext)
    - graph        → referências, grafo de dependências e condições
    - engine       → Build (planner), Execute (coordenador) e SelectOutputs
    - catalog      → documentos de deployment em YAML/JSON
    - config       → resolução de configuração (merge, validação, hashing)
    - traceability → Manifest e Event Log para auditoria

Princípios fundamentais:
    - Nenhuma decisão silenciosa: todo comportamento é explícito e testado
    - Erros estruturais são detectados antes de qualquer efeito colateral
    - Estado e efeitos colaterais são sempre rastreáveis

Limites explícitos:
    - Não provisiona recursos diretamente (isso é do Deployer)
    - Não define linguagem de template
"""
