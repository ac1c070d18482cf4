# src/kitchen_flow/core/workflow/__init__.py
"""
# Workflow Core — Kitchen Flow

Contratos e estruturas que compõem um workflow:

- **context**: `Context` (config, adapters, state, métricas, logs)
- **stage**: `Stage`, `ValidatingStage`, `RollbackStage`, `BaseStage`
- **types**: `StageError`, `StageEvent`, `RunResult` e enums
- **instructions**: marcadores planos emitidos pelas superfícies de definição
- **builder**: `WorkflowBuilder` e `Workflow`
- **definition**: definições declarativas (dict/YAML)
- **registry**: `StageRegistry` para resolução por nome
- **ir**: nós da árvore compilada
- **metrics**: `Metric` e conversão para DataFrame

Stages não conhecem o Runner nem a estrutura do workflow; a comunicação
entre stages ocorre apenas via `Context`.
"""
