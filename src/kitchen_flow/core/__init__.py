# src/kitchen_flow/core/__init__.py
"""
Core do Kitchen Flow.

Componentes principais:
    - config       → carregamento, merge e hashing de configuração
    - workflow     → Context, contrato de Stage, DSL e IR
    - engine       → compilação e execução de workflows
    - traceability → Manifest e sinks de instrumentação

O core não conhece backends concretos: stages acessam serviços externos
apenas via adapters registrados no Context.
"""
