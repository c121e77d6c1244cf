"""Domain layer — rules, observable values, and the validation orchestrator.

This layer depends only on stdlib and networkx.
It must never import from services, plugins, commands, or config.
"""
