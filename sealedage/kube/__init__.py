"""Kubernetes adapters: the object store and the kopf handlers.

sealedage.kube.operator is imported only by the CLI, since importing it
registers handlers with kopf's default registry.
"""
