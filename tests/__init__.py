"""
Tests package - test suite for the kube-policy operator.

Contains:
- unit/: Unit tests for webhook registration and its collaborators
- fixtures/: Fake Kubernetes APIs and objects
"""
