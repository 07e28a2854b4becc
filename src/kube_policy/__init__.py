"""
Kube Policy Operator - admission webhook registration for the kube-policy controller.

This package registers the controller's admission webhooks with the cluster:
- Mutating and validating webhook configurations for object creation
- CA bundle discovery from the cluster secret or the local kubeconfig
- Owner references to the controller deployment for garbage collection
- A debug mode that points the API server at an out-of-cluster endpoint
"""

__version__ = "0.1.0"
