"""GKE service account initializer.

Injects Google Cloud service account credentials, stored as Kubernetes
Secrets, into uninitialized Pods or Deployments.
"""

__version__ = "0.2.0"
